# petalstore/services/storage_client.py
import requests

from petalstore.utils.retry import http_retry
from petalstore.utils.settings import BAAS_URL, BAAS_ANON_KEY, STORAGE_BUCKET, REMOTE_TIMEOUT_SECONDS
from petalstore.utils.logging import get_logger

logger = get_logger(__name__)


class StorageClient:
    """Blob storage on the hosted platform: upload, public url, delete."""

    def __init__(
        self,
        base_url: str | None = None,
        bucket: str | None = None,
        api_key: str | None = None,
        timeout: float = REMOTE_TIMEOUT_SECONDS,
    ):
        self.base_url = (base_url or BAAS_URL).rstrip("/") + "/storage/v1"
        self.bucket = bucket or STORAGE_BUCKET
        self.api_key = api_key if api_key is not None else BAAS_ANON_KEY
        self.timeout = timeout

    def _headers(self, access_token: str | None = None) -> dict:
        headers = {"apikey": self.api_key}
        headers["Authorization"] = f"Bearer {access_token or self.api_key}"
        return headers

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/object/public/{self.bucket}/{path}"

    def path_from_url(self, url: str) -> str:
        #<user id>/<file name>
        return "/".join(url.rstrip("/").split("/")[-2:])

    @http_retry()
    def upload(
        self,
        path: str,
        content: bytes,
        content_type: str = "application/octet-stream",
        access_token: str | None = None,
    ) -> str:
        url = f"{self.base_url}/object/{self.bucket}/{path}"
        logger.info(f"StorageClient POST {url}")

        headers = self._headers(access_token)
        headers["Content-Type"] = content_type
        headers["x-upsert"] = "true"

        resp = requests.post(url, data=content, headers=headers, timeout=self.timeout)
        resp.raise_for_status()
        return self.public_url(path)

    @http_retry()
    def delete(self, path: str, access_token: str | None = None) -> None:
        url = f"{self.base_url}/object/{self.bucket}"
        logger.info(f"StorageClient DELETE {url} {path}")

        resp = requests.delete(
            url,
            json={"prefixes": [path]},
            headers=self._headers(access_token),
            timeout=self.timeout,
        )
        resp.raise_for_status()
