# petalstore/services/auth_client.py
import requests
from pydantic import BaseModel

from petalstore.utils.retry import http_retry
from petalstore.utils.settings import BAAS_URL, BAAS_ANON_KEY, REMOTE_TIMEOUT_SECONDS
from petalstore.utils.logging import get_logger

logger = get_logger(__name__)


class AuthUser(BaseModel):
    id: str
    email: str = ""
    user_metadata: dict = {}


class AuthSession(BaseModel):
    access_token: str
    refresh_token: str | None = None
    user: AuthUser


class AuthClient:
    """Hosted auth REST endpoints (sign up/in/out, current user, user metadata)."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float = REMOTE_TIMEOUT_SECONDS,
    ):
        self.base_url = (base_url or BAAS_URL).rstrip("/") + "/auth/v1"
        self.api_key = api_key if api_key is not None else BAAS_ANON_KEY
        self.timeout = timeout

    def _headers(self, access_token: str | None = None) -> dict:
        headers = {"apikey": self.api_key}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    @http_retry()
    def sign_up(self, email: str, password: str, metadata: dict | None = None) -> AuthUser:
        url = f"{self.base_url}/signup"
        logger.info(f"AuthClient POST {url}")

        resp = requests.post(
            url,
            json={"email": email, "password": password, "data": metadata or {}},
            headers=self._headers(),
            timeout=self.timeout,
        )
        resp.raise_for_status()
        body = resp.json()
        #with email confirmation on, the user comes back without a session
        return AuthUser.model_validate(body.get("user", body))

    @http_retry()
    def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        url = f"{self.base_url}/token"
        logger.info(f"AuthClient POST {url}")

        resp = requests.post(
            url,
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            headers=self._headers(),
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return AuthSession.model_validate(resp.json())

    @http_retry()
    def sign_out(self, access_token: str) -> None:
        url = f"{self.base_url}/logout"
        logger.info(f"AuthClient POST {url}")

        resp = requests.post(url, headers=self._headers(access_token), timeout=self.timeout)
        resp.raise_for_status()

    @http_retry()
    def get_user(self, access_token: str) -> AuthUser:
        url = f"{self.base_url}/user"
        logger.info(f"AuthClient GET {url}")

        resp = requests.get(url, headers=self._headers(access_token), timeout=self.timeout)
        resp.raise_for_status()
        return AuthUser.model_validate(resp.json())

    @http_retry()
    def update_user(self, access_token: str, metadata: dict) -> AuthUser:
        url = f"{self.base_url}/user"
        logger.info(f"AuthClient PUT {url}")

        resp = requests.put(
            url,
            json={"data": metadata},
            headers=self._headers(access_token),
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return AuthUser.model_validate(resp.json())
