from unittest.mock import MagicMock, patch

import pytest
import requests

from petalstore.services.auth_client import AuthClient
from petalstore.services.storage_client import StorageClient
from petalstore.utils.settings import REMOTE_RETRY_ATTEMPTS


def _response(body=None, status=200):
    resp = MagicMock(status_code=status)
    resp.json.return_value = body or {}
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(response=resp)
    else:
        resp.raise_for_status.return_value = None
    return resp


class TestAuthClient:
    def test_sign_in_posts_password_grant(self):
        client = AuthClient(base_url="http://baas.test", api_key="anon", timeout=10)
        body = {"access_token": "tok", "refresh_token": "ref", "user": {"id": "u1", "email": "a@b.c"}}

        with patch("petalstore.services.auth_client.requests.post", return_value=_response(body)) as post:
            session = client.sign_in_with_password("a@b.c", "pw")

        assert session.user.id == "u1"
        args, kwargs = post.call_args
        assert args[0] == "http://baas.test/auth/v1/token"
        assert kwargs["params"] == {"grant_type": "password"}
        assert kwargs["headers"]["apikey"] == "anon"
        assert kwargs["timeout"] == 10

    def test_http_error_is_not_retried(self):
        client = AuthClient(base_url="http://baas.test", api_key="anon")

        with patch("petalstore.services.auth_client.requests.post", return_value=_response(status=400)) as post:
            with pytest.raises(requests.HTTPError):
                client.sign_in_with_password("a@b.c", "bad")

        assert post.call_count == 1

    def test_connection_error_is_retried(self):
        client = AuthClient(base_url="http://baas.test", api_key="anon")
        ok = _response({"id": "u1", "email": "a@b.c"})

        with patch(
            "petalstore.services.auth_client.requests.get",
            side_effect=[requests.ConnectionError("reset"), ok],
        ) as get:
            user = client.get_user("tok")

        assert user.id == "u1"
        assert get.call_count == 2
        assert get.call_args.kwargs["headers"]["Authorization"] == "Bearer tok"

    def test_gives_up_after_configured_attempts(self):
        client = AuthClient(base_url="http://baas.test", api_key="anon")

        with patch(
            "petalstore.services.auth_client.requests.get", side_effect=requests.Timeout("slow")
        ) as get:
            with pytest.raises(requests.Timeout):
                client.get_user("tok")

        assert get.call_count == REMOTE_RETRY_ATTEMPTS

    def test_update_user_sends_metadata(self):
        client = AuthClient(base_url="http://baas.test", api_key="anon")

        with patch(
            "petalstore.services.auth_client.requests.put",
            return_value=_response({"id": "u1", "user_metadata": {"name": "Ana"}}),
        ) as put:
            user = client.update_user("tok", {"name": "Ana"})

        assert put.call_args.kwargs["json"] == {"data": {"name": "Ana"}}
        assert user.user_metadata == {"name": "Ana"}


class TestStorageClient:
    def test_upload_returns_public_url(self):
        client = StorageClient(base_url="http://baas.test", bucket="profiles", api_key="anon")

        with patch("petalstore.services.storage_client.requests.post", return_value=_response()) as post:
            url = client.upload("u1/profile-1.jpg", b"data", "image/jpeg", access_token="tok")

        assert url == "http://baas.test/storage/v1/object/public/profiles/u1/profile-1.jpg"
        args, kwargs = post.call_args
        assert args[0] == "http://baas.test/storage/v1/object/profiles/u1/profile-1.jpg"
        assert kwargs["headers"]["Content-Type"] == "image/jpeg"
        assert kwargs["headers"]["x-upsert"] == "true"

    def test_path_from_url(self):
        client = StorageClient(base_url="http://baas.test", bucket="profiles")

        url = client.public_url("u1/profile-1.jpg")

        assert client.path_from_url(url) == "u1/profile-1.jpg"

    def test_delete_sends_prefixes(self):
        client = StorageClient(base_url="http://baas.test", bucket="profiles", api_key="anon")

        with patch("petalstore.services.storage_client.requests.delete", return_value=_response()) as delete:
            client.delete("u1/profile-1.jpg", access_token="tok")

        assert delete.call_args.kwargs["json"] == {"prefixes": ["u1/profile-1.jpg"]}
