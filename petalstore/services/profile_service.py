# petalstore/services/profile_service.py
import time

import requests
from sqlalchemy.exc import SQLAlchemyError

from petalstore.domain.errors import NotFound, PersistenceFailure, ValidationError
from petalstore.domain.schemas import Actor, Profile, Role
from petalstore.repos.profile_repo import ProfileRepo
from petalstore.services.auth_client import AuthClient
from petalstore.services.storage_client import StorageClient
from petalstore.utils.logging import get_logger

logger = get_logger(__name__)


class ProfileService:
    def __init__(self, session_factory, auth_client: AuthClient, storage: StorageClient):
        self.session_factory = session_factory
        self.auth = auth_client
        self.storage = storage

    def get_profile(self, user_id: str) -> Profile:
        with self.session_factory() as db:
            profile = ProfileRepo(db).get_profile(user_id)
            if profile is None:
                raise NotFound("Profile not found.")
            return Profile.model_validate(profile)

    def actor(self, user_id: str) -> Actor:
        """Actor for a known user id, role from user_roles (buyer when missing)."""
        with self.session_factory() as db:
            repo = ProfileRepo(db)
            profile = repo.get_profile(user_id)
            if profile is None:
                raise NotFound("Profile not found.")
            role = repo.get_role(user_id) or Role.BUYER.value
            return Actor(
                id=profile.id,
                email=profile.email,
                name=profile.name,
                role=Role(role),
                wishlist=list(profile.wishlist or []),
            )

    def update_name(self, user_id: str, access_token: str, name: str) -> Profile:
        """
        Name lives in auth metadata first; the profiles row is a mirror and a
        failed mirror write is only logged.
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Name cannot be empty.")

        try:
            self.auth.update_user(access_token, {"full_name": name, "name": name})
        except requests.RequestException as e:
            logger.error(f"Error updating auth user {user_id}: {e}")
            raise PersistenceFailure("Failed to update your name, please try again.") from e

        with self.session_factory() as db:
            repo = ProfileRepo(db)
            try:
                repo.update_profile(user_id, {"name": name})
            except SQLAlchemyError as e:
                repo.rollback()
                logger.warning(f"Profiles row for {user_id} not updated, auth metadata is: {e}")

        return self.get_profile(user_id)

    def upload_photo(
        self,
        user_id: str,
        access_token: str,
        filename: str,
        content: bytes,
        content_type: str = "image/jpeg",
    ) -> str:
        ext = filename.rsplit(".", 1)[-1] if "." in filename else "jpg"
        path = f"{user_id}/profile-{int(time.time() * 1000)}.{ext}"

        try:
            url = self.storage.upload(path, content, content_type, access_token=access_token)
        except requests.RequestException as e:
            logger.error(f"Error uploading photo for {user_id}: {e}")
            raise PersistenceFailure("Failed to upload your photo, please try again.") from e

        self._store_photo_url(user_id, access_token, url)
        logger.info(f"Photo uploaded for {user_id}: {path}")
        return url

    def delete_photo(self, user_id: str, access_token: str, photo_url: str) -> None:
        path = self.storage.path_from_url(photo_url)
        try:
            self.storage.delete(path, access_token=access_token)
        except requests.RequestException as e:
            logger.error(f"Error deleting photo {path}: {e}")
            raise PersistenceFailure("Failed to delete your photo, please try again.") from e

        self._store_photo_url(user_id, access_token, None)

    def _store_photo_url(self, user_id: str, access_token: str, url: str | None) -> None:
        #the file operation already happened, metadata failures are not fatal
        try:
            self.auth.update_user(access_token, {"photo_url": url})
        except requests.RequestException as e:
            logger.warning(f"Photo url not stored in auth metadata for {user_id}: {e}")

        with self.session_factory() as db:
            repo = ProfileRepo(db)
            try:
                repo.update_profile(user_id, {"photo_url": url})
            except SQLAlchemyError as e:
                repo.rollback()
                logger.warning(f"Photo url not stored on profile {user_id}: {e}")
