# petalstore/services/session_service.py
import threading
from typing import Callable, List

import requests
from sqlalchemy.exc import SQLAlchemyError

from petalstore.data.models.profile import ProfileModel
from petalstore.domain.errors import LoginRequired, PersistenceFailure, ValidationError
from petalstore.domain.schemas import Actor, Role
from petalstore.repos.profile_repo import ProfileRepo
from petalstore.services.auth_client import AuthClient, AuthSession, AuthUser
from petalstore.utils.logging import get_logger, add_context, clear_context

logger = get_logger(__name__)

SessionListener = Callable[[Actor | None], None]


def display_name(profile_name: str | None, user: AuthUser) -> str:
    """Profile name, then metadata name, then the email local part."""
    if profile_name:
        return profile_name
    meta_name = user.user_metadata.get("name") or user.user_metadata.get("full_name")
    if meta_name:
        return meta_name
    local_part = user.email.split("@")[0] if user.email else ""
    return local_part or "User"


class SessionService:
    """
    Resolves who is using the storefront: guest, buyer or admin.

    Holds the current auth session, loads profile and role for it and tells
    listeners when the actor changes. The role comes from the user_roles
    table only.
    """

    def __init__(self, auth_client: AuthClient, session_factory):
        self.auth = auth_client
        self.session_factory = session_factory
        self._auth_session: AuthSession | None = None
        self._actor: Actor | None = None
        self._listeners: List[SessionListener] = []
        self._before_sign_out: List[Callable[[], None]] = []
        self._lock = threading.RLock()

    #query
    @property
    def current(self) -> Actor | None:
        return self._actor

    @property
    def access_token(self) -> str | None:
        return self._auth_session.access_token if self._auth_session else None

    def is_authenticated(self) -> bool:
        return self._actor is not None

    def has_role(self, role: Role) -> bool:
        if self._actor is None:
            return role == Role.GUEST
        return self._actor.role == role

    def require_actor(self, action: str) -> Actor:
        actor = self._actor
        if actor is None:
            raise LoginRequired(action)
        return actor

    #listeners
    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def before_sign_out(self, hook: Callable[[], None]) -> None:
        """Run while the outgoing actor is still current (flush pending writes)."""
        self._before_sign_out.append(hook)

    #commands
    def sign_up(self, email: str, password: str, name: str) -> Actor:
        if not email or not password or not name:
            raise ValidationError("Email, password and name are required to create an account.")

        try:
            user = self.auth.sign_up(email, password, {"name": name})
        except requests.HTTPError as e:
            raise ValidationError(f"Could not create the account: {_error_text(e)}") from e
        except requests.RequestException as e:
            raise PersistenceFailure("Could not reach the sign-up service, please try again.") from e

        try:
            with self.session_factory() as db:
                repo = ProfileRepo(db)
                if repo.get_profile(user.id) is None:
                    repo.create_profile(ProfileModel(id=user.id, email=email, name=name, wishlist=[]))
                if repo.get_role(user.id) is None:
                    repo.set_role(user.id, Role.BUYER.value)
        except SQLAlchemyError as e:
            logger.error(f"Profile setup failed for {user.id}: {e}")
            raise PersistenceFailure("Your account was created but its profile could not be saved.") from e

        logger.info(f"Account created for user {user.id}")
        return Actor(id=user.id, email=email, name=name, role=Role.BUYER, wishlist=[])

    def sign_in(self, email: str, password: str) -> Actor:
        if not email or not password:
            raise ValidationError("Email and password are required.")

        try:
            auth_session = self.auth.sign_in_with_password(email, password)
        except requests.HTTPError as e:
            raise ValidationError(f"Sign in failed: {_error_text(e)}") from e
        except requests.RequestException as e:
            raise PersistenceFailure("Could not reach the sign-in service, please try again.") from e

        actor = self._resolve(auth_session.user)
        self._set(auth_session, actor)
        return actor

    def sign_out(self) -> None:
        with self._lock:
            if self._auth_session is None:
                return
            for hook in list(self._before_sign_out):
                hook()
            token = self._auth_session.access_token

        try:
            self.auth.sign_out(token)
        except requests.RequestException as e:
            #the local session ends regardless
            logger.warning(f"Remote sign out failed: {e}")

        self._set(None, None)

    def refresh(self) -> Actor | None:
        """Reload profile and role for the current session (after an external change)."""
        token = self.access_token
        if token is None:
            return None
        try:
            user = self.auth.get_user(token)
        except requests.HTTPError:
            logger.info("Session token no longer valid, signing out locally")
            self._set(None, None)
            return None
        except requests.RequestException as e:
            raise PersistenceFailure("Could not reach the sign-in service, please try again.") from e

        actor = self._resolve(user)
        self._set(self._auth_session, actor)
        return actor

    def set_actor_name(self, name: str) -> None:
        with self._lock:
            if self._actor is not None:
                self._actor = self._actor.model_copy(update={"name": name})

    def _resolve(self, user: AuthUser) -> Actor:
        try:
            with self.session_factory() as db:
                repo = ProfileRepo(db)
                profile = repo.get_profile(user.id)
                if profile is None:
                    logger.warning(f"Profile for {user.id} not found, creating one")
                    profile = repo.create_profile(
                        ProfileModel(
                            id=user.id,
                            email=user.email,
                            name=display_name(None, user),
                            wishlist=[],
                        )
                    )

                role = repo.get_role(user.id)
                if role is None:
                    role = Role.BUYER.value
                    repo.set_role(user.id, role)

                return Actor(
                    id=user.id,
                    email=profile.email or user.email,
                    name=display_name(profile.name, user),
                    role=Role(role),
                    wishlist=list(profile.wishlist or []),
                )
        except SQLAlchemyError as e:
            logger.error(f"Loading profile for {user.id} failed: {e}")
            raise PersistenceFailure("Could not load your profile, please try again.") from e

    def _set(self, auth_session: AuthSession | None, actor: Actor | None) -> None:
        with self._lock:
            previous = self._actor
            self._auth_session = auth_session
            self._actor = actor

        if actor is None:
            clear_context()
        else:
            add_context(actor_id=actor.id)

        changed = (previous.id if previous else None) != (actor.id if actor else None)
        if changed:
            logger.info(f"Session changed to {actor.id if actor else 'guest'}")
            for listener in list(self._listeners):
                listener(actor)


def _error_text(error: requests.HTTPError) -> str:
    response = error.response
    if response is None:
        return str(error)
    try:
        body = response.json()
    except ValueError:
        return response.text or str(error)
    return body.get("error_description") or body.get("msg") or body.get("message") or str(error)
