# petalstore/api/deps.py
import requests
from fastapi import Depends, Header, HTTPException, Request

from petalstore.domain.errors import NotFound, PersistenceFailure
from petalstore.domain.schemas import Actor, Role
from petalstore.storefront import Storefront
from petalstore.utils.logging import get_logger

logger = get_logger(__name__)


def get_storefront(request: Request) -> Storefront:
    return request.app.state.storefront


def get_access_token(authorization: str | None = Header(None)) -> str:
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Missing access token")
    return token.strip()


def get_actor(
    token: str = Depends(get_access_token),
    storefront: Storefront = Depends(get_storefront),
) -> Actor:
    """The caller is whoever the auth service says owns the token; the role comes from the roles table."""
    try:
        user = storefront.auth.get_user(token)
    except requests.HTTPError:
        raise HTTPException(status_code=401, detail="Invalid or expired session")
    except requests.RequestException as e:
        logger.error(f"Auth service unreachable while resolving caller: {e}")
        raise PersistenceFailure("Could not reach the sign-in service, please try again.") from e

    try:
        return storefront.profiles.actor(user.id)
    except NotFound:
        raise HTTPException(status_code=401, detail="Unknown user")


def get_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if actor.role != Role.ADMIN:
        raise HTTPException(status_code=403, detail="Administrator role required")
    return actor
