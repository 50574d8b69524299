# petalstore/api/__init__.py
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from petalstore.api.routers import (
    addresses,
    carts,
    chat,
    health,
    orders,
    products,
    profiles,
    reviews,
    wishlist,
)
from petalstore.domain.errors import AlreadyReviewed, PersistenceFailure, StorefrontError
from petalstore.storefront import Storefront
from petalstore.utils.logging import get_logger

logger = get_logger(__name__)


def _status_for(error: StorefrontError) -> int:
    if isinstance(error, PermissionError):
        return 403
    if isinstance(error, LookupError):
        return 404
    if isinstance(error, AlreadyReviewed):
        return 409
    if isinstance(error, ValueError):
        return 400
    if isinstance(error, PersistenceFailure):
        return 503
    return 500


def create_app(storefront: Storefront | None = None) -> FastAPI:
    app = FastAPI(title="Petal Store", version="1.0.0")
    app.state.storefront = storefront or Storefront()

    @app.exception_handler(StorefrontError)
    async def storefront_error(request: Request, exc: StorefrontError):
        status = _status_for(exc)
        if status >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=status, content={"detail": exc.message})

    app.include_router(health.router)
    app.include_router(products.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(reviews.router)
    app.include_router(wishlist.router)
    app.include_router(addresses.router)
    app.include_router(chat.router)
    app.include_router(profiles.router)

    return app
