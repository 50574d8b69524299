from fastapi import APIRouter, Depends
from sqlalchemy import text

from petalstore.api.deps import get_storefront
from petalstore.storefront import Storefront

router = APIRouter(tags=["health"])


@router.get("/health")
def health(storefront: Storefront = Depends(get_storefront)):
    with storefront.session_factory() as db:
        db.execute(text("SELECT 1"))
    return {"status": "ok"}
