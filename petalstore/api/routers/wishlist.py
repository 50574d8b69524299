from typing import List

from fastapi import APIRouter, Depends

from petalstore.api.deps import get_actor, get_storefront
from petalstore.domain.schemas import Actor, Product, WishlistIn
from petalstore.storefront import Storefront

router = APIRouter(prefix="/wishlist", tags=["wishlist"])


@router.get("/", response_model=List[Product])
def list_wishlist(actor: Actor = Depends(get_actor), storefront: Storefront = Depends(get_storefront)):
    return storefront.wishlist.list(actor.id)


@router.post("/")
def add_to_wishlist(
    payload: WishlistIn,
    actor: Actor = Depends(get_actor),
    storefront: Storefront = Depends(get_storefront),
):
    added = storefront.wishlist.add(actor.id, payload.product_id)
    return {"product_id": payload.product_id, "added": added}


@router.delete("/{product_id}")
def remove_from_wishlist(
    product_id: str,
    actor: Actor = Depends(get_actor),
    storefront: Storefront = Depends(get_storefront),
):
    removed = storefront.wishlist.remove(actor.id, product_id)
    return {"product_id": product_id, "removed": removed}
