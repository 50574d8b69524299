#petalstore/api/routers/carts.py
from fastapi import APIRouter, Depends, HTTPException

from petalstore.api.deps import get_actor, get_storefront
from petalstore.domain.schemas import Actor, CartIn, CartOut
from petalstore.storefront import Storefront

router = APIRouter(prefix="/carts", tags=["carts"])


#remote copy of the signed-in shopper's cart
@router.get("/me", response_model=CartOut)
def get_cart(
    actor: Actor = Depends(get_actor),
    storefront: Storefront = Depends(get_storefront),
):
    cart = storefront.carts.get_cart(actor.id)
    if not cart:
        raise HTTPException(status_code=404, detail="Cart not found")
    return cart


@router.put("/me", response_model=CartOut)
def save_cart(
    payload: CartIn,
    actor: Actor = Depends(get_actor),
    storefront: Storefront = Depends(get_storefront),
):
    #merge duplicates so the stored cart keeps one line per product
    merged = {}
    for line in payload.items:
        if line.product_id in merged:
            merged[line.product_id].quantity += line.quantity
        else:
            merged[line.product_id] = line.model_copy()
    return storefront.carts.save_cart(actor.id, list(merged.values()))
