# petalstore/api/routers/products.py
from typing import List

from fastapi import APIRouter, Depends

from petalstore.api.deps import get_admin, get_storefront
from petalstore.domain.schemas import Actor, Product, ProductIn, ProductUpdate
from petalstore.storefront import Storefront

router = APIRouter(prefix="/products", tags=["products"])


@router.get("/", response_model=List[Product])
def list_products(
    category: str | None = None,
    featured: bool = False,
    q: str | None = None,
    storefront: Storefront = Depends(get_storefront),
):
    svc = storefront.products
    if q:
        return svc.search(q)
    if featured:
        return svc.featured()
    if category:
        return svc.by_category(category)
    return svc.list_products()


@router.get("/{product_id}", response_model=Product)
def get_product(product_id: str, storefront: Storefront = Depends(get_storefront)):
    return storefront.products.get_product(product_id)


@router.get("/{product_id}/rating")
def get_rating(product_id: str, storefront: Storefront = Depends(get_storefront)):
    return {"product_id": product_id, "average": storefront.reviews.average_rating(product_id)}


@router.post("/", response_model=Product, status_code=201)
def create_product(
    payload: ProductIn,
    admin: Actor = Depends(get_admin),
    storefront: Storefront = Depends(get_storefront),
):
    return storefront.products.create_product(admin, payload)


@router.patch("/{product_id}", response_model=Product)
def update_product(
    product_id: str,
    payload: ProductUpdate,
    admin: Actor = Depends(get_admin),
    storefront: Storefront = Depends(get_storefront),
):
    return storefront.products.update_product(admin, product_id, payload)


@router.delete("/{product_id}", status_code=204)
def delete_product(
    product_id: str,
    admin: Actor = Depends(get_admin),
    storefront: Storefront = Depends(get_storefront),
):
    storefront.products.delete_product(admin, product_id)
