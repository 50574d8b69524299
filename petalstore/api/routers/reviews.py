# petalstore/api/routers/reviews.py
from typing import List

from fastapi import APIRouter, Depends

from petalstore.api.deps import get_actor, get_storefront
from petalstore.domain.schemas import Actor, Review, ReviewEligibility, ReviewIn, ReviewUpdateIn
from petalstore.storefront import Storefront

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.get("/product/{product_id}", response_model=List[Review])
def product_reviews(product_id: str, storefront: Storefront = Depends(get_storefront)):
    return storefront.reviews.product_reviews(product_id)


@router.get("/mine/{product_id}", response_model=Review | None)
def my_review(
    product_id: str,
    actor: Actor = Depends(get_actor),
    storefront: Storefront = Depends(get_storefront),
):
    return storefront.reviews.user_review_for_product(actor.id, product_id)


@router.get("/eligibility/{product_id}", response_model=ReviewEligibility)
def eligibility(
    product_id: str,
    actor: Actor = Depends(get_actor),
    storefront: Storefront = Depends(get_storefront),
):
    return storefront.reviews.can_review(actor.id, product_id)


@router.post("/", response_model=Review, status_code=201)
def submit_review(
    payload: ReviewIn,
    actor: Actor = Depends(get_actor),
    storefront: Storefront = Depends(get_storefront),
):
    return storefront.reviews.submit_review(
        actor.id, payload.product_id, payload.order_id, payload.rating, payload.comment
    )


@router.put("/{review_id}", response_model=Review)
def update_review(
    review_id: str,
    payload: ReviewUpdateIn,
    actor: Actor = Depends(get_actor),
    storefront: Storefront = Depends(get_storefront),
):
    return storefront.reviews.update_review(actor, review_id, payload.rating, payload.comment)


@router.delete("/{review_id}", status_code=204)
def delete_review(
    review_id: str,
    actor: Actor = Depends(get_actor),
    storefront: Storefront = Depends(get_storefront),
):
    storefront.reviews.delete_review(actor, review_id)
