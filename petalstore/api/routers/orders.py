# petalstore/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends

from petalstore.api.deps import get_actor, get_admin, get_storefront
from petalstore.domain.errors import Forbidden
from petalstore.domain.schemas import Actor, CheckoutIn, Order, OrderStatusIn, Role
from petalstore.services.cart_service import StoredCart
from petalstore.storefront import Storefront

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/", response_model=Order, status_code=201)
def create_order(
    payload: CheckoutIn,
    actor: Actor = Depends(get_actor),
    storefront: Storefront = Depends(get_storefront),
):
    """
    Places an order from the given lines, or from the shopper's stored cart
    when no lines are sent. The stored cart is emptied afterwards.
    """
    return storefront.checkout.checkout(
        actor.id,
        StoredCart(storefront.carts, actor.id),
        payload.customer_name,
        payload.payment_method,
        payload.address,
        payload.address_id,
        payload.items,
    )


@router.get("/", response_model=List[Order])
def list_orders(
    actor: Actor = Depends(get_actor),
    storefront: Storefront = Depends(get_storefront),
):
    if actor.role == Role.ADMIN:
        return storefront.orders.list_orders()
    return storefront.orders.list_orders(actor.id)


@router.get("/{order_id}", response_model=Order)
def get_order(
    order_id: str,
    actor: Actor = Depends(get_actor),
    storefront: Storefront = Depends(get_storefront),
):
    order = storefront.orders.get_order(order_id)
    if actor.role != Role.ADMIN and order.user_id != actor.id:
        raise Forbidden("You can only view your own orders.")
    return order


@router.patch("/{order_id}/status", response_model=Order)
def update_status(
    order_id: str,
    payload: OrderStatusIn,
    admin: Actor = Depends(get_admin),
    storefront: Storefront = Depends(get_storefront),
):
    return storefront.orders.update_status(admin, order_id, payload.status)
