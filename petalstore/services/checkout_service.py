# petalstore/services/checkout_service.py
from typing import List, Tuple

from sqlalchemy.exc import SQLAlchemyError

from petalstore.domain.errors import StorefrontError, ValidationError
from petalstore.domain.schemas import AddressFields, CartLine, Order
from petalstore.services.address_service import AddressService
from petalstore.services.cart_service import CartService, StoredCart
from petalstore.services.order_service import OrderService
from petalstore.utils.logging import get_logger

logger = get_logger(__name__)


def resolve_address(
    addresses: AddressService,
    user_id: str,
    address: AddressFields | None = None,
    address_id: str | None = None,
) -> Tuple[str, str]:
    """Returns (full address, phone) for a saved address or a manual entry."""
    if address_id:
        saved = addresses.get_address(user_id, address_id)
        full_address, phone = saved.full_address(), saved.phone_number
    elif address is not None:
        if not address.street_address.strip() or not address.city.strip():
            raise ValidationError("Please fill in all checkout fields.")
        full_address, phone = address.full_address(), address.phone_number
    else:
        raise ValidationError("Please choose or enter a delivery address.")

    if not (phone or "").strip():
        raise ValidationError("Please provide a phone number for delivery contact.")
    return full_address, phone


def remember_address(addresses: AddressService, user_id: str, customer_name: str, address: AddressFields) -> None:
    fields = address.model_copy(update={"full_name": customer_name, "label": "Delivery", "is_default": False})
    try:
        addresses.create(user_id, fields)
    except (StorefrontError, SQLAlchemyError) as e:
        #the order is placed either way
        logger.warning(f"Address save skipped after checkout for {user_id}: {e}")


class CheckoutService:
    """
    Use case: checkout of the whole cart or of a single product.

    1. resolves the delivery address (saved one or manual entry)
    2. places the order, priced from the catalog
    3. saves a manual address to the address book (best effort)
    4. clears the cart, only for whole-cart checkout

    ``cart`` is whatever holds the buyer's lines: the device cart of a
    shopper session, or the stored account cart for API callers.
    """

    def __init__(self, orders: OrderService, addresses: AddressService):
        self.orders = orders
        self.addresses = addresses

    def checkout(
        self,
        user_id: str,
        cart: CartService | StoredCart,
        customer_name: str,
        payment_method: str,
        address: AddressFields | None = None,
        address_id: str | None = None,
        items: List[CartLine] | None = None,
    ) -> Order:
        full_address, _ = resolve_address(self.addresses, user_id, address, address_id)

        whole_cart = items is None
        lines = cart.lines if whole_cart else items

        order = self.orders.place_order(lines, customer_name, full_address, payment_method, user_id)

        if address is not None and not address_id:
            remember_address(self.addresses, user_id, customer_name, address)

        if whole_cart:
            cart.clear_cart()

        return order
