# petalstore/services/order_service.py
from typing import Dict, List, Set

from sqlalchemy.exc import SQLAlchemyError

from petalstore.data.models.order import OrderModel, OrderItemModel
from petalstore.domain.errors import (
    Forbidden,
    InvalidTransition,
    NotFound,
    OrderPlacementFailed,
    PersistenceFailure,
    ValidationError,
)
from petalstore.domain.schemas import Actor, CartLine, Order, OrderStatus, Product, Role
from petalstore.repos.order_repo import OrderRepo
from petalstore.repos.product_repo import ProductRepo
from petalstore.services.cart_service import cart_total
from petalstore.utils.logging import get_logger

logger = get_logger(__name__)

#completed and cancelled are terminal
TRANSITIONS: Dict[OrderStatus, Set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return OrderStatus(target) in TRANSITIONS[OrderStatus(current)]


def to_order(order: OrderModel, lines: List[CartLine] | None = None) -> Order:
    if lines is None:
        lines = [_line_from_item(item) for item in order.items]
    return Order(
        id=order.id,
        user_id=order.user_id,
        lines=lines,
        total=order.total,
        status=order.status,
        customer_name=order.customer_name,
        address=order.address,
        payment_method=order.payment_method,
        created_at=order.created_at,
    )


def _line_from_item(item: OrderItemModel) -> CartLine:
    product = item.product
    return CartLine(
        product_id=item.product_id or "",
        name=product.name if product else "Unavailable product",
        price=item.price,  # price at purchase, not the current catalog price
        image=product.image if product else "",
        category=product.category if product else None,
        quantity=item.quantity,
    )


class OrderService:
    """
    Order placement and order status.

    place_order prices cart lines from the catalog and freezes those prices
    on the order. Order and lines are written together, stock decrements
    afterwards are best effort.
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory

    #commands
    def place_order(
        self,
        lines: List[CartLine],
        customer_name: str,
        address: str,
        payment_method: str,
        user_id: str | None = None,
    ) -> Order:
        if not lines:
            raise ValidationError("There are no items to check out.")
        if not (customer_name or "").strip():
            raise ValidationError("Please enter the recipient's name.")
        if not (address or "").strip():
            raise ValidationError("Please enter a delivery address.")
        if not (payment_method or "").strip():
            raise ValidationError("Please choose a payment method.")

        with self.session_factory() as db:
            products = ProductRepo(db)
            lines = self._priced_lines(products, lines)
            total = cart_total(lines)

            repo = OrderRepo(db)
            order = OrderModel(
                user_id=user_id,
                customer_name=customer_name.strip(),
                address=address.strip(),
                payment_method=payment_method.strip(),
                status=OrderStatus.PENDING.value,
                total=total,
            )
            items = [
                OrderItemModel(product_id=line.product_id, quantity=line.quantity, price=line.price)
                for line in lines
            ]

            try:
                created = repo.create_order(order, items)
            except SQLAlchemyError as e:
                repo.rollback()
                logger.error(f"Error creating order for {user_id or 'guest'}: {e}")
                raise OrderPlacementFailed("Failed to place your order, please try again.") from e

            logger.info(f"Order {created.id} created, total {total}, {len(lines)} lines")

            for line in lines:
                self._decrement_stock(products, line)

            return to_order(created, lines)

    def _priced_lines(self, products: ProductRepo, lines: List[CartLine]) -> List[CartLine]:
        """Rebuilds each line from the catalog; only product id and quantity come from the caller."""
        found = {p.id: p for p in products.get_products({line.product_id for line in lines})}
        missing = [line.product_id for line in lines if line.product_id not in found]
        if missing:
            logger.warning(f"Checkout refused, unknown products {missing}")
            raise ValidationError("Some items in your cart are no longer available.")
        return [
            CartLine.from_product(Product.model_validate(found[line.product_id]), line.quantity)
            for line in lines
        ]

    def _decrement_stock(self, products: ProductRepo, line: CartLine) -> None:
        """Per-line and non-fatal: a failure here never undoes the order."""
        try:
            updated = products.decrement_stock(line.product_id, line.quantity)
        except SQLAlchemyError as e:
            products.rollback()
            logger.warning(f"Error updating stock for product {line.product_id}: {e}")
            return
        if updated == 0:
            logger.warning(f"Product {line.product_id} not found, stock not updated")

    def update_status(self, actor: Actor | None, order_id: str, status: OrderStatus) -> Order:
        if actor is None or actor.role != Role.ADMIN:
            raise Forbidden("Only an administrator can change an order's status.")

        target = OrderStatus(status)
        with self.session_factory() as db:
            repo = OrderRepo(db)
            order = repo.get_order(order_id)
            if not order:
                raise NotFound("Order not found.")

            current = OrderStatus(order.status)
            if current == target:
                return to_order(order)
            if not can_transition(current, target):
                raise InvalidTransition(current.value, target.value)

            try:
                repo.update_order_status(order_id, target.value)
            except SQLAlchemyError as e:
                repo.rollback()
                logger.error(f"Error updating order {order_id} status: {e}")
                raise PersistenceFailure("Failed to update the order status, please try again.") from e

            logger.info(f"Order {order_id}: {current.value} -> {target.value}")

        #the update returns only the header, read lines again
        return self.get_order(order_id)

    #query
    def get_order(self, order_id: str) -> Order:
        with self.session_factory() as db:
            order = OrderRepo(db).get_order(order_id)
            if not order:
                raise NotFound("Order not found.")
            return to_order(order)

    def list_orders(self, user_id: str | None = None) -> List[Order]:
        """Newest first; all orders when ``user_id`` is None (admin view)."""
        with self.session_factory() as db:
            return [to_order(order) for order in OrderRepo(db).list_orders(user_id)]
