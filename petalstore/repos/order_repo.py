# petalstore/repos/order_repo.py
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from petalstore.data.models.order import OrderModel, OrderItemModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel, items: List[OrderItemModel]) -> OrderModel:
        #header and lines go in one commit, either both exist or neither
        self.db.add(order)
        self.db.flush()
        for item in items:
            item.order_id = order.id
            self.db.add(item)
        self.db.commit()
        self.db.refresh(order)
        return order

    def get_order(self, order_id: str) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def list_orders(self, user_id: str | None = None) -> List[OrderModel]:
        stmt = select(OrderModel).order_by(OrderModel.created_at.desc())
        if user_id is not None:
            stmt = stmt.where(OrderModel.user_id == user_id)
        return list(self.db.execute(stmt).scalars().all())

    def completed_order_ids(self, user_id: str) -> List[str]:
        stmt = (
            select(OrderModel.id)
            .where(OrderModel.user_id == user_id, OrderModel.status == "completed")
            .order_by(OrderModel.created_at)
        )
        return list(self.db.execute(stmt).scalars().all())

    def order_contains(self, order_id: str, product_id: str) -> bool:
        stmt = select(OrderItemModel.id).where(
            OrderItemModel.order_id == order_id,
            OrderItemModel.product_id == product_id,
        )
        return self.db.execute(stmt.limit(1)).first() is not None

    def update_order_status(self, order_id: str, status: str) -> OrderModel | None:
        order = self.get_order(order_id)
        if order:
            order.status = status
            self.db.commit()
        return order

    def rollback(self):
        self.db.rollback()
