# petalstore/repos/cart_repo.py
from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from petalstore.data.models.cart import CartModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart_by_user(self, user_id: str) -> CartModel | None:
        stmt = select(CartModel).where(CartModel.user_id == user_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def create_cart(self, user_id: str) -> CartModel:
        cart = CartModel(user_id=user_id, items=[])
        self.db.add(cart)
        self.db.commit()
        self.db.refresh(cart)
        return cart

    def upsert_cart(self, user_id: str, items: List[Dict[str, Any]]) -> CartModel:
        """Write the whole item list under the account key."""
        cart = self.get_cart_by_user(user_id)
        if cart is None:
            cart = CartModel(user_id=user_id, items=items)
            self.db.add(cart)
        else:
            cart.items = items
        self.db.commit()
        self.db.refresh(cart)
        return cart

    def rollback(self):
        self.db.rollback()
