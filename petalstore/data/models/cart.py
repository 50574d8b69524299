#petalstore/data/models/cart.py
from sqlalchemy import Column, String, DateTime, JSON

from petalstore.data.database import Base
from petalstore.data.models._columns import new_id, utcnow


class CartModel(Base):
    """Remote copy of a shopper's cart, one row per account."""

    __tablename__ = "carts"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, unique=True)

    items = Column(JSON, nullable=False, default=list)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
