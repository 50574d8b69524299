from sqlalchemy import Column, ForeignKey, String, DateTime, Numeric, Integer, Text
from sqlalchemy.orm import relationship

from petalstore.data.database import Base
from petalstore.data.models._columns import new_id, utcnow


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=True, index=True)  # None for guest orders

    customer_name = Column(String, nullable=False)
    address = Column(Text, nullable=False)
    payment_method = Column(String, nullable=False)

    status = Column(String, nullable=False, default="pending")  # pending, processing, completed, cancelled
    total = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
    )


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    #lines outlive a deleted product, they keep their purchase price
    product_id = Column(String(36), ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)  # price at time of order

    order = relationship("OrderModel", back_populates="items")
    product = relationship("ProductModel", lazy="joined")
