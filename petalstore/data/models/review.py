from sqlalchemy import Column, ForeignKey, String, DateTime, Integer, Text, UniqueConstraint

from petalstore.data.database import Base
from petalstore.data.models._columns import new_id, utcnow


class ReviewModel(Base):
    __tablename__ = "reviews"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False)

    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    reviewer_name = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    #one review per purchase, not per product
    __table_args__ = (UniqueConstraint("user_id", "product_id", "order_id", name="u_review_per_order"),)
