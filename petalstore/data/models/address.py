from sqlalchemy import Column, String, DateTime, Boolean

from petalstore.data.database import Base
from petalstore.data.models._columns import new_id, utcnow


class AddressModel(Base):
    __tablename__ = "addresses"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)

    full_name = Column(String, nullable=False)
    phone_number = Column(String, nullable=False)
    region = Column(String, nullable=False, default="")
    province = Column(String, nullable=False, default="")
    city = Column(String, nullable=False, default="")
    barangay = Column(String, nullable=False, default="")
    postal_code = Column(String, nullable=False, default="")
    street_address = Column(String, nullable=False, default="")
    label = Column(String, nullable=False, default="Home")
    is_default = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
