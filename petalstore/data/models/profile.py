from sqlalchemy import Column, String, DateTime, JSON

from petalstore.data.database import Base
from petalstore.data.models._columns import utcnow


class ProfileModel(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)  # same id as the auth user
    email = Column(String, nullable=False)
    name = Column(String, nullable=False)
    photo_url = Column(String, nullable=True)

    wishlist = Column(JSON, nullable=False, default=list)  # product ids
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class UserRoleModel(Base):
    __tablename__ = "user_roles"

    user_id = Column(String(36), primary_key=True)
    role = Column(String, nullable=False, default="buyer")  # buyer, admin
