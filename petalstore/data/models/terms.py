from sqlalchemy import Column, String, DateTime

from petalstore.data.database import Base
from petalstore.data.models._columns import new_id, utcnow


class TermsAcceptanceModel(Base):
    __tablename__ = "terms_acceptance"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, unique=True)
    ip_address = Column(String, nullable=True)
    version = Column(String, nullable=False, default="1.0")
    accepted_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
