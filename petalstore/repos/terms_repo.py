# petalstore/repos/terms_repo.py
from sqlalchemy import select
from sqlalchemy.orm import Session

from petalstore.data.models.terms import TermsAcceptanceModel


class TermsRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_acceptance(self, user_id: str) -> TermsAcceptanceModel | None:
        stmt = select(TermsAcceptanceModel).where(TermsAcceptanceModel.user_id == user_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def create_acceptance(self, acceptance: TermsAcceptanceModel) -> TermsAcceptanceModel:
        self.db.add(acceptance)
        self.db.commit()
        self.db.refresh(acceptance)
        return acceptance

    def rollback(self):
        self.db.rollback()
