# petalstore/services/terms_service.py
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from petalstore.data.models.terms import TermsAcceptanceModel
from petalstore.domain.errors import PersistenceFailure
from petalstore.domain.schemas import TermsAcceptance
from petalstore.repos.terms_repo import TermsRepo
from petalstore.utils.logging import get_logger

logger = get_logger(__name__)

TERMS_VERSION = "1.0"


class TermsService:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    def get_acceptance(self, user_id: str) -> TermsAcceptance | None:
        with self.session_factory() as db:
            row = TermsRepo(db).get_acceptance(user_id)
            return TermsAcceptance.model_validate(row) if row else None

    def has_accepted(self, user_id: str) -> bool:
        return self.get_acceptance(user_id) is not None

    def record_acceptance(self, user_id: str, ip_address: str | None = None) -> TermsAcceptance:
        with self.session_factory() as db:
            repo = TermsRepo(db)
            existing = repo.get_acceptance(user_id)
            if existing:
                return TermsAcceptance.model_validate(existing)
            try:
                row = repo.create_acceptance(
                    TermsAcceptanceModel(user_id=user_id, ip_address=ip_address, version=TERMS_VERSION)
                )
            except IntegrityError:
                repo.rollback()
                return TermsAcceptance.model_validate(repo.get_acceptance(user_id))
            except SQLAlchemyError as e:
                repo.rollback()
                logger.error(f"Error recording terms acceptance for {user_id}: {e}")
                raise PersistenceFailure("Could not record your acceptance of the terms.") from e
            return TermsAcceptance.model_validate(row)
