# petalstore/services/address_service.py
from typing import List

from sqlalchemy.exc import SQLAlchemyError

from petalstore.data.models.address import AddressModel
from petalstore.domain.errors import NotFound, PersistenceFailure, ValidationError
from petalstore.domain.schemas import Address, AddressFields, AddressUpdate
from petalstore.repos.address_repo import AddressRepo
from petalstore.utils.logging import get_logger

logger = get_logger(__name__)


class AddressService:
    """Owner-scoped address book; at most one default address per owner."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def list_addresses(self, user_id: str) -> List[Address]:
        with self.session_factory() as db:
            return [Address.model_validate(a) for a in AddressRepo(db).list_addresses(user_id)]

    def get_address(self, user_id: str, address_id: str) -> Address:
        with self.session_factory() as db:
            address = AddressRepo(db).get_address(address_id, user_id)
            if not address:
                raise NotFound("Address not found.")
            return Address.model_validate(address)

    def get_default(self, user_id: str) -> Address | None:
        with self.session_factory() as db:
            address = AddressRepo(db).get_default_address(user_id)
            return Address.model_validate(address) if address else None

    def create(self, user_id: str, fields: AddressFields) -> Address:
        if not fields.full_name.strip() or not fields.phone_number.strip():
            raise ValidationError("Recipient name and phone number are required.")

        with self.session_factory() as db:
            repo = AddressRepo(db)
            try:
                if fields.is_default:
                    repo.lock_addresses(user_id)
                    repo.clear_defaults(user_id)
                created = repo.create_address(AddressModel(user_id=user_id, **fields.model_dump()))
            except SQLAlchemyError as e:
                repo.rollback()
                logger.error(f"Error creating address for {user_id}: {e}")
                raise PersistenceFailure("Failed to save the address, please try again.") from e
            return Address.model_validate(created)

    def update(self, user_id: str, address_id: str, changes: AddressUpdate) -> Address:
        with self.session_factory() as db:
            repo = AddressRepo(db)
            address = repo.get_address(address_id, user_id)
            if not address:
                raise NotFound("Address not found.")
            try:
                updated = repo.update_address(address, changes.model_dump(exclude_unset=True))
            except SQLAlchemyError as e:
                repo.rollback()
                logger.error(f"Error updating address {address_id}: {e}")
                raise PersistenceFailure("Failed to update the address, please try again.") from e
            return Address.model_validate(updated)

    def delete(self, user_id: str, address_id: str) -> None:
        with self.session_factory() as db:
            repo = AddressRepo(db)
            try:
                deleted = repo.delete_address(address_id, user_id)
            except SQLAlchemyError as e:
                repo.rollback()
                logger.error(f"Error deleting address {address_id}: {e}")
                raise PersistenceFailure("Failed to delete the address, please try again.") from e
            if not deleted:
                raise NotFound("Address not found.")

    def set_default(self, user_id: str, address_id: str) -> Address:
        """Clear the old default and set the new one in a single commit."""
        with self.session_factory() as db:
            repo = AddressRepo(db)
            try:
                repo.lock_addresses(user_id)
                address = repo.get_address(address_id, user_id)
                if not address:
                    repo.rollback()
                    raise NotFound("Address not found.")
                repo.clear_defaults(user_id)
                address.is_default = True
                repo.commit()
            except SQLAlchemyError as e:
                repo.rollback()
                logger.error(f"Error setting default address {address_id}: {e}")
                raise PersistenceFailure("Failed to set the default address, please try again.") from e

            logger.info(f"Default address of {user_id} is now {address_id}")
            return Address.model_validate(address)
