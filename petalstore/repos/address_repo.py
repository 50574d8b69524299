# petalstore/repos/address_repo.py
from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from petalstore.data.models.address import AddressModel


class AddressRepo:
    def __init__(self, db: Session):
        self.db = db

    def list_addresses(self, user_id: str) -> List[AddressModel]:
        stmt = (
            select(AddressModel)
            .where(AddressModel.user_id == user_id)
            .order_by(AddressModel.created_at.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def get_address(self, address_id: str, user_id: str) -> AddressModel | None:
        stmt = select(AddressModel).where(
            AddressModel.id == address_id,
            AddressModel.user_id == user_id,
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get_default_address(self, user_id: str) -> AddressModel | None:
        stmt = select(AddressModel).where(
            AddressModel.user_id == user_id,
            AddressModel.is_default.is_(True),
        )
        return self.db.execute(stmt.limit(1)).scalar_one_or_none()

    def create_address(self, address: AddressModel) -> AddressModel:
        self.db.add(address)
        self.db.commit()
        self.db.refresh(address)
        return address

    def update_address(self, address: AddressModel, data: dict) -> AddressModel:
        for key, value in data.items():
            setattr(address, key, value)
        self.db.commit()
        self.db.refresh(address)
        return address

    def delete_address(self, address_id: str, user_id: str) -> bool:
        address = self.get_address(address_id, user_id)
        if not address:
            return False
        self.db.delete(address)
        self.db.commit()
        return True

    def clear_defaults(self, user_id: str):
        """Unset every default for the owner without committing."""
        stmt = (
            update(AddressModel)
            .where(AddressModel.user_id == user_id, AddressModel.is_default.is_(True))
            .values(is_default=False)
            .execution_options(synchronize_session="fetch")
        )
        self.db.execute(stmt)

    def lock_addresses(self, user_id: str) -> List[AddressModel]:
        stmt = select(AddressModel).where(AddressModel.user_id == user_id).with_for_update()
        return list(self.db.execute(stmt).scalars().all())

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
