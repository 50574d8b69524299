# petalstore/repos/profile_repo.py
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from petalstore.data.models.profile import ProfileModel, UserRoleModel


class ProfileRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_profile(self, user_id: str, for_update: bool = False) -> ProfileModel | None:
        stmt = select(ProfileModel).where(ProfileModel.id == user_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def create_profile(self, profile: ProfileModel) -> ProfileModel:
        self.db.add(profile)
        self.db.commit()
        self.db.refresh(profile)
        return profile

    def update_profile(self, user_id: str, data: dict) -> ProfileModel | None:
        profile = self.get_profile(user_id)
        if profile:
            for key, value in data.items():
                setattr(profile, key, value)
            self.db.commit()
        return profile

    def save_wishlist(self, profile: ProfileModel, wishlist: List[str]):
        #new list object, JSON columns do not track in-place mutation
        profile.wishlist = list(wishlist)
        self.db.commit()

    def get_role(self, user_id: str) -> str | None:
        row = self.db.get(UserRoleModel, user_id)
        return row.role if row else None

    def set_role(self, user_id: str, role: str):
        row = self.db.get(UserRoleModel, user_id)
        if row is None:
            self.db.add(UserRoleModel(user_id=user_id, role=role))
        else:
            row.role = role
        self.db.commit()

    def rollback(self):
        self.db.rollback()
