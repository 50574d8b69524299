# petalstore/repos/review_repo.py
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from petalstore.data.models.review import ReviewModel


class ReviewRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_review(self, review_id: str) -> ReviewModel | None:
        return self.db.get(ReviewModel, review_id)

    def find_review(self, user_id: str, product_id: str, order_id: str) -> ReviewModel | None:
        stmt = select(ReviewModel).where(
            ReviewModel.user_id == user_id,
            ReviewModel.product_id == product_id,
            ReviewModel.order_id == order_id,
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def latest_for_user_product(self, user_id: str, product_id: str) -> ReviewModel | None:
        stmt = (
            select(ReviewModel)
            .where(ReviewModel.user_id == user_id, ReviewModel.product_id == product_id)
            .order_by(ReviewModel.created_at.desc())
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def reviews_for_product(self, product_id: str) -> List[ReviewModel]:
        stmt = (
            select(ReviewModel)
            .where(ReviewModel.product_id == product_id)
            .order_by(ReviewModel.created_at.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def ratings_for_product(self, product_id: str) -> List[int]:
        stmt = select(ReviewModel.rating).where(ReviewModel.product_id == product_id)
        return list(self.db.execute(stmt).scalars().all())

    def create_review(self, review: ReviewModel) -> ReviewModel:
        self.db.add(review)
        self.db.commit()
        self.db.refresh(review)
        return review

    def update_review(self, review: ReviewModel, rating: int, comment: str | None) -> ReviewModel:
        review.rating = rating
        review.comment = comment
        self.db.commit()
        self.db.refresh(review)
        return review

    def delete_review(self, review: ReviewModel):
        self.db.delete(review)
        self.db.commit()

    def rollback(self):
        self.db.rollback()
