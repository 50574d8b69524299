# petalstore/services/review_service.py
from decimal import Decimal, ROUND_HALF_UP
from typing import List

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from petalstore.data.models.review import ReviewModel
from petalstore.domain.errors import (
    AlreadyReviewed,
    Forbidden,
    InvalidRating,
    NotFound,
    PersistenceFailure,
    ValidationError,
)
from petalstore.domain.schemas import Actor, IneligibleReason, Review, ReviewEligibility, Role
from petalstore.repos.order_repo import OrderRepo
from petalstore.repos.profile_repo import ProfileRepo
from petalstore.repos.review_repo import ReviewRepo
from petalstore.utils.logging import get_logger

logger = get_logger(__name__)


def validate_rating(rating) -> int:
    #bool is an int subclass, True is not a rating
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise InvalidRating(rating)
    return rating


def average_of(ratings: List[int]) -> float:
    """Mean rounded to one decimal, 0 when there are no ratings."""
    if not ratings:
        return 0.0
    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


class ReviewService:
    """
    Reviews are bound to a purchase: a shopper may review a product once per
    completed order that contains it.
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory

    #query
    def can_review(self, user_id: str, product_id: str) -> ReviewEligibility:
        with self.session_factory() as db:
            return self._eligibility(db, user_id, product_id)

    def _eligibility(self, db, user_id: str, product_id: str) -> ReviewEligibility:
        orders = OrderRepo(db)
        reviews = ReviewRepo(db)

        #oldest completed order with the product and no review yet wins
        purchased = False
        for order_id in orders.completed_order_ids(user_id):
            if not orders.order_contains(order_id, product_id):
                continue
            purchased = True
            if reviews.find_review(user_id, product_id, order_id):
                continue
            return ReviewEligibility(eligible=True, order_id=order_id)

        if purchased:
            return ReviewEligibility(
                eligible=False,
                reason=IneligibleReason.ALREADY_REVIEWED,
                message="You already reviewed this product.",
            )
        return ReviewEligibility(
            eligible=False,
            reason=IneligibleReason.NOT_PURCHASED,
            message="You can review a product once an order containing it is completed.",
        )

    def product_reviews(self, product_id: str) -> List[Review]:
        with self.session_factory() as db:
            return [Review.model_validate(r) for r in ReviewRepo(db).reviews_for_product(product_id)]

    def user_review_for_product(self, user_id: str, product_id: str) -> Review | None:
        with self.session_factory() as db:
            review = ReviewRepo(db).latest_for_user_product(user_id, product_id)
            return Review.model_validate(review) if review else None

    def average_rating(self, product_id: str) -> float:
        with self.session_factory() as db:
            return average_of(ReviewRepo(db).ratings_for_product(product_id))

    #commands
    def submit_review(
        self,
        user_id: str,
        product_id: str,
        order_id: str,
        rating: int,
        comment: str | None = None,
    ) -> Review:
        rating = validate_rating(rating)

        with self.session_factory() as db:
            orders = OrderRepo(db)
            repo = ReviewRepo(db)

            #re-check at write time, the caller's check may be stale
            order = orders.get_order(order_id)
            if (
                order is None
                or order.user_id != user_id
                or order.status != "completed"
                or not orders.order_contains(order_id, product_id)
            ):
                raise ValidationError("This order does not allow a review of that product.")
            if repo.find_review(user_id, product_id, order_id):
                raise AlreadyReviewed()

            profile = ProfileRepo(db).get_profile(user_id)
            review = ReviewModel(
                user_id=user_id,
                product_id=product_id,
                order_id=order_id,
                rating=rating,
                comment=comment or None,
                reviewer_name=profile.name if profile else None,
            )
            try:
                created = repo.create_review(review)
            except IntegrityError as e:
                #lost a race with a concurrent submit for the same purchase
                repo.rollback()
                raise AlreadyReviewed() from e
            except SQLAlchemyError as e:
                repo.rollback()
                logger.error(f"Error submitting review for {product_id}: {e}")
                raise PersistenceFailure("Failed to submit your review, please try again.") from e

            logger.info(f"Review {created.id} submitted for product {product_id} (order {order_id})")
            return Review.model_validate(created)

    def update_review(self, actor: Actor, review_id: str, rating: int, comment: str | None = None) -> Review:
        rating = validate_rating(rating)

        with self.session_factory() as db:
            repo = ReviewRepo(db)
            review = repo.get_review(review_id)
            if not review:
                raise NotFound("Review not found.")
            if review.user_id != actor.id:
                raise Forbidden("Only the author can edit this review.")

            try:
                updated = repo.update_review(review, rating, comment or None)
            except SQLAlchemyError as e:
                repo.rollback()
                logger.error(f"Error updating review {review_id}: {e}")
                raise PersistenceFailure("Failed to update your review, please try again.") from e
            return Review.model_validate(updated)

    def delete_review(self, actor: Actor, review_id: str) -> None:
        with self.session_factory() as db:
            repo = ReviewRepo(db)
            review = repo.get_review(review_id)
            if not review:
                raise NotFound("Review not found.")
            if review.user_id != actor.id and actor.role != Role.ADMIN:
                raise Forbidden("Only the author can delete this review.")

            try:
                repo.delete_review(review)
            except SQLAlchemyError as e:
                repo.rollback()
                logger.error(f"Error deleting review {review_id}: {e}")
                raise PersistenceFailure("Failed to delete the review, please try again.") from e
            logger.info(f"Review {review_id} deleted by {actor.id}")
