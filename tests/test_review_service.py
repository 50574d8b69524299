import pytest

from petalstore.domain.errors import AlreadyReviewed, Forbidden, InvalidRating, ValidationError
from petalstore.domain.schemas import IneligibleReason
from petalstore.services.review_service import average_of, validate_rating


class TestRatingRules:
    @pytest.mark.parametrize("rating", [0, 6, -1, 2.5, "5", None, True])
    def test_invalid_ratings(self, rating):
        with pytest.raises(InvalidRating):
            validate_rating(rating)

    @pytest.mark.parametrize("rating", [1, 3, 5])
    def test_valid_ratings(self, rating):
        assert validate_rating(rating) == rating

    def test_average_of_nothing_is_zero(self):
        assert average_of([]) == 0.0

    def test_average_is_rounded_to_one_decimal(self):
        assert average_of([4, 5]) == 4.5
        assert average_of([5, 4, 4]) == 4.3
        assert average_of([1, 2]) == 1.5


class TestEligibility:
    def test_not_purchased(self, storefront, products, buyer):
        result = storefront.reviews.can_review(buyer.id, products["rose"].id)

        assert result.eligible is False
        assert result.reason == IneligibleReason.NOT_PURCHASED

    def test_pending_order_does_not_count(self, storefront, products, buyer, make_order):
        make_order(buyer.id, products["rose"], status="pending")

        result = storefront.reviews.can_review(buyer.id, products["rose"].id)

        assert result.reason == IneligibleReason.NOT_PURCHASED

    def test_completed_order_makes_product_reviewable(self, storefront, products, buyer, make_order):
        order_id = make_order(buyer.id, products["rose"])

        result = storefront.reviews.can_review(buyer.id, products["rose"].id)

        assert result.eligible is True
        assert result.order_id == order_id

    def test_one_review_per_purchase(self, storefront, products, buyer, make_order):
        first = make_order(buyer.id, products["rose"], age_days=10)
        storefront.reviews.submit_review(buyer.id, products["rose"].id, first, 5, "lovely")

        result = storefront.reviews.can_review(buyer.id, products["rose"].id)
        assert result.eligible is False
        assert result.reason == IneligibleReason.ALREADY_REVIEWED

        second = make_order(buyer.id, products["rose"], age_days=1)
        result = storefront.reviews.can_review(buyer.id, products["rose"].id)
        assert result.eligible is True
        assert result.order_id == second

    def test_oldest_unreviewed_order_is_offered(self, storefront, products, buyer, make_order):
        newer = make_order(buyer.id, products["rose"], age_days=1)
        older = make_order(buyer.id, products["rose"], age_days=5)

        assert storefront.reviews.can_review(buyer.id, products["rose"].id).order_id == older

        storefront.reviews.submit_review(buyer.id, products["rose"].id, older, 4)
        assert storefront.reviews.can_review(buyer.id, products["rose"].id).order_id == newer


class TestSubmitReview:
    def test_submit_and_list(self, storefront, products, buyer, make_order):
        order_id = make_order(buyer.id, products["rose"])

        review = storefront.reviews.submit_review(buyer.id, products["rose"].id, order_id, 4, "nice")

        assert review.user_name == "Ana"
        listed = storefront.reviews.product_reviews(products["rose"].id)
        assert [r.id for r in listed] == [review.id]
        assert storefront.reviews.average_rating(products["rose"].id) == 4.0

    def test_second_review_for_same_order_is_rejected(self, storefront, products, buyer, make_order):
        order_id = make_order(buyer.id, products["rose"])
        storefront.reviews.submit_review(buyer.id, products["rose"].id, order_id, 4)

        with pytest.raises(AlreadyReviewed):
            storefront.reviews.submit_review(buyer.id, products["rose"].id, order_id, 5)

    def test_order_must_be_completed(self, storefront, products, buyer, make_order):
        order_id = make_order(buyer.id, products["rose"], status="processing")

        with pytest.raises(ValidationError):
            storefront.reviews.submit_review(buyer.id, products["rose"].id, order_id, 4)

    def test_order_must_belong_to_reviewer(self, storefront, products, buyer, make_user, make_order):
        other = make_user("user-2")
        order_id = make_order(other.id, products["rose"])

        with pytest.raises(ValidationError):
            storefront.reviews.submit_review(buyer.id, products["rose"].id, order_id, 4)

    def test_invalid_rating_writes_nothing(self, storefront, products, buyer, make_order):
        order_id = make_order(buyer.id, products["rose"])

        with pytest.raises(InvalidRating):
            storefront.reviews.submit_review(buyer.id, products["rose"].id, order_id, 7)

        assert storefront.reviews.product_reviews(products["rose"].id) == []

    def test_average_over_two_reviews(self, storefront, products, buyer, make_user, make_order):
        other = make_user("user-2", name="Ben")
        storefront.reviews.submit_review(buyer.id, products["rose"].id, make_order(buyer.id, products["rose"]), 4)
        storefront.reviews.submit_review(other.id, products["rose"].id, make_order(other.id, products["rose"]), 5)

        assert storefront.reviews.average_rating(products["rose"].id) == 4.5


class TestEditReview:
    def test_author_can_edit(self, storefront, products, buyer, make_order):
        order_id = make_order(buyer.id, products["rose"])
        review = storefront.reviews.submit_review(buyer.id, products["rose"].id, order_id, 2)

        updated = storefront.reviews.update_review(buyer, review.id, 5, "changed my mind")

        assert updated.rating == 5
        assert updated.comment == "changed my mind"

    def test_other_user_cannot_edit(self, storefront, products, buyer, make_user, make_order):
        other = make_user("user-2")
        review = storefront.reviews.submit_review(
            buyer.id, products["rose"].id, make_order(buyer.id, products["rose"]), 2
        )

        with pytest.raises(Forbidden):
            storefront.reviews.update_review(other, review.id, 1)

    def test_admin_can_delete(self, storefront, products, buyer, admin, make_order):
        review = storefront.reviews.submit_review(
            buyer.id, products["rose"].id, make_order(buyer.id, products["rose"]), 1
        )

        storefront.reviews.delete_review(admin, review.id)

        assert storefront.reviews.product_reviews(products["rose"].id) == []
