import threading
from decimal import Decimal
from unittest.mock import MagicMock, PropertyMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from petalstore.domain.errors import ValidationError
from petalstore.domain.schemas import CartLine
from petalstore.services.cart_service import SaveScheduler, cart_total, merge_lines


def _line(product_id, quantity, price="10.00"):
    return CartLine(product_id=product_id, name=product_id, price=Decimal(price), quantity=quantity)


class TestCartHelpers:
    def test_total_sums_price_times_quantity(self):
        lines = [_line("a", 2, "100.00"), _line("b", 3, "12.50")]
        assert cart_total(lines) == Decimal("237.50")

    def test_total_of_empty_cart_is_zero(self):
        assert cart_total([]) == Decimal("0")

    def test_merge_adds_quantities_for_same_product(self):
        merged = merge_lines([_line("a", 1), _line("b", 2)], [_line("a", 2), _line("c", 1)])

        assert [(line.product_id, line.quantity) for line in merged] == [("a", 3), ("b", 2), ("c", 1)]

    def test_merge_does_not_touch_inputs(self):
        base = [_line("a", 1)]
        merge_lines(base, [_line("a", 5)])
        assert base[0].quantity == 1


class TestSaveScheduler:
    def test_only_last_scheduled_write_runs(self):
        calls = []
        scheduler = SaveScheduler(delay=60)

        scheduler.schedule(lambda: calls.append("first"))
        scheduler.schedule(lambda: calls.append("second"))
        scheduler.flush()

        assert calls == ["second"]
        assert not scheduler.pending

    def test_write_runs_after_delay(self):
        done = threading.Event()
        scheduler = SaveScheduler(delay=0.05)

        scheduler.schedule(done.set)

        assert done.wait(2)

    def test_cancel_drops_pending_write(self):
        calls = []
        scheduler = SaveScheduler(delay=60)

        scheduler.schedule(lambda: calls.append("x"))
        scheduler.cancel()
        scheduler.flush()

        assert calls == []


class TestGuestCart:
    def test_add_then_add_again_sums_quantity(self, shopper, products):
        shopper.add_to_cart(products["rose"], 1)
        shopper.add_to_cart(products["rose"], 2)

        assert shopper.cart.quantity_of(products["rose"].id) == 3
        assert len(shopper.cart.lines) == 1

    def test_add_rejects_non_positive_quantity(self, shopper, products):
        with pytest.raises(ValidationError):
            shopper.add_to_cart(products["rose"], 0)

    def test_line_snapshots_product(self, shopper, products):
        shopper.add_to_cart(products["tulip"], 2)

        line = shopper.cart.lines[0]
        assert line.name == "Tulip Box"
        assert line.price == Decimal("50.00")
        assert line.category == "boxes"

    def test_remove_is_idempotent(self, shopper, products):
        shopper.add_to_cart(products["rose"], 1)

        shopper.cart.remove_from_cart(products["rose"].id)
        shopper.cart.remove_from_cart(products["rose"].id)

        assert shopper.cart.lines == []

    def test_update_to_zero_removes_line(self, shopper, products):
        shopper.add_to_cart(products["rose"], 2)

        shopper.cart.update_quantity(products["rose"].id, 0)

        assert shopper.cart.quantity_of(products["rose"].id) == 0

    def test_guest_lines_go_to_device_draft(self, shopper, products, draft_store):
        shopper.add_to_cart(products["rose"], 2)

        draft = draft_store.load("phone")
        assert [(line.product_id, line.quantity) for line in draft] == [(products["rose"].id, 2)]

    def test_total(self, shopper, products):
        shopper.add_to_cart(products["rose"], 2)
        shopper.add_to_cart(products["tulip"], 1)

        assert shopper.cart.total == Decimal("250.00")


class TestSignedInCart:
    def test_draft_merges_into_remote_cart_on_sign_in(self, storefront, shopper, products, buyer, draft_store):
        storefront.carts.save_cart(buyer.id, [CartLine.from_product(products["rose"], 1)])
        shopper.add_to_cart(products["rose"], 2)
        shopper.add_to_cart(products["tulip"], 1)

        shopper.sign_in(buyer.email, "secret")

        assert shopper.cart.quantity_of(products["rose"].id) == 3
        assert shopper.cart.quantity_of(products["tulip"].id) == 1
        remote = storefront.carts.get_cart(buyer.id)
        assert {line.product_id: line.quantity for line in remote.items} == {
            products["rose"].id: 3,
            products["tulip"].id: 1,
        }
        assert draft_store.load("phone") == []

    def test_sign_in_creates_missing_remote_cart(self, storefront, shopper, buyer):
        shopper.sign_in(buyer.email, "secret")

        remote = storefront.carts.get_cart(buyer.id)
        assert remote is not None
        assert remote.items == []

    def test_writes_are_coalesced_until_flush(self, storefront, shopper, products, buyer):
        shopper.sign_in(buyer.email, "secret")
        save = MagicMock(wraps=storefront.carts.save_cart)
        storefront.carts.save_cart = save

        shopper.add_to_cart(products["rose"], 1)
        shopper.add_to_cart(products["rose"], 1)
        shopper.add_to_cart(products["tulip"], 1)
        assert save.call_count == 0

        shopper.cart.flush()

        assert save.call_count == 1
        remote = storefront.carts.get_cart(buyer.id)
        assert {line.product_id: line.quantity for line in remote.items} == {
            products["rose"].id: 2,
            products["tulip"].id: 1,
        }

    def test_debounced_write_lands_after_delay(self, storefront, products, buyer):
        session = storefront.open_session(device_id="laptop", save_delay=0.05)
        session.sign_in(buyer.email, "secret")
        saved = threading.Event()
        original = storefront.carts.save_cart

        def save_cart(user_id, lines):
            result = original(user_id, lines)
            saved.set()
            return result

        storefront.carts.save_cart = save_cart
        session.add_to_cart(products["rose"], 2)

        assert saved.wait(2)
        assert storefront.carts.get_cart(buyer.id).items[0].quantity == 2
        session.close()

    def test_sign_out_flushes_pending_write(self, storefront, shopper, products, buyer):
        shopper.sign_in(buyer.email, "secret")
        shopper.add_to_cart(products["rose"], 2)

        shopper.sign_out()

        remote = storefront.carts.get_cart(buyer.id)
        assert remote.items[0].quantity == 2
        assert shopper.cart.lines == []

    def test_write_for_previous_account_is_dropped(self, storefront, shopper, products, buyer, make_user):
        other = make_user("user-2", name="Ben")
        shopper.sign_in(buyer.email, "secret")
        shopper.cart._lines = [CartLine.from_product(products["rose"], 5)]

        shopper.session._set(None, None)
        shopper.sign_in(other.email, "secret")
        shopper.cart._save_remote(buyer.id)

        remote = storefront.carts.get_cart(buyer.id)
        assert remote.items == []

    def test_pending_write_never_carries_next_accounts_lines(self, storefront, shopper, products, buyer, make_user):
        other = make_user("user-2", name="Ben")
        storefront.carts.save_cart(other.id, [CartLine.from_product(products["tulip"], 4)])
        shopper.sign_in(buyer.email, "secret")
        shopper.add_to_cart(products["rose"], 1)

        shopper.sign_in(other.email, "secret")
        #the timer thread still sees the first account while the second account's cart is already loaded
        with patch.object(type(shopper.session), "current", new_callable=PropertyMock, return_value=buyer):
            shopper.cart.flush()

        assert storefront.carts.get_cart(buyer.id).items == []
        assert shopper.cart.quantity_of(products["tulip"].id) == 4

    def test_failed_remote_save_is_logged_not_raised(self, storefront, shopper, products, buyer):
        shopper.sign_in(buyer.email, "secret")
        storefront.carts.save_cart = MagicMock(side_effect=OperationalError("UPDATE carts", {}, Exception("down")))

        shopper.add_to_cart(products["rose"], 1)
        shopper.cart.flush()

        assert shopper.cart.quantity_of(products["rose"].id) == 1
