# petalstore/services/cart_service.py
import threading
from decimal import Decimal
from functools import partial
from typing import Callable, List

from sqlalchemy.exc import SQLAlchemyError

from petalstore.domain.errors import PersistenceFailure, ValidationError
from petalstore.domain.schemas import Actor, CartLine, CartOut, Product
from petalstore.repos.cart_repo import CartRepo
from petalstore.utils.settings import CART_SAVE_DELAY_SECONDS
from petalstore.utils.logging import get_logger

logger = get_logger(__name__)


def cart_total(lines: List[CartLine]) -> Decimal:
    return sum((line.price * line.quantity for line in lines), Decimal("0.00"))


def merge_lines(base: List[CartLine], incoming: List[CartLine]) -> List[CartLine]:
    """Fold ``incoming`` into ``base``: same product adds quantities, new products append."""
    merged = [line.model_copy() for line in base]
    index = {line.product_id: line for line in merged}
    for line in incoming:
        existing = index.get(line.product_id)
        if existing:
            existing.quantity += line.quantity
        else:
            copy = line.model_copy()
            merged.append(copy)
            index[copy.product_id] = copy
    return merged


class SaveScheduler:
    """
    Coalesces writes: each schedule() replaces the pending write and restarts
    the delay, so only the last one runs. flush() runs the pending write now.
    """

    def __init__(self, delay: float = CART_SAVE_DELAY_SECONDS):
        self.delay = delay
        self._pending: Callable[[], None] | None = None
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def schedule(self, write: Callable[[], None]) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._pending = write
            self._timer = threading.Timer(self.delay, self.flush)
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            write, self._pending = self._pending, None
        if write is not None:
            write()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending = None


class RemoteCarts:
    """Remote copy of the cart, one record per account."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def get_cart(self, user_id: str) -> CartOut | None:
        with self.session_factory() as db:
            cart = CartRepo(db).get_cart_by_user(user_id)
            if cart is None:
                return None
            lines = [CartLine.model_validate(item) for item in cart.items or []]
            return CartOut(user_id=user_id, items=lines, total=cart_total(lines), updated_at=cart.updated_at)

    def create_cart(self, user_id: str) -> CartOut:
        with self.session_factory() as db:
            cart = CartRepo(db).create_cart(user_id)
            logger.info(f"Created empty cart for user {user_id}")
            return CartOut(user_id=user_id, items=[], total=Decimal("0.00"), updated_at=cart.updated_at)

    def save_cart(self, user_id: str, lines: List[CartLine]) -> CartOut:
        items = [line.model_dump(mode="json") for line in lines]
        with self.session_factory() as db:
            repo = CartRepo(db)
            try:
                cart = repo.upsert_cart(user_id, items)
            except SQLAlchemyError:
                repo.rollback()
                raise
            return CartOut(user_id=user_id, items=list(lines), total=cart_total(lines), updated_at=cart.updated_at)


class StoredCart:
    """An account's remote cart read and cleared in place, for callers with no device cart (HTTP API)."""

    def __init__(self, remote_carts: RemoteCarts, user_id: str):
        self.remote = remote_carts
        self.user_id = user_id

    @property
    def lines(self) -> List[CartLine]:
        try:
            cart = self.remote.get_cart(self.user_id)
        except SQLAlchemyError as e:
            logger.error(f"Error loading cart for {self.user_id}: {e}")
            raise PersistenceFailure("Could not load your cart, please refresh and try again.") from e
        return cart.items if cart else []

    def clear_cart(self) -> None:
        try:
            self.remote.save_cart(self.user_id, [])
        except SQLAlchemyError as e:
            #runs after the order is placed, the stale cart is only an inconvenience
            logger.error(f"Error clearing cart for {self.user_id}: {e}")


class CartService:
    """
    Shopping cart of whoever is using this device.

    Signed out: lines live in the device draft store.
    Signed in: lines live in the account's remote cart, writes are coalesced
    through SaveScheduler and dropped if the account changed before they ran.
    On sign in the device draft is merged into the remote cart.
    """

    def __init__(
        self,
        session_service,
        remote_carts: RemoteCarts,
        draft_store,
        device_id: str = "local",
        save_delay: float = CART_SAVE_DELAY_SECONDS,
    ):
        self.session = session_service
        self.remote = remote_carts
        self.drafts = draft_store
        self.device_id = device_id
        self.scheduler = SaveScheduler(save_delay)

        self._lines: List[CartLine] = []
        #account the in-memory lines belong to, None for a device draft
        self._owner_id: str | None = None
        self._lock = threading.RLock()
        self.is_loading = False

        self.session.on_session_change(self._on_session_change)
        self.session.before_sign_out(self.flush)

    #query
    @property
    def lines(self) -> List[CartLine]:
        with self._lock:
            return [line.model_copy() for line in self._lines]

    @property
    def total(self) -> Decimal:
        with self._lock:
            return cart_total(self._lines)

    def quantity_of(self, product_id: str) -> int:
        with self._lock:
            for line in self._lines:
                if line.product_id == product_id:
                    return line.quantity
        return 0

    #loading
    def load(self) -> List[CartLine]:
        """Pick up the cart for the current actor (remote if signed in, draft otherwise)."""
        actor = self.session.current
        if actor is None:
            self._replace(self.drafts.load(self.device_id), None)
            return self.lines

        self.is_loading = True
        try:
            remote = self._fetch_or_create(actor)
            if remote is None:
                return self.lines

            draft = self.drafts.load(self.device_id)
            self._replace(merge_lines(remote.items, draft), actor.id)

            if draft:
                logger.info(f"Merging {len(draft)} draft lines into cart of {actor.id}")
                self._save_remote(actor.id)
                self.drafts.clear(self.device_id)
        finally:
            self.is_loading = False
        return self.lines

    def _fetch_or_create(self, actor: Actor):
        try:
            remote = self.remote.get_cart(actor.id)
            if not self._still(actor):
                logger.info(f"Discarding cart fetched for {actor.id}, session changed")
                return None
            if remote is None:
                remote = self.remote.create_cart(actor.id)
            return remote
        except SQLAlchemyError as e:
            logger.error(f"Error loading cart for {actor.id}: {e}")
            raise PersistenceFailure("Could not load your cart, please refresh and try again.") from e

    #commands
    def add_to_cart(self, product: Product, quantity: int = 1) -> List[CartLine]:
        if quantity <= 0:
            raise ValidationError("Quantity must be at least 1.")

        with self._lock:
            for line in self._lines:
                if line.product_id == product.id:
                    line.quantity += quantity
                    break
            else:
                self._lines.append(CartLine.from_product(product, quantity))

        logger.info(f"Added {quantity} x {product.id} to cart")
        self._persist()
        return self.lines

    def update_quantity(self, product_id: str, quantity: int) -> List[CartLine]:
        if quantity <= 0:
            return self.remove_from_cart(product_id)

        changed = False
        with self._lock:
            for line in self._lines:
                if line.product_id == product_id and line.quantity != quantity:
                    line.quantity = quantity
                    changed = True

        if changed:
            self._persist()
        return self.lines

    def remove_from_cart(self, product_id: str) -> List[CartLine]:
        with self._lock:
            before = len(self._lines)
            self._lines = [line for line in self._lines if line.product_id != product_id]
            changed = len(self._lines) != before

        if changed:
            self._persist()
        return self.lines

    def clear_cart(self) -> None:
        with self._lock:
            self._lines = []
        self._persist()

    def flush(self) -> None:
        """Write any pending change now (sign out, shutdown)."""
        self.scheduler.flush()

    def close(self) -> None:
        self.flush()
        self.scheduler.cancel()

    #persistence
    def _persist(self) -> None:
        actor = self.session.current
        if actor is None:
            self.drafts.save(self.device_id, self.lines)
            return
        if self.is_loading:
            return
        self.scheduler.schedule(partial(self._save_remote, actor.id))

    def _save_remote(self, owner_id: str) -> None:
        #identity is checked when the write runs, not when it was scheduled
        actor = self.session.current
        if actor is None or actor.id != owner_id:
            logger.warning(f"Dropping cart write for {owner_id}, no longer signed in")
            return

        #owner and snapshot are read together, a load for another account swaps both
        with self._lock:
            if self._owner_id != owner_id:
                logger.warning(f"Dropping cart write for {owner_id}, cart now belongs to {self._owner_id}")
                return
            lines = [line.model_copy() for line in self._lines]

        try:
            self.remote.save_cart(owner_id, lines)
            logger.info(f"Cart saved for {owner_id} ({len(lines)} lines)")
        except SQLAlchemyError as e:
            #next mutation schedules a fresh write with the full state
            logger.error(f"Error saving cart for {owner_id}: {e}")

    def _replace(self, lines: List[CartLine], owner_id: str | None) -> None:
        with self._lock:
            self._lines = lines
            self._owner_id = owner_id

    def _still(self, actor: Actor) -> bool:
        current = self.session.current
        return current is not None and current.id == actor.id

    def _on_session_change(self, actor: Actor | None) -> None:
        if actor is None:
            self.scheduler.cancel()
            self._replace(self.drafts.load(self.device_id), None)
            return
        try:
            self.load()
        except PersistenceFailure as e:
            #sign in still succeeds, the draft stays until the next load
            logger.error(f"Cart not loaded after sign in: {e.message}")
            self._replace([], actor.id)
