import os

#module-level engine stays off the network, retries do not sleep
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENV", "test")
os.environ.setdefault("REMOTE_RETRY_WAIT_SECONDS", "0")

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import requests
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import petalstore.data.models  # noqa: F401
from petalstore.data.database import Base, build_engine
from petalstore.data.models import OrderItemModel, OrderModel, ProductModel, ProfileModel, UserRoleModel
from petalstore.domain.schemas import Actor, Product, Role
from petalstore.services.auth_client import AuthClient, AuthSession, AuthUser
from petalstore.services.change_feed import InMemoryChangeFeed
from petalstore.services.draft_store import InMemoryDraftStore
from petalstore.services.storage_client import StorageClient
from petalstore.storefront import Storefront


@pytest.fixture()
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def products(session_factory):
    """Rose: price 100, stock 3. Tulip: price 50, stock 10."""
    with session_factory() as db:
        rose = ProductModel(
            name="Rose Bouquet",
            description="Red roses",
            price=Decimal("100.00"),
            category="bouquets",
            stock=3,
            featured=True,
        )
        tulip = ProductModel(
            name="Tulip Box",
            description="Mixed tulips",
            price=Decimal("50.00"),
            category="boxes",
            stock=10,
        )
        db.add_all([rose, tulip])
        db.commit()
        return {
            "rose": Product.model_validate(rose),
            "tulip": Product.model_validate(tulip),
        }


@pytest.fixture()
def make_user(session_factory):
    def _make(user_id: str, name: str = "Ana", role: str = "buyer", email: str | None = None) -> Actor:
        email = email or f"{user_id}@example.com"
        with session_factory() as db:
            db.add(ProfileModel(id=user_id, email=email, name=name, wishlist=[]))
            db.add(UserRoleModel(user_id=user_id, role=role))
            db.commit()
        return Actor(id=user_id, email=email, name=name, role=Role(role))

    return _make


@pytest.fixture()
def buyer(make_user):
    return make_user("user-1", name="Ana")


@pytest.fixture()
def admin(make_user):
    return make_user("admin-1", name="Store Admin", role="admin")


@pytest.fixture()
def make_order(session_factory):
    """Writes an order directly; ``age_days`` pushes created_at into the past."""

    def _make(user_id, product, quantity=1, status="completed", age_days=0):
        with session_factory() as db:
            order = OrderModel(
                user_id=user_id,
                customer_name="Ana",
                address="1 Main St",
                payment_method="cod",
                status=status,
                total=product.price * quantity,
                created_at=datetime.now(timezone.utc) - timedelta(days=age_days),
            )
            order.items.append(OrderItemModel(product_id=product.id, quantity=quantity, price=product.price))
            db.add(order)
            db.commit()
            return order.id

    return _make


@pytest.fixture()
def auth_client():
    """Auth double: any password works, the user id is the email local part, tokens are "token-<id>"."""
    client = MagicMock(spec=AuthClient)

    def sign_in(email, password):
        user = AuthUser(id=email.split("@")[0], email=email)
        return AuthSession(access_token=f"token-{user.id}", user=user)

    def get_user(access_token):
        if not access_token.startswith("token-"):
            raise requests.HTTPError(response=MagicMock(status_code=401))
        user_id = access_token[len("token-"):]
        return AuthUser(id=user_id, email=f"{user_id}@example.com")

    client.sign_in_with_password.side_effect = sign_in
    client.get_user.side_effect = get_user
    client.sign_out.return_value = None
    return client


@pytest.fixture()
def storage_client():
    client = MagicMock(spec=StorageClient)
    client.upload.side_effect = lambda path, content, content_type="", access_token=None: (
        f"http://storage.test/object/public/profiles/{path}"
    )
    client.path_from_url.side_effect = lambda url: "/".join(url.split("/")[-2:])
    return client


@pytest.fixture()
def change_feed():
    return InMemoryChangeFeed()


@pytest.fixture()
def draft_store():
    return InMemoryDraftStore()


@pytest.fixture()
def storefront(session_factory, auth_client, storage_client, change_feed, draft_store):
    return Storefront(
        session_factory=session_factory,
        auth_client=auth_client,
        storage=storage_client,
        change_feed=change_feed,
        draft_store=draft_store,
    )


@pytest.fixture()
def shopper(storefront):
    """Guest on device "phone"; writes are saved only on flush."""
    session = storefront.open_session(device_id="phone", save_delay=60)
    yield session
    session.close()
