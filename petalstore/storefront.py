# petalstore/storefront.py
"""Composition root.

Storefront wires the shared services once; ShopperSession holds the
per-device state (who is signed in, the cart) on top of it.
"""
from typing import List

from petalstore.data.database import SessionLocal
from petalstore.domain.schemas import (
    AddressFields,
    CartLine,
    ChatMessage,
    Order,
    Product,
    Profile,
    Review,
    ReviewEligibility,
    SenderRole,
    TermsAcceptance,
)
from petalstore.services.address_service import AddressService
from petalstore.services.auth_client import AuthClient
from petalstore.services.cart_service import CartService, RemoteCarts
from petalstore.services.change_feed import InMemoryChangeFeed
from petalstore.services.chat_service import ChatService, MessageThread
from petalstore.services.checkout_service import CheckoutService
from petalstore.services.draft_store import InMemoryDraftStore
from petalstore.services.order_service import OrderService
from petalstore.services.product_service import ProductService
from petalstore.services.profile_service import ProfileService
from petalstore.services.review_service import ReviewService
from petalstore.services.session_service import SessionService
from petalstore.services.storage_client import StorageClient
from petalstore.services.terms_service import TermsService
from petalstore.services.wishlist_service import WishlistService
from petalstore.utils.settings import CART_SAVE_DELAY_SECONDS


class Storefront:
    def __init__(
        self,
        session_factory=SessionLocal,
        auth_client: AuthClient | None = None,
        storage: StorageClient | None = None,
        change_feed=None,
        draft_store=None,
    ):
        self.session_factory = session_factory
        self.auth = auth_client or AuthClient()
        self.storage = storage or StorageClient()
        self.change_feed = change_feed or InMemoryChangeFeed()
        self.draft_store = draft_store or InMemoryDraftStore()

        self.products = ProductService(session_factory)
        self.orders = OrderService(session_factory)
        self.reviews = ReviewService(session_factory)
        self.wishlist = WishlistService(session_factory, self.products)
        self.addresses = AddressService(session_factory)
        self.chat = ChatService(session_factory, self.change_feed)
        self.profiles = ProfileService(session_factory, self.auth, self.storage)
        self.terms = TermsService(session_factory)
        self.carts = RemoteCarts(session_factory)
        self.checkout = CheckoutService(self.orders, self.addresses)

    def open_session(self, device_id: str = "local", save_delay: float = CART_SAVE_DELAY_SECONDS) -> "ShopperSession":
        return ShopperSession(self, device_id, save_delay)


class ShopperSession:
    """What one device sees: current actor, cart and the actions gated on sign in."""

    def __init__(self, storefront: Storefront, device_id: str = "local", save_delay: float = CART_SAVE_DELAY_SECONDS):
        self.storefront = storefront
        self.session = SessionService(storefront.auth, storefront.session_factory)
        self.cart = CartService(
            self.session,
            storefront.carts,
            storefront.draft_store,
            device_id=device_id,
            save_delay=save_delay,
        )
        self.cart.load()

    #session
    def sign_in(self, email: str, password: str):
        return self.session.sign_in(email, password)

    def sign_out(self) -> None:
        self.session.sign_out()

    def refresh(self):
        return self.session.refresh()

    #profile
    def update_name(self, name: str) -> Profile:
        actor = self.session.require_actor("edit your profile")
        profile = self.storefront.profiles.update_name(actor.id, self.session.access_token, name)
        self.session.set_actor_name(profile.name)
        return profile

    def accept_terms(self, ip_address: str | None = None) -> TermsAcceptance:
        actor = self.session.require_actor("accept the terms")
        return self.storefront.terms.record_acceptance(actor.id, ip_address)

    #cart / checkout
    def add_to_cart(self, product: Product, quantity: int = 1) -> List[CartLine]:
        return self.cart.add_to_cart(product, quantity)

    def checkout(
        self,
        customer_name: str,
        payment_method: str,
        address: AddressFields | None = None,
        address_id: str | None = None,
        items: List[CartLine] | None = None,
    ) -> Order:
        actor = self.session.require_actor("check out")
        return self.storefront.checkout.checkout(
            actor.id, self.cart, customer_name, payment_method, address, address_id, items
        )

    def my_orders(self) -> List[Order]:
        actor = self.session.require_actor("see your orders")
        return self.storefront.orders.list_orders(actor.id)

    #wishlist
    def toggle_wishlist(self, product_id: str) -> bool:
        """True when the product is now on the wishlist."""
        actor = self.session.require_actor("save favourites")
        wishlist = self.storefront.wishlist
        if wishlist.contains(actor.id, product_id):
            wishlist.remove(actor.id, product_id)
            return False
        wishlist.add(actor.id, product_id)
        return True

    #reviews
    def can_review(self, product_id: str) -> ReviewEligibility:
        actor = self.session.require_actor("review products")
        return self.storefront.reviews.can_review(actor.id, product_id)

    def submit_review(self, product_id: str, order_id: str, rating: int, comment: str | None = None) -> Review:
        actor = self.session.require_actor("review products")
        return self.storefront.reviews.submit_review(actor.id, product_id, order_id, rating, comment)

    #support chat
    def open_chat(self, poll_seconds: float | None = None) -> MessageThread:
        actor = self.session.require_actor("chat with support")
        chat = self.storefront.chat
        conversation = chat.get_or_create_conversation(actor.id)
        if poll_seconds is None:
            return chat.open_thread(conversation.id)
        return chat.open_thread(conversation.id, poll_seconds)

    def send_chat_message(self, thread: MessageThread, text: str | None = None, image_url: str | None = None) -> ChatMessage:
        actor = self.session.require_actor("chat with support")
        message = self.storefront.chat.send_message(thread.conversation_id, actor.id, SenderRole.USER, text, image_url)
        thread.receive(message)
        return message

    def close(self) -> None:
        self.cart.close()
