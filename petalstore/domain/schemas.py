# petalstore/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, computed_field


class Role(str, Enum):
    GUEST = "guest"
    BUYER = "buyer"
    ADMIN = "admin"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ConversationStatus(str, Enum):
    OPEN = "open"
    UNREAD = "unread"
    RESOLVED = "resolved"


class SenderRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class IneligibleReason(str, Enum):
    NOT_PURCHASED = "not_purchased"
    ALREADY_REVIEWED = "already_reviewed"


# ---------------------------------------------------------------- catalog

class Product(BaseModel):
    id: str
    name: str
    description: str = ""
    price: Decimal
    category: str
    image: str = ""
    stock: int = 0
    featured: bool = False

    model_config = ConfigDict(from_attributes=True)


class ProductIn(BaseModel):
    """Schema for creating a product (admin)."""

    name: str = Field(..., min_length=1)
    description: str = ""
    price: Decimal = Field(..., ge=0)
    category: str = Field(..., min_length=1)
    image: str = ""
    stock: int = Field(0, ge=0)
    featured: bool = False


class ProductUpdate(BaseModel):
    name: str | None = Field(None, min_length=1)
    description: str | None = None
    price: Decimal | None = Field(None, ge=0)
    category: str | None = None
    image: str | None = None
    stock: int | None = Field(None, ge=0)
    featured: bool | None = None


# ---------------------------------------------------------------- cart / order

class CartLine(BaseModel):
    product_id: str
    name: str
    price: Decimal
    image: str = ""
    category: str | None = None
    quantity: int = Field(..., ge=1)

    @classmethod
    def from_product(cls, product: Product, quantity: int) -> "CartLine":
        return cls(
            product_id=product.id,
            name=product.name,
            price=product.price,
            image=product.image,
            category=product.category,
            quantity=quantity,
        )

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity


class CartOut(BaseModel):
    user_id: str
    items: List[CartLine]
    total: Decimal
    updated_at: datetime | None = None


class CartIn(BaseModel):
    items: List[CartLine]


class Order(BaseModel):
    id: str
    user_id: str | None = None
    lines: List[CartLine]
    total: Decimal
    status: OrderStatus
    customer_name: str
    address: str
    payment_method: str
    created_at: datetime


class AddressFields(BaseModel):
    full_name: str = ""
    phone_number: str = ""
    region: str = ""
    province: str = ""
    city: str = ""
    barangay: str = ""
    postal_code: str = ""
    street_address: str = ""
    label: str = "Home"
    is_default: bool = False

    def full_address(self) -> str:
        return (
            f"{self.street_address}, {self.barangay}, {self.city}, "
            f"{self.province}, {self.region} {self.postal_code}"
        )


class AddressUpdate(BaseModel):
    full_name: str | None = None
    phone_number: str | None = None
    region: str | None = None
    province: str | None = None
    city: str | None = None
    barangay: str | None = None
    postal_code: str | None = None
    street_address: str | None = None
    label: str | None = None


class Address(AddressFields):
    id: str
    user_id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CheckoutIn(BaseModel):
    """Schema for placing an order.

    Either ``address_id`` (saved address) or ``address`` (manual entry) is
    given. ``items`` is set for single-product checkout, otherwise the
    caller's cart is used. Line prices are taken from the catalog, not
    from the request.
    """

    customer_name: str
    payment_method: str
    address_id: str | None = None
    address: AddressFields | None = None
    items: List[CartLine] | None = None


class OrderStatusIn(BaseModel):
    status: OrderStatus


# ---------------------------------------------------------------- identity

class Actor(BaseModel):
    id: str
    email: str
    name: str
    role: Role = Role.BUYER
    wishlist: List[str] = []


class Profile(BaseModel):
    id: str
    email: str
    name: str
    photo_url: str | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class TermsAcceptance(BaseModel):
    id: str
    user_id: str
    ip_address: str | None = None
    version: str
    accepted_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------- reviews

class Review(BaseModel):
    id: str
    user_id: str
    product_id: str
    order_id: str
    rating: int
    comment: str | None = None
    reviewer_name: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def user_name(self) -> str:
        return self.reviewer_name or "Anonymous"


class ReviewEligibility(BaseModel):
    eligible: bool
    order_id: str | None = None
    reason: IneligibleReason | None = None
    message: str | None = None


class ReviewIn(BaseModel):
    product_id: str
    order_id: str
    rating: int
    comment: str | None = None


class ReviewUpdateIn(BaseModel):
    rating: int
    comment: str | None = None


# ---------------------------------------------------------------- chat

class Conversation(BaseModel):
    id: str
    user_id: str
    status: ConversationStatus
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ChatMessage(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    sender: SenderRole
    text: str | None = None
    image_url: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ConversationWithMessages(Conversation):
    messages: List[ChatMessage] = []


class MessageIn(BaseModel):
    text: str | None = None
    image_url: str | None = None


class ConversationStatusIn(BaseModel):
    status: ConversationStatus


class WishlistIn(BaseModel):
    product_id: str
