#import every model so SQLAlchemy registers it in Base.metadata

from petalstore.data.models.product import ProductModel
from petalstore.data.models.order import OrderModel, OrderItemModel
from petalstore.data.models.cart import CartModel
from petalstore.data.models.profile import ProfileModel, UserRoleModel
from petalstore.data.models.address import AddressModel
from petalstore.data.models.review import ReviewModel
from petalstore.data.models.chat import ConversationModel, MessageModel
from petalstore.data.models.terms import TermsAcceptanceModel

__all__ = [
    "ProductModel",
    "OrderModel",
    "OrderItemModel",
    "CartModel",
    "ProfileModel",
    "UserRoleModel",
    "AddressModel",
    "ReviewModel",
    "ConversationModel",
    "MessageModel",
    "TermsAcceptanceModel",
]
