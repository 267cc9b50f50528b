#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from mummy_meals.data.models.user import UserModel
from mummy_meals.data.models.menu_item import MenuItemModel
from mummy_meals.data.models.cart_item import CartItemModel
from mummy_meals.data.models.order import OrderModel
from mummy_meals.data.models.checkout_session import CheckoutSessionModel
from mummy_meals.data.models.delivery_partner_location import DeliveryPartnerLocationModel
from mummy_meals.data.models.chat_message import ChatMessageModel
from mummy_meals.data.models.feedback import FeedbackModel
from mummy_meals.data.models.subscription import SubscriptionModel

__all__ = [
    "UserModel",
    "MenuItemModel",
    "CartItemModel",
    "OrderModel",
    "CheckoutSessionModel",
    "DeliveryPartnerLocationModel",
    "ChatMessageModel",
    "FeedbackModel",
    "SubscriptionModel",
]
