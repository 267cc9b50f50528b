# mummy_meals/services/delivery_service.py
from datetime import timedelta
from typing import Any, Dict

from sqlalchemy.orm import Session

from mummy_meals.data.models.order import OrderModel
from mummy_meals.domain.session import AuthSession
from mummy_meals.domain.status import OrderStatus, Role
from mummy_meals.realtime.feed import ChangeFeed
from mummy_meals.services.notification_service import NotificationService
from mummy_meals.services.order_service import OrderService, serialize_order
from mummy_meals.utils.clock import utcnow
from mummy_meals.utils.logging import get_logger
from mummy_meals.utils.settings import ESTIMATED_DELIVERY_MINUTES

logger = get_logger(__name__)


class DeliveryService:
    """
    Przejmowanie zamowien przez partnerow.
    Wielu partnerow moze klikac to samo zamowienie, wygrywa dokladnie jeden:
    UPDATE ... WHERE status = ready AND delivery_partner_id IS NULL.
    """

    def __init__(
        self,
        db: Session,
        feed: ChangeFeed | None = None,
        notifications: NotificationService | None = None,
    ):
        self.orders = OrderService(db, feed=feed, notifications=notifications)

    def claim(self, session: AuthSession, order_id: int) -> Dict[str, Any]:
        session.require(Role.DELIVERY_PARTNER)

        eta = utcnow() + timedelta(minutes=ESTIMATED_DELIVERY_MINUTES)
        order = self.orders.commit_transition(
            order_id,
            OrderStatus.READY,
            OrderStatus.PICKED_UP,
            guards=[OrderModel.delivery_partner_id.is_(None)],
            values={"delivery_partner_id": session.user_id, "estimated_delivery_at": eta},
        )
        logger.info(f"Partner {session.user_id} claimed order {order_id}")
        return serialize_order(order, with_payout=True)

    def complete(self, session: AuthSession, order_id: int) -> Dict[str, Any]:
        session.require(Role.DELIVERY_PARTNER)

        order = self.orders.commit_transition(
            order_id,
            OrderStatus.PICKED_UP,
            OrderStatus.DELIVERED,
            guards=[OrderModel.delivery_partner_id == session.user_id],
            conflict_message=f"Order {order_id} is not out for delivery with you",
        )
        return serialize_order(order, with_payout=True)
