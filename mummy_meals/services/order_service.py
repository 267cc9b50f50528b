# mummy_meals/services/order_service.py
from decimal import Decimal
from typing import Any, Dict, Iterable, List

from sqlalchemy.orm import Session

from mummy_meals.data.models.order import OrderModel
from mummy_meals.domain.errors import InvalidTransitionError, NotFoundError, OrderConflictError
from mummy_meals.domain.session import AuthSession
from mummy_meals.domain.status import (
    TRANSITIONS,
    OrderStatus,
    Role,
    can_transition,
    previous_status,
)
from mummy_meals.realtime.feed import ChangeFeed, ChangeOp, Topic, get_change_feed
from mummy_meals.repos.menu_repo import MenuRepo
from mummy_meals.repos.order_repo import OrderRepo
from mummy_meals.services.notification_service import NotificationService
from mummy_meals.utils.logging import get_logger
from mummy_meals.utils.settings import DEFAULT_DELIVERY_FEE

logger = get_logger(__name__)

#statusy, do ktorych mozna dojsc glownym lancuchem
TRANSITIONS_TARGETS = frozenset(target for _, target in TRANSITIONS)


def serialize_order(order: OrderModel, with_payout: bool = False) -> Dict[str, Any]:
    data = {
        "id": order.id,
        "customer_id": order.customer_id,
        "mom_id": order.mom_id,
        "menu_item_id": order.menu_item_id,
        "menu_title": order.menu_item.title if order.menu_item else None,
        "delivery_partner_id": order.delivery_partner_id,
        "quantity": order.quantity,
        "total_amount": order.total_amount,
        "delivery_fee": order.delivery_fee,
        "status": order.status,
        "payment_method": order.payment_method,
        "shipping_details": order.shipping_details,
        "customer_phone": order.customer_phone,
        "created_at": order.created_at,
        "estimated_delivery_at": order.estimated_delivery_at,
    }
    if with_payout:
        #brak delivery_fee na zamowieniu -> stala z konfiguracji
        fee = order.delivery_fee if order.delivery_fee is not None else DEFAULT_DELIVERY_FEE
        data["payout"] = Decimal(str(fee))
    return data


class OrderService:
    """
    Serwis odpowiedzialny za cykl zycia zamowienia.

    Kazda zmiana statusu to jeden warunkowy UPDATE (status i wlasciciel w WHERE),
    0 zmienionych wierszy = ktos byl pierwszy, zwracamy konflikt bez ponawiania.
    """

    def __init__(
        self,
        db: Session,
        feed: ChangeFeed | None = None,
        notifications: NotificationService | None = None,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.menu_repo = MenuRepo(db)
        self.feed = feed or get_change_feed()
        self.notifications = notifications or NotificationService()

    # =====================================================
    # QUERY
    # =====================================================
    def get_order(self, session: AuthSession, order_id: int) -> Dict[str, Any]:
        order = self.repo.get_order(order_id)

        if not order:
            raise NotFoundError("Order not found")

        if not self._can_view(session, order):
            raise PermissionError("No access to this order")

        return serialize_order(order, with_payout=session.role == Role.DELIVERY_PARTNER)

    def list_orders(self, session: AuthSession) -> List[Dict[str, Any]]:
        if session.role == Role.MOM:
            orders = self.repo.list_for_mom(session.user_id)
        elif session.role == Role.DELIVERY_PARTNER:
            return self.list_my_deliveries(session)
        else:
            orders = self.repo.list_for_customer(session.user_id)
        return [serialize_order(o) for o in orders]

    def list_available_deliveries(self, session: AuthSession) -> List[Dict[str, Any]]:
        session.require(Role.DELIVERY_PARTNER)
        return [serialize_order(o, with_payout=True) for o in self.repo.list_available_deliveries()]

    def list_my_deliveries(self, session: AuthSession) -> List[Dict[str, Any]]:
        session.require(Role.DELIVERY_PARTNER)
        return [serialize_order(o, with_payout=True) for o in self.repo.list_for_partner(session.user_id)]

    def mom_summary(self, session: AuthSession) -> Dict[str, Any]:
        session.require(Role.MOM)
        stats = self.repo.mom_stats(session.user_id)
        stats["menu_items"] = self.menu_repo.count_for_mom(session.user_id)
        return stats

    # =====================================================
    # COMMANDS
    # =====================================================
    def advance_status(self, session: AuthSession, order_id: int, target: OrderStatus) -> Dict[str, Any]:
        """
        Use Case: kucharz przesuwa zamowienie placed -> preparing -> ready.
        """
        target = OrderStatus(target)
        if target == OrderStatus.CANCELLED:
            return self.cancel(session, order_id)

        session.require(Role.MOM)
        expected = previous_status(target) if target in TRANSITIONS_TARGETS else None
        if expected is None or TRANSITIONS.get((expected, target)) != Role.MOM:
            raise InvalidTransitionError(f"Cook cannot move an order to {target.value}")

        order = self.repo.get_order(order_id)
        if not order:
            raise NotFoundError("Order not found")
        if order.mom_id != session.user_id:
            raise PermissionError("No access to this order")

        current = OrderStatus(order.status)
        if not can_transition(current, target):
            raise InvalidTransitionError(f"Order cannot move from {current.value} to {target.value}")

        updated = self.commit_transition(
            order_id,
            expected,
            target,
            guards=[OrderModel.mom_id == session.user_id],
        )
        return serialize_order(updated)

    def cancel(self, session: AuthSession, order_id: int) -> Dict[str, Any]:
        """
        Use Case: anulowanie przez klienta albo kucharza, z kazdego statusu
        poza delivered/cancelled. Partner jest odpinany.
        """
        order = self.repo.get_order(order_id)
        if not order:
            raise NotFoundError("Order not found")

        uid = session.user_id
        if uid not in (order.customer_id, order.mom_id):
            raise PermissionError("No access to this order")

        current = OrderStatus(order.status)
        if not can_transition(current, OrderStatus.CANCELLED):
            raise InvalidTransitionError(f"Order in status {current.value} cannot be cancelled")

        updated = self.commit_transition(
            order_id,
            current,
            OrderStatus.CANCELLED,
            guards=[(OrderModel.customer_id == uid) | (OrderModel.mom_id == uid)],
            values={"delivery_partner_id": None},
            conflict_message=f"Order {order_id} cannot be cancelled anymore",
        )
        return serialize_order(updated)

    def commit_transition(
        self,
        order_id: int,
        expected: OrderStatus,
        target: OrderStatus,
        guards: Iterable = (),
        values: Dict[str, Any] | None = None,
        conflict_message: str | None = None,
    ) -> OrderModel:
        """Wykonuje przejscie expected -> target jako compare-and-swap i commituje."""
        new_values = dict(values or {})
        new_values["status"] = target.value

        try:
            rowcount = self.repo.transition(order_id, expected, new_values, *guards)
        except Exception:
            self.repo.rollback()
            raise

        # Optimistic locking warunek na status
        # np update orders set status picked_up where id 1 and status ready and delivery_partner_id is null
        if rowcount == 0:
            self.repo.rollback()
            if self.repo.get_order(order_id) is None:
                raise NotFoundError("Order not found")
            logger.warning(f"Stale transition {expected.value} -> {target.value} on order {order_id}")
            raise OrderConflictError(order_id, conflict_message)

        self.repo.commit()

        order = self.repo.get_order(order_id)
        logger.info(f"Order {order_id} moved {expected.value} -> {target.value}")
        self.publish_status_change(order)
        return order

    def publish_status_change(self, order: OrderModel, op: ChangeOp = ChangeOp.UPDATE) -> None:
        self.feed.publish_change(Topic.ORDERS, op, order)
        self.notifications.send_order_status_notification(
            order.customer_id,
            order.id,
            order.status,
            order.menu_item.title if order.menu_item else None,
        )

    def _can_view(self, session: AuthSession, order: OrderModel) -> bool:
        uid = session.user_id
        if uid in (order.customer_id, order.mom_id, order.delivery_partner_id):
            return True
        #partner widzi zamowienia czekajace na odbior
        return (
            session.role == Role.DELIVERY_PARTNER
            and order.status == OrderStatus.READY.value
            and order.delivery_partner_id is None
        )

