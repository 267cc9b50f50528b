# mummy_meals/services/subscription_service.py
from datetime import date
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from mummy_meals.data.models.subscription import SubscriptionModel
from mummy_meals.domain.errors import (
    InvalidTransitionError,
    MenuItemUnavailableError,
    NotFoundError,
    SubscriptionConflictError,
)
from mummy_meals.domain.schemas import SubscriptionIn
from mummy_meals.domain.session import AuthSession
from mummy_meals.domain.status import (
    SUBSCRIPTION_TRANSITIONS,
    Frequency,
    Role,
    SubscriptionStatus,
)
from mummy_meals.realtime.feed import ChangeFeed, ChangeOp, Topic, get_change_feed
from mummy_meals.repos.menu_repo import MenuRepo
from mummy_meals.repos.subscription_repo import SubscriptionRepo
from mummy_meals.utils.clock import utcnow
from mummy_meals.utils.logging import get_logger

logger = get_logger(__name__)


def serialize_subscription(sub: SubscriptionModel) -> Dict[str, Any]:
    return {
        "id": sub.id,
        "customer_id": sub.customer_id,
        "mom_id": sub.mom_id,
        "menu_item_id": sub.menu_item_id,
        "menu_title": sub.menu_item.title if sub.menu_item else None,
        "quantity": sub.quantity,
        "frequency": sub.frequency,
        "delivery_day": sub.delivery_day,
        "delivery_time": sub.delivery_time,
        "start_date": sub.start_date,
        "end_date": sub.end_date,
        "shipping_details": sub.shipping_details,
        "status": sub.status,
        "created_at": sub.created_at,
    }


class SubscriptionService:
    """
    Subskrypcje posilkow (daily / weekly).

    Klient je zaklada, pauzuje, wznawia i anuluje. Zmiana statusu to warunkowy
    UPDATE na (id, status, customer_id), tak jak przejscia zamowien.
    """

    def __init__(self, db: Session, feed: ChangeFeed | None = None):
        self.repo = SubscriptionRepo(db)
        self.menu_repo = MenuRepo(db)
        self.feed = feed or get_change_feed()

    def create(self, session: AuthSession, payload: SubscriptionIn, today: date | None = None) -> Dict[str, Any]:
        session.require(Role.CUSTOMER)
        today = today or utcnow().date()

        item = self.menu_repo.get_item(payload.menu_item_id)
        if not item:
            raise NotFoundError("Menu item not found")
        if not item.available:
            raise MenuItemUnavailableError(item.id)
        if not item.is_subscribable:
            raise ValueError(f"Menu item {item.id} does not offer subscriptions")

        delivery_day = payload.delivery_day
        if payload.frequency == Frequency.WEEKLY and delivery_day is None:
            raise ValueError("Weekly subscriptions need a delivery day")
        if payload.frequency == Frequency.DAILY:
            delivery_day = None

        if payload.start_date < today:
            raise ValueError("Start date cannot be in the past")
        if payload.end_date is not None and payload.end_date < payload.start_date:
            raise ValueError("End date must not be before start date")

        try:
            sub = self.repo.create(
                SubscriptionModel(
                    customer_id=session.user_id,
                    mom_id=item.mom_id,
                    menu_item_id=item.id,
                    menu_item=item,
                    quantity=payload.quantity,
                    frequency=payload.frequency.value,
                    delivery_day=delivery_day.value if delivery_day else None,
                    delivery_time=payload.delivery_time.value,
                    start_date=payload.start_date,
                    end_date=payload.end_date,
                    shipping_details=payload.shipping_details.model_dump(),
                    status=SubscriptionStatus.ACTIVE.value,
                )
            )
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Subscription {sub.id} to item {item.id} ({sub.frequency}) created by {session.user_id}")
        self.feed.publish_change(Topic.SUBSCRIPTIONS, ChangeOp.INSERT, sub)
        return serialize_subscription(sub)

    def list_mine(self, session: AuthSession) -> List[Dict[str, Any]]:
        if session.role == Role.MOM:
            subs = self.repo.list_for_mom(session.user_id)
        else:
            session.require(Role.CUSTOMER)
            subs = self.repo.list_for_customer(session.user_id)
        return [serialize_subscription(s) for s in subs]

    def pause(self, session: AuthSession, subscription_id: int) -> Dict[str, Any]:
        return self.change_status(session, subscription_id, SubscriptionStatus.PAUSED)

    def resume(self, session: AuthSession, subscription_id: int) -> Dict[str, Any]:
        return self.change_status(session, subscription_id, SubscriptionStatus.ACTIVE)

    def cancel(self, session: AuthSession, subscription_id: int) -> Dict[str, Any]:
        return self.change_status(session, subscription_id, SubscriptionStatus.CANCELLED)

    def change_status(
        self, session: AuthSession, subscription_id: int, target: SubscriptionStatus
    ) -> Dict[str, Any]:
        target = SubscriptionStatus(target)

        sub = self.repo.get(subscription_id)
        if not sub:
            raise NotFoundError("Subscription not found")
        if sub.customer_id != session.user_id:
            raise PermissionError("No access to this subscription")

        current = SubscriptionStatus(sub.status)
        if (current, target) not in SUBSCRIPTION_TRANSITIONS:
            raise InvalidTransitionError(f"Subscription cannot move from {current.value} to {target.value}")

        try:
            changed = self.repo.change_status(subscription_id, current, target, session.user_id)
        except Exception:
            self.repo.rollback()
            raise

        if changed == 0:
            self.repo.rollback()
            logger.warning(f"Stale subscription change {current.value} -> {target.value} on {subscription_id}")
            raise SubscriptionConflictError(subscription_id)

        self.repo.commit()

        sub = self.repo.get(subscription_id)
        logger.info(f"Subscription {subscription_id} moved {current.value} -> {target.value}")
        self.feed.publish_change(Topic.SUBSCRIPTIONS, ChangeOp.UPDATE, sub)
        return serialize_subscription(sub)
