# mummy_meals/services/feedback_service.py
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mummy_meals.data.models.feedback import FeedbackModel
from mummy_meals.domain.errors import InvalidTransitionError, NotFoundError
from mummy_meals.domain.session import AuthSession
from mummy_meals.domain.status import OrderStatus, Role
from mummy_meals.realtime.feed import ChangeFeed, ChangeOp, Topic, get_change_feed
from mummy_meals.repos.feedback_repo import FeedbackRepo
from mummy_meals.repos.order_repo import OrderRepo
from mummy_meals.utils.logging import get_logger

logger = get_logger(__name__)


class FeedbackService:
    def __init__(self, db: Session, feed: ChangeFeed | None = None):
        self.repo = FeedbackRepo(db)
        self.order_repo = OrderRepo(db)
        self.feed = feed or get_change_feed()

    def submit(self, session: AuthSession, order_id: int, rating: int, comment: str | None = None) -> FeedbackModel:
        session.require(Role.CUSTOMER)
        if not 1 <= rating <= 5:
            raise ValueError("Rating must be between 1 and 5")

        order = self.order_repo.get_order(order_id)
        if not order:
            raise NotFoundError("Order not found")
        if order.customer_id != session.user_id:
            raise PermissionError("No access to this order")
        if order.status != OrderStatus.DELIVERED.value:
            raise InvalidTransitionError("Only delivered orders can be rated")
        if self.repo.get_for_order(order_id):
            raise ValueError("Order already rated")

        try:
            feedback = self.repo.add(
                FeedbackModel(
                    order_id=order_id,
                    customer_id=session.user_id,
                    rating=rating,
                    comment=(comment or "").strip() or None,
                )
            )
        except IntegrityError:
            self.repo.rollback()
            raise ValueError("Order already rated")

        logger.info(f"Order {order_id} rated {rating} by {session.user_id}")
        self.feed.publish_change(Topic.FEEDBACK, ChangeOp.INSERT, feedback)
        return feedback

    def menu_ratings(self) -> List[dict]:
        return self.repo.menu_ratings()
