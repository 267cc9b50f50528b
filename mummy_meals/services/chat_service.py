# mummy_meals/services/chat_service.py
from typing import List

from sqlalchemy.orm import Session

from mummy_meals.data.models.chat_message import ChatMessageModel
from mummy_meals.domain.errors import NotFoundError
from mummy_meals.domain.session import AuthSession
from mummy_meals.realtime.feed import ChangeFeed, ChangeOp, Topic, get_change_feed
from mummy_meals.repos.chat_repo import ChatRepo
from mummy_meals.repos.order_repo import OrderRepo
from mummy_meals.utils.logging import get_logger

logger = get_logger(__name__)

MAX_MESSAGE_LENGTH = 2000


class ChatService:
    """Czat przy zamowieniu: klient, kucharz i partner. Tylko dopisywanie."""

    def __init__(self, db: Session, feed: ChangeFeed | None = None):
        self.repo = ChatRepo(db)
        self.order_repo = OrderRepo(db)
        self.feed = feed or get_change_feed()

    def _check_party(self, session: AuthSession, order_id: int) -> None:
        order = self.order_repo.get_order(order_id)
        if not order:
            raise NotFoundError("Order not found")
        if session.user_id not in (order.customer_id, order.mom_id, order.delivery_partner_id):
            raise PermissionError("Not a participant of this order")

    def post(self, session: AuthSession, order_id: int, content: str) -> ChatMessageModel:
        content = (content or "").strip()
        if not content:
            raise ValueError("Message cannot be empty")
        if len(content) > MAX_MESSAGE_LENGTH:
            raise ValueError(f"Message longer than {MAX_MESSAGE_LENGTH} characters")

        self._check_party(session, order_id)

        message = self.repo.add_message(
            ChatMessageModel(order_id=order_id, sender_id=session.user_id, content=content)
        )
        logger.info(f"Chat message {message.id} on order {order_id} from {session.user_id}")
        self.feed.publish_change(Topic.CHAT_MESSAGES, ChangeOp.INSERT, message)
        return message

    def list(self, session: AuthSession, order_id: int) -> List[ChatMessageModel]:
        self._check_party(session, order_id)
        return self.repo.list_for_order(order_id)
