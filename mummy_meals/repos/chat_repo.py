from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from mummy_meals.data.models.chat_message import ChatMessageModel


class ChatRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_message(self, message: ChatMessageModel) -> ChatMessageModel:
        self.db.add(message)
        self.db.commit()
        self.db.refresh(message)
        return message

    def list_for_order(self, order_id: int) -> List[ChatMessageModel]:
        stmt = (
            select(ChatMessageModel)
            .where(ChatMessageModel.order_id == order_id)
            .order_by(ChatMessageModel.created_at, ChatMessageModel.id)
        )
        return list(self.db.execute(stmt).scalars().all())
