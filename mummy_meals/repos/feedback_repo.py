from typing import List

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from mummy_meals.data.models.feedback import FeedbackModel
from mummy_meals.data.models.order import OrderModel


class FeedbackRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_for_order(self, order_id: int) -> FeedbackModel | None:
        stmt = select(FeedbackModel).where(FeedbackModel.order_id == order_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def add(self, feedback: FeedbackModel) -> FeedbackModel:
        self.db.add(feedback)
        self.db.commit()
        self.db.refresh(feedback)
        return feedback

    def menu_ratings(self) -> List[dict]:
        stmt = (
            select(
                OrderModel.menu_item_id,
                func.avg(FeedbackModel.rating),
                func.count(FeedbackModel.id),
            )
            .join(OrderModel, OrderModel.id == FeedbackModel.order_id)
            .group_by(OrderModel.menu_item_id)
            .order_by(OrderModel.menu_item_id)
        )
        return [
            {"menu_item_id": item_id, "avg_rating": round(float(avg), 2), "rating_count": int(count)}
            for item_id, avg, count in self.db.execute(stmt).all()
        ]

    def rollback(self):
        self.db.rollback()
