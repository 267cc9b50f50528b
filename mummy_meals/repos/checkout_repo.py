# mummy_meals/repos/checkout_repo.py
from datetime import datetime
from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from mummy_meals.data.models.checkout_session import CheckoutSessionModel


class CheckoutRepo:
    def __init__(self, db: Session):
        self.db = db

    def create(self, checkout: CheckoutSessionModel) -> CheckoutSessionModel:
        self.db.add(checkout)
        self.db.flush()
        return checkout

    def get_by_session_id(self, session_id: str) -> CheckoutSessionModel | None:
        stmt = select(CheckoutSessionModel).where(CheckoutSessionModel.session_id == session_id)
        return self.db.execute(stmt.execution_options(populate_existing=True)).scalar_one_or_none()

    def change_status(self, session_id: str, old_status: str, new_status: str) -> int:
        #np. update set status fulfilled where session_id = cs_1 and status = open
        stmt = (
            update(CheckoutSessionModel)
            .where(
                CheckoutSessionModel.session_id == session_id,
                CheckoutSessionModel.status == old_status,
            )
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def list_open_created_before(self, cutoff: datetime) -> List[CheckoutSessionModel]:
        stmt = (
            select(CheckoutSessionModel)
            .where(
                CheckoutSessionModel.status == "open",
                CheckoutSessionModel.created_at < cutoff,
            )
            .order_by(CheckoutSessionModel.created_at)
        )
        return list(self.db.execute(stmt).scalars().all())

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
