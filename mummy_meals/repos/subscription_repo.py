# mummy_meals/repos/subscription_repo.py
from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from mummy_meals.data.models.subscription import SubscriptionModel
from mummy_meals.domain.status import SubscriptionStatus


class SubscriptionRepo:
    def __init__(self, db: Session):
        self.db = db

    def create(self, subscription: SubscriptionModel) -> SubscriptionModel:
        self.db.add(subscription)
        self.db.flush()
        return subscription

    def get(self, subscription_id: int) -> SubscriptionModel | None:
        return self.db.get(SubscriptionModel, subscription_id, populate_existing=True)

    def _list(self, *conditions) -> List[SubscriptionModel]:
        stmt = select(SubscriptionModel).where(*conditions).order_by(SubscriptionModel.id.desc())
        return list(self.db.execute(stmt.execution_options(populate_existing=True)).unique().scalars().all())

    def list_for_customer(self, customer_id: int) -> List[SubscriptionModel]:
        return self._list(SubscriptionModel.customer_id == customer_id)

    def list_for_mom(self, mom_id: int) -> List[SubscriptionModel]:
        #kucharz widzi tylko te, ktore beda gotowane
        return self._list(
            SubscriptionModel.mom_id == mom_id,
            SubscriptionModel.status == SubscriptionStatus.ACTIVE.value,
        )

    def change_status(
        self,
        subscription_id: int,
        old_status: SubscriptionStatus,
        new_status: SubscriptionStatus,
        customer_id: int,
    ) -> int:
        #update subscriptions set status paused where id 1 and status active and customer_id 5
        stmt = (
            update(SubscriptionModel)
            .where(
                SubscriptionModel.id == subscription_id,
                SubscriptionModel.status == old_status.value,
                SubscriptionModel.customer_id == customer_id,
            )
            .values(status=new_status.value)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
