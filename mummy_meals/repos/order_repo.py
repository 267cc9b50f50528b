# mummy_meals/repos/order_repo.py
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from mummy_meals.data.models.order import OrderModel
from mummy_meals.domain.status import ACTIVE_FOR_MOM, OrderStatus


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        #populate_existing bo warunkowe update'y omijaja identity map
        return self.db.get(OrderModel, order_id, populate_existing=True)

    def transition(
        self,
        order_id: int,
        expected_status: OrderStatus,
        values: Dict[str, Any],
        *guards,
    ) -> int:
        """
        Warunkowy update (compare-and-swap) na zamowieniu.

        UPDATE orders SET ... WHERE id = :id AND status = :expected AND <guards>
        Zwraca rowcount: 1 - przejscie wykonane, 0 - ktos nas wyprzedzil.
        """
        stmt = (
            update(OrderModel)
            .where(
                OrderModel.id == order_id,
                OrderModel.status == expected_status.value,
                *guards,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def _list(self, *conditions) -> List[OrderModel]:
        stmt = (
            select(OrderModel)
            .where(*conditions)
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        )
        return list(self.db.execute(stmt.execution_options(populate_existing=True)).unique().scalars().all())

    def list_for_customer(self, customer_id: int) -> List[OrderModel]:
        return self._list(OrderModel.customer_id == customer_id)

    def list_for_mom(self, mom_id: int) -> List[OrderModel]:
        return self._list(OrderModel.mom_id == mom_id)

    def list_available_deliveries(self) -> List[OrderModel]:
        return self._list(
            OrderModel.status == OrderStatus.READY.value,
            OrderModel.delivery_partner_id.is_(None),
        )

    def list_for_partner(self, partner_id: int) -> List[OrderModel]:
        return self._list(OrderModel.delivery_partner_id == partner_id)

    def list_by_payment_session(self, session_id: str) -> List[OrderModel]:
        return self._list(OrderModel.payment_session_id == session_id)

    def has_active_delivery(self, partner_id: int, viewer_id: int) -> bool:
        """Czy viewer jest klientem/kucharzem zamowienia, ktore wiezie partner."""
        stmt = select(func.count(OrderModel.id)).where(
            OrderModel.delivery_partner_id == partner_id,
            OrderModel.status == OrderStatus.PICKED_UP.value,
            (OrderModel.customer_id == viewer_id) | (OrderModel.mom_id == viewer_id),
        )
        return int(self.db.execute(stmt).scalar() or 0) > 0

    def mom_stats(self, mom_id: int) -> Dict[str, Any]:
        stmt = (
            select(OrderModel.status, func.count(OrderModel.id), func.sum(OrderModel.total_amount))
            .where(OrderModel.mom_id == mom_id)
            .group_by(OrderModel.status)
        )
        active = 0
        delivered = 0
        revenue = Decimal("0.00")
        for status, count, total in self.db.execute(stmt).all():
            if status in {s.value for s in ACTIVE_FOR_MOM}:
                active += count
            elif status == OrderStatus.DELIVERED.value:
                delivered += count
                revenue += Decimal(str(total or 0))
        return {"active_orders": active, "delivered_orders": delivered, "revenue": revenue}

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
