from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from mummy_meals.data.models.delivery_partner_location import DeliveryPartnerLocationModel


class LocationRepo:
    def __init__(self, db: Session):
        self.db = db

    def get(self, partner_id: int) -> DeliveryPartnerLocationModel | None:
        stmt = select(DeliveryPartnerLocationModel).where(DeliveryPartnerLocationModel.partner_id == partner_id)
        return self.db.execute(stmt.execution_options(populate_existing=True)).scalar_one_or_none()

    def update_position(self, partner_id: int, latitude: float, longitude: float, at: datetime) -> int:
        stmt = (
            update(DeliveryPartnerLocationModel)
            .where(DeliveryPartnerLocationModel.partner_id == partner_id)
            .values(latitude=latitude, longitude=longitude, updated_at=at)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def insert(self, location: DeliveryPartnerLocationModel) -> DeliveryPartnerLocationModel:
        self.db.add(location)
        self.db.flush()
        return location

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
