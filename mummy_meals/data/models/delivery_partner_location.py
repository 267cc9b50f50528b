from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer

from mummy_meals.data.database import Base


class DeliveryPartnerLocationModel(Base):
    __tablename__ = "delivery_partner_locations"

    id = Column(Integer, primary_key=True)
    #jeden wiersz na partnera, tylko ostatnia pozycja
    partner_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)

    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
