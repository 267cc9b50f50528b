from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from mummy_meals.data.database import Base


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    role = Column(String(32), nullable=False, default="customer")  # customer, mom, delivery_partner
    phone = Column(String(20), nullable=True)

    #partner wlaczyl udostepnianie lokalizacji
    sharing_location = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
