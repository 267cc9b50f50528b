from datetime import datetime, timezone

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from mummy_meals.data.database import Base


class SubscriptionModel(Base):
    """Stale zamowienie posilku: codziennie albo w wybrany dzien tygodnia."""

    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    mom_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False)

    quantity = Column(Integer, nullable=False, default=1)
    frequency = Column(String(16), nullable=False)  # daily, weekly
    delivery_day = Column(String(16), nullable=True)  # tylko weekly
    delivery_time = Column(String(16), nullable=True)  # lunch, dinner
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)

    shipping_details = Column(JSON, nullable=True)
    status = Column(String(16), nullable=False, default="active", index=True)  # active, paused, cancelled

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    menu_item = relationship("MenuItemModel", lazy="joined")
