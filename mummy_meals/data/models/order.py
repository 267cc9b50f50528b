from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from mummy_meals.data.database import Base


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    mom_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False)
    delivery_partner_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    quantity = Column(Integer, nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    delivery_fee = Column(Numeric(10, 2), nullable=True)

    status = Column(String(32), nullable=False, default="placed", index=True)  # placed, preparing, ready, picked_up, delivered, cancelled
    payment_method = Column(String(32), nullable=False)  # card, cash_on_delivery
    payment_session_id = Column(String(255), nullable=True, index=True)

    shipping_details = Column(JSON, nullable=False)
    customer_phone = Column(String(20), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    estimated_delivery_at = Column(DateTime(timezone=True), nullable=True)

    menu_item = relationship("MenuItemModel", lazy="joined")
