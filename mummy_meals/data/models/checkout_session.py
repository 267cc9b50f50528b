from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String

from mummy_meals.data.database import Base


class CheckoutSessionModel(Base):
    """Sesja platnosci u providera, status open -> fulfilled | expired | failed."""

    __tablename__ = "checkout_sessions"

    id = Column(Integer, primary_key=True)
    session_id = Column(String(255), nullable=False, unique=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    status = Column(String(20), nullable=False, default="open")
    amount_total = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
