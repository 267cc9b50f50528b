# mummy_meals/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Dict, List
from decimal import Decimal
from datetime import date, datetime

from mummy_meals.domain.status import (
    Frequency,
    MealTime,
    OrderStatus,
    PaymentMethod,
    Role,
    SubscriptionStatus,
    Weekday,
)

SESSION_ID_PATTERN = r"^cs_[A-Za-z0-9_]+$"


class UserCreate(BaseModel):
    """Schema dla tworzenia użytkownika (dane z identity providera)."""

    id: int = Field(..., gt=0, description="ID użytkownika (musi być > 0)")
    name: str = Field(..., min_length=1, max_length=100, description="Imię i nazwisko")
    role: Role = Role.CUSTOMER
    phone: str | None = Field(None, pattern=r"^\d{10}$")


class UserRead(BaseModel):
    id: int
    name: str
    role: Role
    phone: str | None = None
    sharing_location: bool = False

    model_config = ConfigDict(from_attributes=True)


class MenuItemCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    available: bool = True
    is_subscribable: bool = True
    image_url: str | None = Field(None, max_length=512)


class MenuItemOut(BaseModel):
    id: int
    mom_id: int
    title: str
    description: str | None = None
    price: Decimal
    available: bool
    is_subscribable: bool = True
    image_url: str | None = None

    model_config = ConfigDict(from_attributes=True)


class AvailabilityIn(BaseModel):
    available: bool


class CartAddIn(BaseModel):
    """Schema dla dodawania pozycji menu do koszyka."""

    menu_item_id: int = Field(..., gt=0, description="ID pozycji menu (musi być > 0)")
    quantity: int = Field(1, gt=0, description="Ilość (musi być > 0)")


class CartQuantityIn(BaseModel):
    """Nowa ilość, 0 lub mniej usuwa pozycję."""

    quantity: int


class CartLineOut(BaseModel):
    id: int
    menu_item_id: int
    mom_id: int
    title: str
    price: Decimal
    quantity: int
    line_total: Decimal


class CartOut(BaseModel):
    customer_id: int
    items: List[CartLineOut]
    total: Decimal


class ShippingDetails(BaseModel):
    """Adres dostawy, walidowany zanim cokolwiek pójdzie do providera."""

    full_name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., pattern=r"^\d{10}$", description="10 cyfr")
    address: str = Field(..., min_length=1, max_length=300)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    pincode: str = Field(..., pattern=r"^\d{6}$", description="6 cyfr")

    model_config = ConfigDict(str_strip_whitespace=True)


class CheckoutIn(BaseModel):
    shipping_details: ShippingDetails


class CheckoutSessionOut(BaseModel):
    sessionId: str
    url: str


class SessionIdIn(BaseModel):
    session_id: str = Field(..., pattern=SESSION_ID_PATTERN)


class FulfillmentOut(BaseModel):
    success: bool = True
    message: str
    order_ids: List[int]
    created: bool


class VerifySessionOut(BaseModel):
    status: str
    session_id: str


class OrderOut(BaseModel):
    id: int
    customer_id: int
    mom_id: int
    menu_item_id: int
    menu_title: str | None = None
    delivery_partner_id: int | None = None
    quantity: int
    total_amount: Decimal
    delivery_fee: Decimal | None = None
    status: OrderStatus
    payment_method: PaymentMethod
    shipping_details: Dict[str, Any]
    customer_phone: str | None = None
    created_at: datetime
    estimated_delivery_at: datetime | None = None


class DeliveryOut(OrderOut):
    payout: Decimal


class StatusUpdateIn(BaseModel):
    status: OrderStatus


class MomSummaryOut(BaseModel):
    active_orders: int
    delivered_orders: int
    revenue: Decimal
    menu_items: int


class SharingIn(BaseModel):
    enabled: bool


class SharingOut(BaseModel):
    partner_id: int
    sharing: bool


class PositionIn(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class LocationOut(BaseModel):
    partner_id: int
    latitude: float
    longitude: float
    updated_at: datetime
    age_seconds: float


class ChatMessageIn(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class ChatMessageOut(BaseModel):
    id: int
    order_id: int
    sender_id: int
    content: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FeedbackIn(BaseModel):
    order_id: int = Field(..., gt=0)
    rating: int = Field(..., ge=1, le=5)
    comment: str | None = Field(None, max_length=1000)


class FeedbackOut(BaseModel):
    id: int
    order_id: int
    customer_id: int
    rating: int
    comment: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MenuRatingOut(BaseModel):
    menu_item_id: int
    avg_rating: float
    rating_count: int


class SubscriptionIn(BaseModel):
    menu_item_id: int = Field(..., gt=0)
    quantity: int = Field(1, gt=0, le=20)
    frequency: Frequency
    delivery_day: Weekday | None = Field(None, description="Wymagany dla weekly")
    delivery_time: MealTime = MealTime.LUNCH
    start_date: date
    end_date: date | None = None
    shipping_details: ShippingDetails


class SubscriptionStatusIn(BaseModel):
    status: SubscriptionStatus


class SubscriptionOut(BaseModel):
    id: int
    customer_id: int
    mom_id: int
    menu_item_id: int
    menu_title: str | None = None
    quantity: int
    frequency: Frequency
    delivery_day: Weekday | None = None
    delivery_time: MealTime | None = None
    start_date: date
    end_date: date | None = None
    shipping_details: Dict[str, Any] | None = None
    status: SubscriptionStatus
    created_at: datetime
