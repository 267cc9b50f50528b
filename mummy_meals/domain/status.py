# mummy_meals/domain/status.py
from enum import Enum


class OrderStatus(str, Enum):
    PLACED = "placed"
    PREPARING = "preparing"
    READY = "ready"
    PICKED_UP = "picked_up"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class Role(str, Enum):
    CUSTOMER = "customer"
    MOM = "mom"
    DELIVERY_PARTNER = "delivery_partner"


class PaymentMethod(str, Enum):
    CARD = "card"
    CASH_ON_DELIVERY = "cash_on_delivery"


# glowny lancuch statusow, tylko do przodu
STATUS_CHAIN = (
    OrderStatus.PLACED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.PICKED_UP,
    OrderStatus.DELIVERED,
)

# (z, do) -> kto moze wykonac przejscie
TRANSITIONS = {
    (OrderStatus.PLACED, OrderStatus.PREPARING): Role.MOM,
    (OrderStatus.PREPARING, OrderStatus.READY): Role.MOM,
    (OrderStatus.READY, OrderStatus.PICKED_UP): Role.DELIVERY_PARTNER,
    (OrderStatus.PICKED_UP, OrderStatus.DELIVERED): Role.DELIVERY_PARTNER,
}

TERMINAL = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# partner przypisany tylko w tych statusach
PARTNER_ASSIGNED = frozenset({OrderStatus.PICKED_UP, OrderStatus.DELIVERED})

ACTIVE_FOR_MOM = frozenset({OrderStatus.PLACED, OrderStatus.PREPARING, OrderStatus.READY})


def previous_status(target: OrderStatus) -> OrderStatus | None:
    """Status z ktorego mozna przejsc do `target` w glownym lancuchu."""
    idx = STATUS_CHAIN.index(target)
    if idx == 0:
        return None
    return STATUS_CHAIN[idx - 1]


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    if current in TERMINAL:
        return False
    if target == OrderStatus.CANCELLED:
        return True
    return (current, target) in TRANSITIONS


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"


class MealTime(str, Enum):
    LUNCH = "lunch"
    DINNER = "dinner"


class Weekday(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


# klient: pauza / wznowienie / rezygnacja, cancelled jest koncowy
SUBSCRIPTION_TRANSITIONS = frozenset(
    {
        (SubscriptionStatus.ACTIVE, SubscriptionStatus.PAUSED),
        (SubscriptionStatus.PAUSED, SubscriptionStatus.ACTIVE),
        (SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED),
        (SubscriptionStatus.PAUSED, SubscriptionStatus.CANCELLED),
    }
)
