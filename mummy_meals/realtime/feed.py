# mummy_meals/realtime/feed.py
"""
Publish/subscribe dla zmian w wierszach (orders, cart_items, chat_messages,
delivery_partner_locations, menu_items, feedback, subscriptions).

Serwisy publikuja ChangeEvent po commicie, subskrybenci dostaja powiadomienie
i sami robia re-fetch swojej projekcji (bez nakladania diffow).
Dostawa lokalna jest synchroniczna, w kolejnosci publikacji. Transport
(Redis) rozsyla te same eventy do innych procesow.
"""
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field
from sqlalchemy import inspect as sa_inspect

from mummy_meals.utils.logging import get_logger

logger = get_logger(__name__)


class Topic(str, Enum):
    ORDERS = "orders"
    CART_ITEMS = "cart_items"
    CHAT_MESSAGES = "chat_messages"
    DELIVERY_PARTNER_LOCATIONS = "delivery_partner_locations"
    MENU_ITEMS = "menu_items"
    FEEDBACK = "feedback"
    SUBSCRIPTIONS = "subscriptions"


class ChangeOp(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


def row_to_dict(model) -> Dict[str, Any]:
    mapper = sa_inspect(model).mapper
    return jsonable_encoder({attr.key: getattr(model, attr.key) for attr in mapper.column_attrs})


class ChangeEvent(BaseModel):
    topic: Topic
    op: ChangeOp
    row: Dict[str, Any]
    committed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_model(cls, topic: Topic, op: ChangeOp, model) -> "ChangeEvent":
        return cls(topic=topic, op=op, row=row_to_dict(model))


@dataclass(frozen=True)
class RowFilter:
    """Filtr rownosciowy `column = value`, np. customer_id = 5."""

    column: str
    value: Any

    def matches(self, row: Dict[str, Any]) -> bool:
        #porownanie po str, wartosci z query stringa przychodza jako tekst
        return str(row.get(self.column)) == str(self.value)


ChangeHandler = Callable[[ChangeEvent], None]


class Transport(Protocol):
    def publish(self, event: ChangeEvent) -> Any:
        ...


def channel_name(topics: Iterable[Topic], owner_id: Any) -> str:
    """Jeden kanal na (zestaw topicow, wlasciciel)."""
    names = sorted({Topic(t).value for t in topics})
    return f"{'+'.join(names)}:{owner_id}"


class Subscription:
    def __init__(
        self,
        feed: "ChangeFeed",
        topic: Topic,
        on_change: ChangeHandler,
        row_filter: Optional[RowFilter] = None,
    ):
        self._feed = feed
        self.topic = topic
        self.on_change = on_change
        self.row_filter = row_filter
        self.active = True

    def matches(self, event: ChangeEvent) -> bool:
        if not self.active or event.topic != self.topic:
            return False
        return self.row_filter is None or self.row_filter.matches(event.row)

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._feed._remove(self)


class Channel:
    """Grupa subskrypcji jednego wlasciciela (widoku), zamykana razem."""

    def __init__(self, feed: "ChangeFeed", name: str):
        self._feed = feed
        self.name = name
        self._subscriptions: List[Subscription] = []
        self.closed = False

    def on(
        self,
        topic: Topic,
        on_change: ChangeHandler,
        row_filter: Optional[RowFilter] = None,
    ) -> "Channel":
        if self.closed:
            raise RuntimeError(f"Channel {self.name} is closed")
        self._subscriptions.append(self._feed.subscribe(topic, on_change, row_filter))
        return self

    @property
    def subscriptions(self) -> List[Subscription]:
        return list(self._subscriptions)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions.clear()
        self._feed._release_channel(self)


class ChangeFeed:
    def __init__(self, transport: Optional[Transport] = None):
        self.transport = transport
        self._subscriptions: List[Subscription] = []
        self._channels: Dict[str, Channel] = {}
        self._lock = threading.RLock()

    def subscribe(
        self,
        topic: Topic,
        on_change: ChangeHandler,
        row_filter: Optional[RowFilter] = None,
    ) -> Subscription:
        sub = Subscription(self, Topic(topic), on_change, row_filter)
        with self._lock:
            self._subscriptions.append(sub)
        return sub

    def channel(self, name: str) -> Channel:
        with self._lock:
            if name in self._channels:
                raise ValueError(f"Channel {name} is already open")
            ch = Channel(self, name)
            self._channels[name] = ch
            return ch

    def has_channel(self, name: str) -> bool:
        with self._lock:
            return name in self._channels

    @property
    def subscription_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, event: ChangeEvent) -> int:
        """Dostarcza event lokalnym subskrybentom i wysyla go transportem.

        Zwraca liczbe lokalnych handlerow, ktore dostaly event.
        """
        with self._lock:
            targets = [s for s in self._subscriptions if s.matches(event)]

        delivered = 0
        for sub in targets:
            #subskrypcja mogla byc zamknieta przez poprzedni handler
            if not sub.active:
                continue
            try:
                sub.on_change(event)
                delivered += 1
            except Exception:
                logger.exception(f"Change handler failed for {event.topic.value} {event.op.value}")

        if self.transport is not None:
            try:
                self.transport.publish(event)
            except Exception as e:
                logger.warning(f"Realtime transport degraded, event {event.topic.value} not fanned out: {e}")

        return delivered

    def publish_change(self, topic: Topic, op: ChangeOp, model) -> ChangeEvent:
        event = ChangeEvent.from_model(topic, op, model)
        self.publish(event)
        return event

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

    def _release_channel(self, channel: Channel) -> None:
        with self._lock:
            if self._channels.get(channel.name) is channel:
                del self._channels[channel.name]


_feed: Optional[ChangeFeed] = None
_feed_lock = threading.Lock()


def get_change_feed() -> ChangeFeed:
    global _feed
    if _feed is None:
        with _feed_lock:
            if _feed is None:
                from mummy_meals.realtime.transport import RedisTransport
                from mummy_meals.utils.settings import REALTIME_PUBLISH_ENABLED

                _feed = ChangeFeed(RedisTransport() if REALTIME_PUBLISH_ENABLED else None)
    return _feed
