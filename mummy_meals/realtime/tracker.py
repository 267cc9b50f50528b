# mummy_meals/realtime/tracker.py
"""
Strona konsumenta: sledzenie zamowienia i pozycji partnera na zywo.

Lokalizacja jest subskrybowana po partner_id, wiec ma sens tylko dopoki
zamowienie jest `picked_up` - potem subskrypcja jest zamykana.
"""
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from mummy_meals.domain.status import OrderStatus
from mummy_meals.realtime.feed import (
    Channel,
    ChangeEvent,
    ChangeFeed,
    ChangeOp,
    RowFilter,
    Topic,
    channel_name,
)
from mummy_meals.utils.logging import get_logger

logger = get_logger(__name__)


def _parse_ts(value) -> datetime:
    if isinstance(value, datetime):
        ts = value
    else:
        ts = datetime.fromisoformat(str(value))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass(frozen=True)
class TrailPoint:
    latitude: float
    longitude: float
    updated_at: datetime


class LocationTrail:
    """Ograniczone okno ostatnich pozycji (historia tylko po stronie klienta)."""

    def __init__(self, maxlen: int = 50):
        self._points: deque = deque(maxlen=maxlen)

    def push(self, latitude: float, longitude: float, updated_at) -> TrailPoint:
        point = TrailPoint(float(latitude), float(longitude), _parse_ts(updated_at))
        self._points.append(point)
        return point

    @property
    def latest(self) -> Optional[TrailPoint]:
        return self._points[-1] if self._points else None

    @property
    def points(self) -> List[TrailPoint]:
        return list(self._points)

    def seconds_since_update(self, now: datetime | None = None) -> Optional[float]:
        if not self._points:
            return None
        now = now or datetime.now(timezone.utc)
        return max(0.0, (now - self._points[-1].updated_at).total_seconds())

    def __len__(self) -> int:
        return len(self._points)


class OrderTracker:
    def __init__(
        self,
        feed: ChangeFeed,
        order_id: int,
        fetch_order: Callable[[], Dict[str, Any]],
        owner_id: Any,
        trail_size: int = 50,
        on_location: Optional[Callable[[TrailPoint], None]] = None,
    ):
        self.feed = feed
        self.order_id = order_id
        self.owner_id = owner_id
        self._fetch_order = fetch_order
        self._on_location = on_location
        self.trail = LocationTrail(trail_size)
        self.order: Optional[Dict[str, Any]] = None
        self._order_channel: Optional[Channel] = None
        self._location_channel: Optional[Channel] = None
        self._location_partner: Optional[int] = None
        self.closed = False

    def start(self) -> "OrderTracker":
        name = channel_name([Topic.ORDERS], f"order-{self.order_id}-{self.owner_id}")
        self._order_channel = self.feed.channel(name).on(
            Topic.ORDERS, self._on_order_change, RowFilter("id", self.order_id)
        )
        self.refresh()
        return self

    @property
    def tracking_location(self) -> bool:
        return self._location_channel is not None

    def refresh(self) -> None:
        if self.closed:
            return
        self.order = self._fetch_order()
        self._sync_location_channel()

    def _on_order_change(self, event: ChangeEvent) -> None:
        #nie skladamy diffa, tylko pobieramy zamowienie od nowa
        self.refresh()

    def _sync_location_channel(self) -> None:
        status = self.order.get("status") if self.order else None
        partner_id = self.order.get("delivery_partner_id") if self.order else None
        wanted = status == OrderStatus.PICKED_UP.value and partner_id is not None

        if wanted and partner_id == self._location_partner:
            return
        self._close_location_channel()
        if not wanted:
            return

        #osobny kanal na zamowienie, jeden partner moze wiezc kilka zamowien tego samego klienta
        owner = f"partner-{partner_id}-order-{self.order_id}-{self.owner_id}"
        name = channel_name([Topic.DELIVERY_PARTNER_LOCATIONS], owner)
        self._location_channel = self.feed.channel(name).on(
            Topic.DELIVERY_PARTNER_LOCATIONS,
            self._on_location_change,
            RowFilter("partner_id", partner_id),
        )
        self._location_partner = partner_id
        logger.info(f"Tracking partner {partner_id} for order {self.order_id}")

    def _on_location_change(self, event: ChangeEvent) -> None:
        if event.op == ChangeOp.DELETE:
            return
        row = event.row
        point = self.trail.push(row["latitude"], row["longitude"], row["updated_at"])
        if self._on_location is not None:
            self._on_location(point)

    def _close_location_channel(self) -> None:
        if self._location_channel is not None:
            self._location_channel.close()
            logger.info(f"Stopped tracking partner {self._location_partner} for order {self.order_id}")
        self._location_channel = None
        self._location_partner = None

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._close_location_channel()
        if self._order_channel is not None:
            self._order_channel.close()
            self._order_channel = None
