from datetime import datetime, timedelta, timezone

from mummy_meals.realtime.feed import ChangeEvent, ChangeOp, Topic
from mummy_meals.realtime.tracker import LocationTrail, OrderTracker


class FakeOrders:
    def __init__(self, **order):
        self.order = {"id": 1, "status": "ready", "delivery_partner_id": None, **order}
        self.fetches = 0

    def fetch(self):
        self.fetches += 1
        return dict(self.order)


def order_event(feed, orders, **changes):
    orders.order.update(changes)
    feed.publish(ChangeEvent(topic=Topic.ORDERS, op=ChangeOp.UPDATE, row=dict(orders.order)))


def location_event(feed, partner_id, lat, lon):
    row = {
        "partner_id": partner_id,
        "latitude": lat,
        "longitude": lon,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }
    feed.publish(ChangeEvent(topic=Topic.DELIVERY_PARTNER_LOCATIONS, op=ChangeOp.UPDATE, row=row))


def test_location_subscription_follows_picked_up_status(feed):
    orders = FakeOrders()
    points = []
    tracker = OrderTracker(feed, 1, orders.fetch, owner_id="c1", on_location=points.append).start()

    assert not tracker.tracking_location
    location_event(feed, 3, 1.0, 1.0)
    assert points == []

    order_event(feed, orders, status="picked_up", delivery_partner_id=3)
    assert tracker.tracking_location
    location_event(feed, 3, 12.9, 77.5)
    location_event(feed, 4, 0.0, 0.0)
    assert [(p.latitude, p.longitude) for p in points] == [(12.9, 77.5)]

    order_event(feed, orders, status="delivered")
    assert not tracker.tracking_location
    location_event(feed, 3, 13.0, 77.6)
    assert len(points) == 1
    assert orders.fetches == 3

    tracker.close()


def test_one_partner_carrying_two_orders_of_same_customer(feed):
    first = FakeOrders(id=1)
    second = FakeOrders(id=2)
    first_points, second_points = [], []
    t1 = OrderTracker(feed, 1, first.fetch, owner_id="c1", on_location=first_points.append).start()
    t2 = OrderTracker(feed, 2, second.fetch, owner_id="c1", on_location=second_points.append).start()

    order_event(feed, first, status="picked_up", delivery_partner_id=3)
    order_event(feed, second, status="picked_up", delivery_partner_id=3)
    location_event(feed, 3, 12.9, 77.5)

    assert t1.tracking_location and t2.tracking_location
    assert [(p.latitude, p.longitude) for p in first_points] == [(12.9, 77.5)]
    assert [(p.latitude, p.longitude) for p in second_points] == [(12.9, 77.5)]

    t1.close()
    t2.close()
    assert feed.subscription_count == 0


def test_other_orders_do_not_trigger_refetch(feed):
    orders = FakeOrders()
    tracker = OrderTracker(feed, 1, orders.fetch, owner_id="c1").start()

    feed.publish(ChangeEvent(topic=Topic.ORDERS, op=ChangeOp.UPDATE, row={"id": 2, "status": "ready"}))

    assert orders.fetches == 1
    tracker.close()


def test_close_is_idempotent_and_releases_everything(feed):
    orders = FakeOrders(status="picked_up", delivery_partner_id=3)
    tracker = OrderTracker(feed, 1, orders.fetch, owner_id="c1").start()
    assert feed.subscription_count == 2

    tracker.close()
    tracker.close()

    assert feed.subscription_count == 0
    order_event(feed, orders, status="delivered")
    assert orders.fetches == 1


def test_same_view_can_be_reopened_after_close(feed):
    orders = FakeOrders()
    OrderTracker(feed, 1, orders.fetch, owner_id="c1").start().close()

    tracker = OrderTracker(feed, 1, orders.fetch, owner_id="c1").start()
    assert tracker.order["id"] == 1
    tracker.close()


def test_trail_is_bounded_and_reports_staleness():
    trail = LocationTrail(maxlen=3)
    start = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    assert trail.latest is None
    assert trail.seconds_since_update() is None

    for i in range(5):
        trail.push(float(i), float(i), start + timedelta(seconds=i))

    assert len(trail) == 3
    assert [p.latitude for p in trail.points] == [2.0, 3.0, 4.0]
    assert trail.seconds_since_update(now=start + timedelta(seconds=10)) == 6.0


def test_trail_accepts_naive_iso_timestamps():
    trail = LocationTrail()
    point = trail.push(1, 2, "2026-01-01T12:00:00")

    assert point.updated_at.tzinfo is not None
