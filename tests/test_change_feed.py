import json
from unittest.mock import MagicMock

import pytest

from mummy_meals.realtime.feed import (
    ChangeEvent,
    ChangeFeed,
    ChangeOp,
    RowFilter,
    Topic,
    channel_name,
)
from mummy_meals.realtime.transport import RedisTransport, format_sse, redis_channel


def event(topic=Topic.ORDERS, op=ChangeOp.UPDATE, **row):
    return ChangeEvent(topic=topic, op=op, row=row)


def test_row_filter_matches_by_string_value():
    assert RowFilter("customer_id", "5").matches({"customer_id": 5})
    assert not RowFilter("customer_id", 5).matches({"customer_id": 6})
    assert not RowFilter("customer_id", 5).matches({})


def test_subscribers_get_only_their_topic_and_rows(feed):
    mine, everything, chat = [], [], []
    feed.subscribe(Topic.ORDERS, mine.append, RowFilter("customer_id", 1))
    feed.subscribe(Topic.ORDERS, everything.append)
    feed.subscribe(Topic.CHAT_MESSAGES, chat.append)

    feed.publish(event(customer_id=1, id=10))
    feed.publish(event(customer_id=2, id=11))

    assert [e.row["id"] for e in mine] == [10]
    assert [e.row["id"] for e in everything] == [10, 11]
    assert chat == []


def test_events_arrive_in_publish_order(feed):
    seen = []
    feed.subscribe(Topic.ORDERS, lambda e: seen.append(e.row["status"]))

    for status in ("placed", "preparing", "ready"):
        feed.publish(event(id=1, status=status))

    assert seen == ["placed", "preparing", "ready"]


def test_unsubscribe_is_idempotent(feed):
    seen = []
    sub = feed.subscribe(Topic.ORDERS, seen.append)

    sub.unsubscribe()
    sub.unsubscribe()
    feed.publish(event(id=1))

    assert seen == []
    assert feed.subscription_count == 0


def test_channel_groups_and_closes_subscriptions(feed):
    seen = []
    name = channel_name([Topic.ORDERS, Topic.CART_ITEMS], 7)
    ch = feed.channel(name).on(Topic.ORDERS, seen.append).on(Topic.CART_ITEMS, seen.append)

    assert name == "cart_items+orders:7"
    assert feed.subscription_count == 2

    ch.close()
    ch.close()
    feed.publish(event(id=1))

    assert seen == []
    assert feed.subscription_count == 0
    assert not feed.has_channel(name)


def test_duplicate_open_channel_is_rejected(feed):
    ch = feed.channel("orders:1")

    with pytest.raises(ValueError):
        feed.channel("orders:1")

    ch.close()
    feed.channel("orders:1")


def test_closed_channel_cannot_take_new_subscriptions(feed):
    ch = feed.channel("orders:1")
    ch.close()

    with pytest.raises(RuntimeError):
        ch.on(Topic.ORDERS, lambda e: None)


def test_failing_handler_does_not_stop_delivery(feed):
    seen = []

    def broken(e):
        raise RuntimeError("boom")

    feed.subscribe(Topic.ORDERS, broken)
    feed.subscribe(Topic.ORDERS, seen.append)

    assert feed.publish(event(id=1)) == 1
    assert len(seen) == 1


def test_handler_can_unsubscribe_another_during_publish(feed):
    seen = []
    second = None

    def first(e):
        second.unsubscribe()

    feed.subscribe(Topic.ORDERS, first)
    second = feed.subscribe(Topic.ORDERS, seen.append)

    feed.publish(event(id=1))

    assert seen == []


def test_transport_failure_is_logged_not_raised():
    transport = MagicMock()
    transport.publish.side_effect = ConnectionError("redis down")
    feed = ChangeFeed(transport)
    seen = []
    feed.subscribe(Topic.ORDERS, seen.append)

    assert feed.publish(event(id=1)) == 1
    assert len(seen) == 1


def test_redis_transport_publishes_json_per_topic(redis_client):
    pubsub = redis_client.pubsub(ignore_subscribe_messages=True)
    pubsub.subscribe(redis_channel(Topic.ORDERS, "test"))
    transport = RedisTransport(client=redis_client, prefix="test")

    transport.publish(event(id=3, status="ready"))

    message = None
    for _ in range(10):
        message = pubsub.get_message(timeout=0.1)
        if message:
            break
    payload = json.loads(message["data"])
    assert message["channel"] == "test:orders"
    assert payload["row"] == {"id": 3, "status": "ready"}
    assert payload["op"] == "UPDATE"


def test_format_sse():
    assert format_sse("change", {"a": 1}) == 'event: change\ndata: {"a": 1}\n\n'
