from decimal import Decimal

import pytest

from mummy_meals.domain.errors import InvalidTransitionError, NotFoundError
from mummy_meals.domain.schemas import MenuItemCreate
from mummy_meals.realtime.feed import ChangeOp, RowFilter, Topic
from mummy_meals.services.chat_service import ChatService
from mummy_meals.services.feedback_service import FeedbackService
from mummy_meals.services.menu_service import MenuService


def test_order_parties_can_chat(db, world, make_order, feed):
    order = make_order(status="picked_up", partner_id=3)
    svc = ChatService(db, feed)
    events = []
    feed.subscribe(Topic.CHAT_MESSAGES, events.append, RowFilter("order_id", order.id))

    svc.post(world.customer, order.id, "  Please ring the bell  ")
    svc.post(world.partner, order.id, "Two minutes away")
    svc.post(world.mom, order.id, "Packed extra pickle")

    messages = svc.list(world.customer, order.id)
    assert [m.content for m in messages] == ["Please ring the bell", "Two minutes away", "Packed extra pickle"]
    assert [m.sender_id for m in messages] == [1, 3, 2]
    assert [e.op for e in events] == [ChangeOp.INSERT] * 3


def test_outsiders_cannot_chat(db, world, make_order, feed):
    order = make_order()
    svc = ChatService(db, feed)

    with pytest.raises(PermissionError):
        svc.post(world.other_customer, order.id, "hi")
    with pytest.raises(PermissionError):
        svc.list(world.partner, order.id)
    with pytest.raises(NotFoundError):
        svc.list(world.customer, 999)


def test_chat_message_length(db, world, make_order, feed):
    order = make_order()
    svc = ChatService(db, feed)

    with pytest.raises(ValueError):
        svc.post(world.customer, order.id, "   ")
    with pytest.raises(ValueError):
        svc.post(world.customer, order.id, "x" * 2001)


def test_feedback_once_per_delivered_order(db, world, make_order, feed):
    delivered = make_order(status="delivered", partner_id=3)
    svc = FeedbackService(db, feed)

    feedback = svc.submit(world.customer, delivered.id, 5, "Just like home")
    assert feedback.rating == 5

    with pytest.raises(ValueError):
        svc.submit(world.customer, delivered.id, 4)


def test_feedback_rules(db, world, make_order, feed):
    placed = make_order()
    delivered = make_order(status="delivered", partner_id=3)
    svc = FeedbackService(db, feed)

    with pytest.raises(InvalidTransitionError):
        svc.submit(world.customer, placed.id, 4)
    with pytest.raises(PermissionError):
        svc.submit(world.other_customer, delivered.id, 4)
    with pytest.raises(ValueError):
        svc.submit(world.customer, delivered.id, 6)


def test_menu_ratings_average_per_item(db, world, make_order, feed):
    svc = FeedbackService(db, feed)
    first = make_order(status="delivered", partner_id=3)
    second = make_order(status="delivered", partner_id=3, customer_id=5)
    svc.submit(world.customer, first.id, 5)
    svc.submit(world.other_customer, second.id, 4)

    assert svc.menu_ratings() == [{"menu_item_id": world.dal.id, "avg_rating": 4.5, "rating_count": 2}]


def test_mom_manages_menu(db, world, feed):
    svc = MenuService(db, feed)
    events = []
    feed.subscribe(Topic.MENU_ITEMS, events.append)

    item = svc.create_item(world.mom, MenuItemCreate(title="Rajma Chawal", price=Decimal("120")))
    assert item.mom_id == 2
    assert len(svc.list_available()) == 3

    svc.set_availability(world.mom, item.id, False)
    assert item.id not in [i.id for i in svc.list_available()]
    assert len(svc.list_mine(world.mom)) == 3
    assert [e.op for e in events] == [ChangeOp.INSERT, ChangeOp.UPDATE]
    assert events[1].row["available"] is False


def test_menu_ownership(db, world, feed):
    svc = MenuService(db, feed)

    with pytest.raises(PermissionError):
        svc.create_item(world.customer, MenuItemCreate(title="Tea", price=Decimal("10")))
    with pytest.raises(PermissionError):
        svc.set_availability(world.other_mom, world.dal.id, False)
    with pytest.raises(NotFoundError):
        svc.set_availability(world.mom, 999, False)
