import pytest

from mummy_meals.domain.errors import LocationSharingDisabledError, NotFoundError
from mummy_meals.realtime.feed import ChangeOp, RowFilter, Topic
from mummy_meals.services.location_service import LocationService


@pytest.fixture
def svc(db, feed):
    return LocationService(db, feed)


def test_report_requires_sharing(svc, world):
    with pytest.raises(LocationSharingDisabledError):
        svc.report_position(world.partner, 12.97, 77.59)


def test_latest_position_wins(svc, world):
    svc.set_sharing(world.partner, True)

    svc.report_position(world.partner, 12.97, 77.59)
    latest = svc.report_position(world.partner, 12.98, 77.60)

    assert (latest["latitude"], latest["longitude"]) == (12.98, 77.60)
    assert svc.get_location(world.partner, 3)["latitude"] == 12.98
    assert latest["age_seconds"] >= 0


def test_subscriber_sees_one_update_then_nothing_after_sharing_off(svc, world, feed):
    svc.set_sharing(world.partner, True)
    svc.report_position(world.partner, 12.97, 77.59)

    received = []
    feed.subscribe(Topic.DELIVERY_PARTNER_LOCATIONS, received.append, RowFilter("partner_id", 3))

    svc.report_position(world.partner, 12.99, 77.61)
    svc.set_sharing(world.partner, False)
    with pytest.raises(LocationSharingDisabledError):
        svc.report_position(world.partner, 13.00, 77.62)

    assert len(received) == 1
    assert received[0].op == ChangeOp.UPDATE
    assert received[0].row["latitude"] == 12.99


def test_first_report_is_an_insert(svc, world, feed):
    events = []
    feed.subscribe(Topic.DELIVERY_PARTNER_LOCATIONS, events.append)
    svc.set_sharing(world.partner, True)

    svc.report_position(world.partner, 1.0, 2.0)

    assert [e.op for e in events] == [ChangeOp.INSERT]


def test_coordinates_are_range_checked(svc, world):
    svc.set_sharing(world.partner, True)

    with pytest.raises(ValueError):
        svc.report_position(world.partner, 91, 0)
    with pytest.raises(ValueError):
        svc.report_position(world.partner, 0, -181)


def test_only_partners_share(svc, world):
    with pytest.raises(PermissionError):
        svc.set_sharing(world.customer, True)
    with pytest.raises(PermissionError):
        svc.report_position(world.customer, 1.0, 1.0)


def test_customer_reads_location_only_during_active_delivery(svc, world, make_order, db):
    svc.set_sharing(world.partner, True)
    svc.report_position(world.partner, 12.97, 77.59)

    with pytest.raises(PermissionError):
        svc.get_location(world.customer, 3)

    order = make_order(status="picked_up", partner_id=3)
    assert svc.get_location(world.customer, 3)["partner_id"] == 3
    assert svc.get_location(world.mom, 3)["partner_id"] == 3
    with pytest.raises(PermissionError):
        svc.get_location(world.other_customer, 3)

    order.status = "delivered"
    db.commit()
    with pytest.raises(PermissionError):
        svc.get_location(world.customer, 3)


def test_location_missing_before_first_report(svc, world):
    with pytest.raises(NotFoundError):
        svc.get_location(world.partner, 3)
