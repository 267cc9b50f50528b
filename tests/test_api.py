from unittest.mock import MagicMock, patch

import redis

from mummy_meals.api import deps
from mummy_meals.domain.errors import CartConflictError
from mummy_meals.services.checkout_service import CheckoutService
from mummy_meals.services.lock_service import LockService

from tests.conftest import SHIPPING


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_users_are_created_once(client):
    body = {"id": 50, "name": "Kiran", "role": "delivery_partner"}

    assert client.post("/users/", json=body).json()["role"] == "delivery_partner"
    assert client.post("/users/", json={**body, "name": "Other"}).json()["name"] == "Kiran"
    assert client.get("/users/50").status_code == 200
    assert client.get("/users/51").status_code == 404


def test_unknown_user_is_unauthorized(client, world):
    assert client.get("/cart/", params={"user_id": 999}).status_code == 401


def test_full_cod_flow_over_http(client, world):
    r = client.post("/cart/items", params={"user_id": 1}, json={"menu_item_id": world.dal.id, "quantity": 2})
    assert r.status_code == 200
    client.post("/cart/items", params={"user_id": 1}, json={"menu_item_id": world.paneer.id, "quantity": 1})

    r = client.post("/checkout/cod", params={"user_id": 1}, json={"shipping_details": SHIPPING})
    assert r.status_code == 201
    orders = r.json()
    assert sorted(float(o["total_amount"]) for o in orders) == [150.0, 160.0]
    assert client.get("/cart/", params={"user_id": 1}).json()["items"] == []

    dal_order = next(o for o in orders if o["menu_title"] == "Dal Rice")
    oid = dal_order["id"]
    for status in ("preparing", "ready"):
        r = client.patch(f"/orders/{oid}/status", params={"user_id": 2}, json={"status": status})
        assert r.json()["status"] == status

    available = client.get("/deliveries/available", params={"user_id": 3}).json()
    assert [o["id"] for o in available] == [oid]
    assert float(available[0]["payout"]) == 40.0

    assert client.post(f"/deliveries/{oid}/claim", params={"user_id": 3}).status_code == 200
    assert client.post(f"/deliveries/{oid}/claim", params={"user_id": 4}).status_code == 409

    r = client.post(f"/deliveries/{oid}/complete", params={"user_id": 3})
    assert r.json()["status"] == "delivered"

    r = client.post("/feedback/", params={"user_id": 1}, json={"order_id": oid, "rating": 5})
    assert r.status_code == 201
    assert client.get("/feedback/ratings").json()[0]["avg_rating"] == 5.0


def test_skipping_status_is_400(client, world, make_order):
    order = make_order()

    r = client.patch(f"/orders/{order.id}/status", params={"user_id": 2}, json={"status": "ready"})

    assert r.status_code == 400


def test_foreign_order_is_403(client, world, make_order):
    order = make_order()

    assert client.get(f"/orders/{order.id}", params={"user_id": 5}).status_code == 403
    assert client.get("/orders/999", params={"user_id": 1}).status_code == 404


def test_invalid_shipping_is_rejected_before_provider(client, world, gateway):
    client.post("/cart/items", params={"user_id": 1}, json={"menu_item_id": world.dal.id})

    bad = {**SHIPPING, "pincode": "56001"}
    r = client.post("/checkout/session", params={"user_id": 1}, json={"shipping_details": bad})

    assert r.status_code == 400
    assert r.json()["error"] == "Invalid request"
    assert gateway.created == []


def test_empty_cart_checkout_returns_error_body(client, world, gateway):
    r = client.post("/checkout/session", params={"user_id": 1}, json={"shipping_details": SHIPPING})

    assert r.status_code == 400
    assert r.json() == {"error": "Cart is empty"}
    assert gateway.created == []


def test_card_checkout_and_idempotent_fulfill(client, world, gateway):
    client.post("/cart/items", params={"user_id": 1}, json={"menu_item_id": world.paneer.id, "quantity": 1})

    r = client.post(
        "/checkout/session",
        params={"user_id": 1},
        json={"shipping_details": SHIPPING},
        headers={"Origin": "https://shop.example"},
    )
    sid = r.json()["sessionId"]
    assert gateway.created[0]["cancel_url"] == "https://shop.example/payment-cancel"

    r = client.post("/checkout/fulfill", json={"session_id": sid})
    assert r.status_code == 400
    assert r.json() == {"error": "Payment not successful"}

    gateway.mark_paid(sid)
    first = client.post("/checkout/fulfill", json={"session_id": sid}).json()
    second = client.post("/checkout/fulfill", json={"session_id": sid}).json()

    assert first["created"] is True
    assert second["created"] is False
    assert first["order_ids"] == second["order_ids"]
    assert client.get("/checkout/verify", params={"session_id": sid}).json()["status"] == "paid"


def test_fulfill_validates_session_id(client):
    r = client.post("/checkout/fulfill", json={"session_id": "cs_bad!"})

    assert r.status_code == 400


def test_location_over_http(client, world, make_order):
    assert client.post("/locations/me", params={"user_id": 3}, json={"latitude": 1, "longitude": 2}).status_code == 409

    client.put("/locations/sharing", params={"user_id": 3}, json={"enabled": True})
    r = client.post("/locations/me", params={"user_id": 3}, json={"latitude": 12.9, "longitude": 77.5})
    assert r.status_code == 200

    assert client.get("/locations/3", params={"user_id": 1}).status_code == 403
    make_order(status="picked_up", partner_id=3)
    assert client.get("/locations/3", params={"user_id": 1}).json()["latitude"] == 12.9

    r = client.post("/locations/me", params={"user_id": 3}, json={"latitude": 95, "longitude": 0})
    assert r.status_code == 400


def test_chat_over_http(client, world, make_order):
    order = make_order()

    r = client.post(f"/orders/{order.id}/messages/", params={"user_id": 1}, json={"content": "hello"})
    assert r.status_code == 201
    assert client.post(f"/orders/{order.id}/messages/", params={"user_id": 5}, json={"content": "hi"}).status_code == 403
    assert [m["content"] for m in client.get(f"/orders/{order.id}/messages/", params={"user_id": 2}).json()] == ["hello"]


def test_realtime_requires_scoped_filters(client, world, make_order):
    order = make_order()

    assert client.get("/realtime/events", params={"user_id": 1, "topics": "orders"}).status_code == 403
    assert client.get("/realtime/events", params={"user_id": 1, "topics": "nope"}).status_code == 400
    r = client.get(
        "/realtime/events",
        params={"user_id": 1, "topics": "orders", "column": "customer_id", "value": "5"},
    )
    assert r.status_code == 403
    r = client.get(
        "/realtime/events",
        params={"user_id": 5, "topics": "orders,chat_messages", "column": "order_id", "value": str(order.id)},
    )
    assert r.status_code == 403
    r = client.get("/realtime/events", params={"user_id": 1, "topics": "orders", "column": "customer_id"})
    assert r.status_code == 400


def test_fulfill_with_redis_down_returns_error_body(client, world, gateway):
    client.post("/cart/items", params={"user_id": 1}, json={"menu_item_id": world.dal.id})
    sid = client.post("/checkout/session", params={"user_id": 1}, json={"shipping_details": SHIPPING}).json()["sessionId"]
    gateway.mark_paid(sid)

    broken = MagicMock()
    broken.set.side_effect = redis.ConnectionError("Connection refused")
    client.app.dependency_overrides[deps.get_lock_service] = lambda: LockService(client=broken)

    r = client.post("/checkout/fulfill", json={"session_id": sid})

    assert r.status_code == 503
    assert r.json() == {"error": "Checkout temporarily unavailable, please retry"}
    assert client.get("/orders/", params={"user_id": 1}).json() == []


def test_overlapping_cod_checkout_is_409(client, world):
    client.post("/cart/items", params={"user_id": 1}, json={"menu_item_id": world.dal.id})

    with patch.object(CheckoutService, "place_cod_order", side_effect=CartConflictError(1)):
        r = client.post("/checkout/cod", params={"user_id": 1}, json={"shipping_details": SHIPPING})

    assert r.status_code == 409
    assert "Cart changed" in r.json()["error"]
