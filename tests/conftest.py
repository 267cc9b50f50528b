import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTO_CREATE_TABLES"] = "0"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "1"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"
os.environ["REALTIME_PUBLISH_ENABLED"] = "0"

from decimal import Decimal
from types import SimpleNamespace

import fakeredis
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from mummy_meals.api import deps
from mummy_meals.data import models  # noqa: F401
from mummy_meals.data.database import Base, get_db
from mummy_meals.data.models.menu_item import MenuItemModel
from mummy_meals.data.models.order import OrderModel
from mummy_meals.data.models.user import UserModel
from mummy_meals.domain.errors import PaymentProviderError
from mummy_meals.domain.session import AuthSession
from mummy_meals.domain.status import Role
from mummy_meals.realtime.feed import ChangeFeed
from mummy_meals.services.lock_service import LockService

SHIPPING = {
    "full_name": "Asha Rao",
    "phone": "9876543210",
    "address": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "pincode": "560001",
}


class RecordingNotifications:
    def __init__(self):
        self.sent = []

    def send_order_status_notification(self, customer_id, order_id, status, menu_title=None):
        self.sent.append((customer_id, order_id, status))


class FakePaymentGateway:
    """Provider platnosci w pamieci, ten sam interfejs co PaymentClient."""

    def __init__(self):
        self.sessions = {}
        self.created = []

    def create_checkout_session(self, line_items, success_url, cancel_url, metadata):
        session_id = f"cs_test_{len(self.sessions) + 1}"
        self.sessions[session_id] = {
            "id": session_id,
            "url": f"https://pay.example/{session_id}",
            "status": "open",
            "payment_status": "unpaid",
            "metadata": dict(metadata),
            "amount_total": sum(li["price_data"]["unit_amount"] * li["quantity"] for li in line_items),
        }
        self.created.append(
            {
                "line_items": line_items,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "metadata": metadata,
            }
        )
        return dict(self.sessions[session_id])

    def retrieve_checkout_session(self, session_id):
        if session_id not in self.sessions:
            raise PaymentProviderError("Payment provider is unavailable")
        return dict(self.sessions[session_id])

    def mark_paid(self, session_id):
        self.sessions[session_id]["payment_status"] = "paid"
        self.sessions[session_id]["status"] = "complete"


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def feed():
    return ChangeFeed()


@pytest.fixture
def notifications():
    return RecordingNotifications()


@pytest.fixture
def gateway():
    return FakePaymentGateway()


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def lock_service(redis_client):
    return LockService(client=redis_client)


@pytest.fixture
def world(db):
    """Dwoch klientow, kucharz, dwoch partnerow i menu kucharza."""
    db.add_all(
        [
            UserModel(id=1, name="Asha", role=Role.CUSTOMER.value, phone="9876543210"),
            UserModel(id=2, name="Lakshmi", role=Role.MOM.value),
            UserModel(id=3, name="Ravi", role=Role.DELIVERY_PARTNER.value),
            UserModel(id=4, name="Imran", role=Role.DELIVERY_PARTNER.value),
            UserModel(id=5, name="Meera", role=Role.CUSTOMER.value),
            UserModel(id=6, name="Sunita", role=Role.MOM.value),
        ]
    )
    dal = MenuItemModel(mom_id=2, title="Dal Rice", price=Decimal("80.00"))
    paneer = MenuItemModel(mom_id=2, title="Paneer", price=Decimal("150.00"))
    db.add_all([dal, paneer])
    db.commit()

    return SimpleNamespace(
        customer=AuthSession(1, Role.CUSTOMER),
        mom=AuthSession(2, Role.MOM),
        partner=AuthSession(3, Role.DELIVERY_PARTNER),
        other_partner=AuthSession(4, Role.DELIVERY_PARTNER),
        other_customer=AuthSession(5, Role.CUSTOMER),
        other_mom=AuthSession(6, Role.MOM),
        dal=dal,
        paneer=paneer,
    )


@pytest.fixture
def make_order(db, world):
    def _make(status="placed", customer_id=1, partner_id=None, quantity=1, delivery_fee=None):
        order = OrderModel(
            customer_id=customer_id,
            mom_id=2,
            menu_item_id=world.dal.id,
            delivery_partner_id=partner_id,
            quantity=quantity,
            total_amount=Decimal("80.00") * quantity,
            delivery_fee=delivery_fee,
            status=status,
            payment_method="cash_on_delivery",
            shipping_details=dict(SHIPPING),
            customer_phone=SHIPPING["phone"],
        )
        db.add(order)
        db.commit()
        return order

    return _make


@pytest.fixture
def client(session_factory, feed, notifications, gateway, lock_service):
    from mummy_meals.main import create_app

    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_feed] = lambda: feed
    app.dependency_overrides[deps.get_notifications] = lambda: notifications
    app.dependency_overrides[deps.get_payment_client] = lambda: gateway
    app.dependency_overrides[deps.get_lock_service] = lambda: lock_service

    return TestClient(app)
