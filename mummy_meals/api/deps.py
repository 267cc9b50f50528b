# mummy_meals/api/deps.py
from fastapi import Depends, HTTPException, Query
from sqlalchemy.orm import Session

from mummy_meals.data.database import get_db
from mummy_meals.domain.errors import NotFoundError
from mummy_meals.domain.session import AuthSession
from mummy_meals.realtime.feed import ChangeFeed, get_change_feed
from mummy_meals.services.lock_service import LockService
from mummy_meals.services.notification_service import NotificationService
from mummy_meals.services.payment_client import PaymentClient
from mummy_meals.services.user_service import UserService


def get_auth_session(user_id: int = Query(...), db: Session = Depends(get_db)) -> AuthSession:
    """
    Tozsamosc daje zewnetrzny provider, tutaj dostajemy tylko user_id
    i ladujemy role z bazy.
    """
    try:
        return UserService(db).load_session(user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=401, detail=str(e))


def get_feed() -> ChangeFeed:
    return get_change_feed()


def get_notifications() -> NotificationService:
    return NotificationService()


def get_payment_client() -> PaymentClient:
    return PaymentClient()


def get_lock_service() -> LockService:
    return LockService()
