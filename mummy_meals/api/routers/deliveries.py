# mummy_meals/api/routers/deliveries.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from mummy_meals.api.deps import get_auth_session, get_feed, get_notifications
from mummy_meals.data.database import get_db
from mummy_meals.domain.errors import NotFoundError, OrderConflictError
from mummy_meals.domain.schemas import DeliveryOut
from mummy_meals.domain.session import AuthSession
from mummy_meals.realtime.feed import ChangeFeed
from mummy_meals.services.delivery_service import DeliveryService
from mummy_meals.services.notification_service import NotificationService
from mummy_meals.services.order_service import OrderService

router = APIRouter(prefix="/deliveries", tags=["deliveries"])


@router.get("/available", response_model=List[DeliveryOut])
def available_deliveries(
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
):
    try:
        return OrderService(db, feed=feed).list_available_deliveries(session)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.get("/mine", response_model=List[DeliveryOut])
def my_deliveries(
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
):
    try:
        return OrderService(db, feed=feed).list_my_deliveries(session)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.post("/{order_id}/claim", response_model=DeliveryOut)
def claim_delivery(
    order_id: int,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
    notifications: NotificationService = Depends(get_notifications),
):
    """Pierwszy partner wygrywa, reszta dostaje 409."""
    svc = DeliveryService(db, feed=feed, notifications=notifications)
    try:
        return svc.claim(session, order_id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OrderConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/{order_id}/complete", response_model=DeliveryOut)
def complete_delivery(
    order_id: int,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
    notifications: NotificationService = Depends(get_notifications),
):
    svc = DeliveryService(db, feed=feed, notifications=notifications)
    try:
        return svc.complete(session, order_id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OrderConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
