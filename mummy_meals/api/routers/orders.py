# mummy_meals/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from mummy_meals.api.deps import get_auth_session, get_feed, get_notifications
from mummy_meals.data.database import get_db
from mummy_meals.domain.errors import NotFoundError, OrderConflictError
from mummy_meals.domain.schemas import MomSummaryOut, OrderOut, StatusUpdateIn
from mummy_meals.domain.session import AuthSession
from mummy_meals.realtime.feed import ChangeFeed
from mummy_meals.services.notification_service import NotificationService
from mummy_meals.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
    notifications: NotificationService = Depends(get_notifications),
):
    return OrderService(db, feed=feed, notifications=notifications)


@router.get("/", response_model=List[OrderOut])
def list_orders(
    session: AuthSession = Depends(get_auth_session),
    svc: OrderService = Depends(get_service),
):
    """Zamowienia klienta albo kucharza, zaleznie od roli."""
    return svc.list_orders(session)


@router.get("/summary", response_model=MomSummaryOut)
def mom_summary(
    session: AuthSession = Depends(get_auth_session),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.mom_summary(session)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    session: AuthSession = Depends(get_auth_session),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.get_order(session, order_id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/{order_id}/status", response_model=OrderOut)
def update_status(
    order_id: int,
    payload: StatusUpdateIn,
    session: AuthSession = Depends(get_auth_session),
    svc: OrderService = Depends(get_service),
):
    """
    Kucharz przesuwa status (placed -> preparing -> ready).
    Przeskoki i cofanie -> 400, ktos byl szybszy -> 409.
    """
    try:
        return svc.advance_status(session, order_id, payload.status)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OrderConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(
    order_id: int,
    session: AuthSession = Depends(get_auth_session),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.cancel(session, order_id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OrderConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
