# mummy_meals/api/routers/checkout.py
from typing import List

import redis
from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from mummy_meals.api.deps import (
    get_auth_session,
    get_feed,
    get_lock_service,
    get_notifications,
    get_payment_client,
)
from mummy_meals.data.database import get_db
from mummy_meals.domain.errors import CartConflictError, NotFoundError, PaymentError
from mummy_meals.domain.schemas import (
    SESSION_ID_PATTERN,
    CheckoutIn,
    CheckoutSessionOut,
    FulfillmentOut,
    OrderOut,
    SessionIdIn,
    VerifySessionOut,
)
from mummy_meals.domain.session import AuthSession
from mummy_meals.realtime.feed import ChangeFeed
from mummy_meals.services.checkout_service import CheckoutService
from mummy_meals.services.lock_service import LockService
from mummy_meals.services.notification_service import NotificationService
from mummy_meals.services.payment_client import PaymentClient
from mummy_meals.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/checkout", tags=["checkout"])


def get_service(
    db: Session = Depends(get_db),
    payment_client: PaymentClient = Depends(get_payment_client),
    lock_service: LockService = Depends(get_lock_service),
    feed: ChangeFeed = Depends(get_feed),
    notifications: NotificationService = Depends(get_notifications),
):
    return CheckoutService(
        db,
        payment_client=payment_client,
        lock_service=lock_service,
        feed=feed,
        notifications=notifications,
    )


def error_response(e: Exception | str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(e)})


@router.post("/cod", response_model=List[OrderOut], status_code=201)
def place_cod_order(
    payload: CheckoutIn,
    session: AuthSession = Depends(get_auth_session),
    svc: CheckoutService = Depends(get_service),
):
    try:
        return svc.place_cod_order(session, payload.shipping_details)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except CartConflictError as e:
        return error_response(e, status_code=409)
    except ValueError as e:
        return error_response(e)


@router.post("/session", response_model=CheckoutSessionOut)
def create_checkout_session(
    payload: CheckoutIn,
    session: AuthSession = Depends(get_auth_session),
    origin: str | None = Header(None),
    svc: CheckoutService = Depends(get_service),
):
    try:
        return svc.create_checkout_session(session, payload.shipping_details, origin)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except (ValueError, PaymentError) as e:
        return error_response(e)


@router.get("/verify", response_model=VerifySessionOut)
def verify_session(
    session_id: str = Query(..., pattern=SESSION_ID_PATTERN),
    svc: CheckoutService = Depends(get_service),
):
    try:
        return svc.verify_session(session_id)
    except (ValueError, PaymentError) as e:
        return error_response(e)


@router.post("/fulfill", response_model=FulfillmentOut)
def fulfill(payload: SessionIdIn, svc: CheckoutService = Depends(get_service)):
    """
    Wolane ze strony powrotu po platnosci (i przez reconcile).
    Drugie wywolanie dla tej samej sesji zwraca istniejace zamowienia.
    """
    try:
        orders, created = svc.fulfill(payload.session_id)
    except NotFoundError as e:
        return error_response(e, status_code=404)
    except CartConflictError as e:
        return error_response(e, status_code=409)
    except redis.RedisError as e:
        #bez locka nie realizujemy, klient moze ponowic
        logger.error(f"Checkout lock unavailable for {payload.session_id}: {e}")
        return error_response("Checkout temporarily unavailable, please retry", status_code=503)
    except (ValueError, PaymentError) as e:
        logger.warning(f"Fulfillment of {payload.session_id} rejected: {e}")
        return error_response(e)

    return {
        "success": True,
        "message": "Orders created successfully" if created else "Orders already created",
        "order_ids": [o.id for o in orders],
        "created": created,
    }
