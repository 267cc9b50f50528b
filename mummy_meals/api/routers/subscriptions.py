# mummy_meals/api/routers/subscriptions.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from mummy_meals.api.deps import get_auth_session, get_feed
from mummy_meals.data.database import get_db
from mummy_meals.domain.errors import NotFoundError, SubscriptionConflictError
from mummy_meals.domain.schemas import SubscriptionIn, SubscriptionOut, SubscriptionStatusIn
from mummy_meals.domain.session import AuthSession
from mummy_meals.realtime.feed import ChangeFeed
from mummy_meals.services.subscription_service import SubscriptionService

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


def get_service(db: Session = Depends(get_db), feed: ChangeFeed = Depends(get_feed)):
    return SubscriptionService(db, feed)


@router.post("/", response_model=SubscriptionOut, status_code=201)
def create_subscription(
    payload: SubscriptionIn,
    session: AuthSession = Depends(get_auth_session),
    svc: SubscriptionService = Depends(get_service),
):
    try:
        return svc.create(session, payload)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/", response_model=List[SubscriptionOut])
def list_subscriptions(
    session: AuthSession = Depends(get_auth_session),
    svc: SubscriptionService = Depends(get_service),
):
    try:
        return svc.list_mine(session)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.patch("/{subscription_id}/status", response_model=SubscriptionOut)
def update_subscription_status(
    subscription_id: int,
    payload: SubscriptionStatusIn,
    session: AuthSession = Depends(get_auth_session),
    svc: SubscriptionService = Depends(get_service),
):
    """Pauza (active -> paused), wznowienie (paused -> active) albo rezygnacja."""
    try:
        return svc.change_status(session, subscription_id, payload.status)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SubscriptionConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
