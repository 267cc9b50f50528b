# mummy_meals/api/routers/locations.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from mummy_meals.api.deps import get_auth_session, get_feed
from mummy_meals.data.database import get_db
from mummy_meals.domain.errors import LocationSharingDisabledError, NotFoundError
from mummy_meals.domain.schemas import LocationOut, PositionIn, SharingIn, SharingOut
from mummy_meals.domain.session import AuthSession
from mummy_meals.realtime.feed import ChangeFeed
from mummy_meals.services.location_service import LocationService

router = APIRouter(prefix="/locations", tags=["locations"])


@router.put("/sharing", response_model=SharingOut)
def set_sharing(
    payload: SharingIn,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
):
    try:
        return LocationService(db, feed).set_sharing(session, payload.enabled)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/me", response_model=LocationOut)
def report_position(
    payload: PositionIn,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
):
    try:
        return LocationService(db, feed).report_position(session, payload.latitude, payload.longitude)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except LocationSharingDisabledError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{partner_id}", response_model=LocationOut)
def get_location(
    partner_id: int,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
):
    try:
        return LocationService(db, feed).get_location(session, partner_id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
