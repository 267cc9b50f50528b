# mummy_meals/api/routers/menu.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from mummy_meals.api.deps import get_auth_session, get_feed
from mummy_meals.data.database import get_db
from mummy_meals.domain.errors import NotFoundError
from mummy_meals.domain.schemas import AvailabilityIn, MenuItemCreate, MenuItemOut
from mummy_meals.domain.session import AuthSession
from mummy_meals.realtime.feed import ChangeFeed
from mummy_meals.services.menu_service import MenuService

router = APIRouter(prefix="/menu", tags=["menu"])


@router.get("/", response_model=List[MenuItemOut])
def list_menu(db: Session = Depends(get_db), feed: ChangeFeed = Depends(get_feed)):
    return MenuService(db, feed).list_available()


@router.get("/mine", response_model=List[MenuItemOut])
def list_my_menu(
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
):
    try:
        return MenuService(db, feed).list_mine(session)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.post("/", response_model=MenuItemOut, status_code=201)
def create_menu_item(
    payload: MenuItemCreate,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
):
    try:
        return MenuService(db, feed).create_item(session, payload)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.patch("/{item_id}/availability", response_model=MenuItemOut)
def set_availability(
    item_id: int,
    payload: AvailabilityIn,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
):
    try:
        return MenuService(db, feed).set_availability(session, item_id, payload.available)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
