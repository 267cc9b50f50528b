#mummy_meals/api/routers/carts.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from mummy_meals.api.deps import get_auth_session, get_feed
from mummy_meals.data.database import get_db
from mummy_meals.domain.errors import NotFoundError
from mummy_meals.domain.schemas import CartAddIn, CartOut, CartQuantityIn
from mummy_meals.domain.session import AuthSession
from mummy_meals.realtime.feed import ChangeFeed
from mummy_meals.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session, feed: ChangeFeed):
    return CartService(db=db, feed=feed)


@router.get("/", response_model=CartOut)
def get_cart(
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
):
    return get_service(db, feed).get_cart(session)


@router.post("/items", response_model=CartOut)
def add_item(
    payload: CartAddIn,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
):
    svc = get_service(db, feed)
    try:
        return svc.add_item(session, payload.menu_item_id, payload.quantity)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch("/items/{line_id}", response_model=CartOut)
def set_quantity(
    line_id: int,
    payload: CartQuantityIn,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
):
    svc = get_service(db, feed)
    try:
        return svc.set_quantity(session, line_id, payload.quantity)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/", response_model=CartOut)
def clear_cart(
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
):
    return get_service(db, feed).clear(session)
