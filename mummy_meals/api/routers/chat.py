# mummy_meals/api/routers/chat.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from mummy_meals.api.deps import get_auth_session, get_feed
from mummy_meals.data.database import get_db
from mummy_meals.domain.errors import NotFoundError
from mummy_meals.domain.schemas import ChatMessageIn, ChatMessageOut
from mummy_meals.domain.session import AuthSession
from mummy_meals.realtime.feed import ChangeFeed
from mummy_meals.services.chat_service import ChatService

router = APIRouter(prefix="/orders/{order_id}/messages", tags=["chat"])


@router.get("/", response_model=List[ChatMessageOut])
def list_messages(
    order_id: int,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
):
    try:
        return ChatService(db, feed).list(session, order_id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/", response_model=ChatMessageOut, status_code=201)
def post_message(
    order_id: int,
    payload: ChatMessageIn,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
):
    try:
        return ChatService(db, feed).post(session, order_id, payload.content)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
