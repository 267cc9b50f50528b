# mummy_meals/api/routers/feedback.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from mummy_meals.api.deps import get_auth_session, get_feed
from mummy_meals.data.database import get_db
from mummy_meals.domain.errors import NotFoundError
from mummy_meals.domain.schemas import FeedbackIn, FeedbackOut, MenuRatingOut
from mummy_meals.domain.session import AuthSession
from mummy_meals.realtime.feed import ChangeFeed
from mummy_meals.services.feedback_service import FeedbackService

router = APIRouter(prefix="/feedback", tags=["feedback"])


@router.post("/", response_model=FeedbackOut, status_code=201)
def submit_feedback(
    payload: FeedbackIn,
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
):
    try:
        return FeedbackService(db, feed).submit(session, payload.order_id, payload.rating, payload.comment)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/ratings", response_model=List[MenuRatingOut])
def menu_ratings(db: Session = Depends(get_db), feed: ChangeFeed = Depends(get_feed)):
    return FeedbackService(db, feed).menu_ratings()
