# mummy_meals/api/routers/realtime.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from mummy_meals.api.deps import get_auth_session, get_feed
from mummy_meals.data.database import get_db
from mummy_meals.domain.errors import NotFoundError
from mummy_meals.domain.session import AuthSession
from mummy_meals.realtime.feed import ChangeFeed, RowFilter, Topic
from mummy_meals.realtime.transport import sse_stream
from mummy_meals.repos.order_repo import OrderRepo
from mummy_meals.services.order_service import OrderService

router = APIRouter(prefix="/realtime", tags=["realtime"])

PUBLIC_TOPICS = frozenset({Topic.MENU_ITEMS, Topic.FEEDBACK})
OWNER_COLUMNS = frozenset({"customer_id", "mom_id", "delivery_partner_id", "sender_id"})
ORDER_COLUMNS = frozenset({"id", "order_id"})


def parse_topics(raw: str) -> List[Topic]:
    try:
        topics = [Topic(t.strip()) for t in raw.split(",") if t.strip()]
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not topics:
        raise HTTPException(status_code=400, detail="At least one topic is required")
    return topics


def authorize_filter(session: AuthSession, topics: List[Topic], row_filter: RowFilter | None, db: Session, feed: ChangeFeed) -> None:
    """Kanal musi byc zawezony do wierszy, ktore uzytkownik moze czytac."""
    if row_filter is None:
        if not set(topics) <= PUBLIC_TOPICS:
            raise HTTPException(status_code=403, detail="A row filter is required for these topics")
        return

    column, value = row_filter.column, str(row_filter.value)
    if column in OWNER_COLUMNS:
        if value != str(session.user_id):
            raise HTTPException(status_code=403, detail="Can only subscribe to your own rows")
        return

    if not value.isdigit():
        raise HTTPException(status_code=400, detail="Filter value must be an id")

    if column == "partner_id":
        partner_id = int(value)
        if partner_id != session.user_id and not OrderRepo(db).has_active_delivery(partner_id, session.user_id):
            raise HTTPException(status_code=403, detail="No access to this partner's location")
        return

    if column in ORDER_COLUMNS:
        try:
            OrderService(db, feed=feed).get_order(session, int(value))
        except PermissionError as e:
            raise HTTPException(status_code=403, detail=str(e))
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return

    raise HTTPException(status_code=400, detail=f"Unsupported filter column {column}")


@router.get("/events")
def events(
    topics: str = Query(..., description="np. orders,chat_messages"),
    column: str | None = Query(None),
    value: str | None = Query(None),
    session: AuthSession = Depends(get_auth_session),
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_feed),
):
    """
    Server-Sent Events: `event: change` z wierszem, klient robi re-fetch.
    `event: degraded` gdy redis nie odpowiada.
    """
    parsed = parse_topics(topics)
    if (column is None) != (value is None):
        raise HTTPException(status_code=400, detail="column and value must be given together")
    row_filter = RowFilter(column, value) if column is not None else None
    authorize_filter(session, parsed, row_filter, db, feed)

    return StreamingResponse(
        sse_stream(parsed, row_filter),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
