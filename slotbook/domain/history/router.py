"""History router - Read-only audit feed for the reporting UI"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import RequestContext, get_request_context
from ...config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...database import get_db
from ...exceptions import BookingValidationError
from .repository import HistoryRepository
from .schemas import HistoryFeedResponse, edit_entry_response, reschedule_entry_response

router = APIRouter(prefix="/history", tags=["History"])


def _as_naive_utc(value: datetime) -> datetime:
    """History timestamps are stored as naive UTC"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@router.get("", response_model=HistoryFeedResponse)
def get_history_feed(
    start: datetime = Query(..., description="Earliest entry timestamp (UTC)"),
    end: datetime = Query(..., description="Latest entry timestamp (UTC)"),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """Edit and reschedule entries of the whole tenant between two timestamps, newest first"""
    start, end = _as_naive_utc(start), _as_naive_utc(end)
    if start > end:
        raise BookingValidationError("start must be before end")

    repo = HistoryRepository()
    edits = repo.get_edit_feed(db, ctx.tenant_id, start, end, limit)
    reschedules = repo.get_reschedule_feed(db, ctx.tenant_id, start, end, limit)
    return HistoryFeedResponse(
        start=start,
        end=end,
        edits=[edit_entry_response(e) for e in edits],
        reschedules=[reschedule_entry_response(r) for r in reschedules],
    )
