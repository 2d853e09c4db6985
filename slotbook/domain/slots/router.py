"""Slot router - FastAPI endpoints for the slot store and provisioning"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import RequestContext, get_request_context
from ...database import get_db
from .schemas import (
    BulkSlotCreate,
    BulkSlotResponse,
    CalendarSlotResponse,
    SlotResponse,
    SlotStatsResponse,
    SlotStatusUpdate,
    calendar_slot_response,
    slot_response,
)
from .service import SlotService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/slots", tags=["Slots"])


def get_slot_service(db: Session = Depends(get_db)) -> SlotService:
    """Dependency injection for SlotService"""
    return SlotService(db)


@router.get("/calendar", response_model=dict[str, list[CalendarSlotResponse]])
def get_calendar_slots(
    start: date = Query(..., description="First date, inclusive"),
    end: date = Query(..., description="Last date, inclusive"),
    ctx: RequestContext = Depends(get_request_context),
    service: SlotService = Depends(get_slot_service),
):
    """Slots between two dates grouped by date, with their appointments"""
    calendar = service.get_calendar(ctx.tenant_id, start, end)
    return {
        day: [calendar_slot_response(slot) for slot in slots] for day, slots in calendar.items()
    }


@router.get("/stats", response_model=SlotStatsResponse)
def get_slot_stats(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    ctx: RequestContext = Depends(get_request_context),
    service: SlotService = Depends(get_slot_service),
):
    """Slot counts per status"""
    return SlotStatsResponse(**service.get_stats(ctx.tenant_id, start, end))


@router.post("/bulk", response_model=BulkSlotResponse, status_code=201)
def create_slots_in_bulk(
    data: BulkSlotCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: SlotService = Depends(get_slot_service),
):
    """Append slots to a date, numbered after the existing ones"""
    slots = service.create_slots_in_bulk(ctx.tenant_id, data.date, data.quantity)
    return BulkSlotResponse(
        date=data.date, created=len(slots), slots=[slot_response(slot) for slot in slots]
    )


@router.get("/{slot_date}/{slot_number}", response_model=SlotResponse)
def get_slot(
    slot_date: date,
    slot_number: int,
    ctx: RequestContext = Depends(get_request_context),
    service: SlotService = Depends(get_slot_service),
):
    return slot_response(service.get_slot(ctx.tenant_id, slot_date, slot_number))


@router.patch("/{slot_date}/{slot_number}/status", response_model=SlotResponse)
def update_slot_status(
    slot_date: date,
    slot_number: int,
    data: SlotStatusUpdate,
    ctx: RequestContext = Depends(get_request_context),
    service: SlotService = Depends(get_slot_service),
):
    """Block or unblock a slot"""
    slot = service.set_status(ctx.tenant_id, slot_date, slot_number, data.status)
    return slot_response(slot)


@router.delete("/{slot_date}/{slot_number}")
def delete_slot(
    slot_date: date,
    slot_number: int,
    ctx: RequestContext = Depends(get_request_context),
    service: SlotService = Depends(get_slot_service),
):
    """Delete a slot that is not occupied"""
    service.delete_slot(ctx.tenant_id, slot_date, slot_number)
    return {"message": "Slot deleted successfully"}
