"""Appointment router - FastAPI endpoints for appointment operations"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import RequestContext, get_request_context
from ...config import DEFAULT_PAGE_SIZE
from ...database import get_db
from ..history.repository import HistoryRepository
from ..history.schemas import (
    AppointmentHistoryResponse,
    edit_entry_response,
    reschedule_entry_response,
)
from .schemas import (
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentUpdate,
    RescheduleRequest,
    appointment_response,
)
from .service import AppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


@router.post("", response_model=AppointmentResponse, status_code=201)
def create_appointment(
    data: AppointmentCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Book an appointment into an available slot"""
    appointment = service.create_appointment(ctx.tenant_id, data, ctx.actor_id)
    return appointment_response(appointment)


@router.get("", response_model=AppointmentListResponse)
def list_appointments(
    status: Optional[str] = Query(None),
    type: Optional[str] = Query(None, description="Appointment type code"),
    technicianId: Optional[str] = Query(None),
    dateFrom: Optional[date] = Query(None),
    dateTo: Optional[date] = Query(None),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    offset: int = Query(0),
    ctx: RequestContext = Depends(get_request_context),
    service: AppointmentService = Depends(get_appointment_service),
):
    items, total = service.list_appointments(
        ctx.tenant_id,
        status=status,
        appointment_type=type,
        technician_id=technicianId,
        date_from=dateFrom,
        date_to=dateTo,
        limit=limit,
        offset=offset,
    )
    return AppointmentListResponse(
        items=[appointment_response(a) for a in items], total=total, limit=limit, offset=offset
    )


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: AppointmentService = Depends(get_appointment_service),
):
    return appointment_response(service.get_appointment(ctx.tenant_id, appointment_id))


@router.patch("/{appointment_id}", response_model=AppointmentResponse)
def update_appointment(
    appointment_id: str,
    data: AppointmentUpdate,
    ctx: RequestContext = Depends(get_request_context),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Edit whitelisted fields; every changed field lands in the edit history"""
    appointment = service.update_appointment(
        ctx.tenant_id, appointment_id, data.model_dump(exclude_unset=True), ctx.actor_id
    )
    return appointment_response(appointment)


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.cancel_appointment(ctx.tenant_id, appointment_id, ctx.actor_id)
    return appointment_response(appointment)


@router.post("/{appointment_id}/reschedule", response_model=AppointmentResponse)
def reschedule_appointment(
    appointment_id: str,
    data: RescheduleRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.reschedule_appointment(
        ctx.tenant_id, appointment_id, data.date, data.slotNumber, data.reason, ctx.actor_id
    )
    return appointment_response(appointment)


@router.get("/{appointment_id}/history", response_model=AppointmentHistoryResponse)
def get_appointment_history(
    appointment_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Edit and reschedule history of one appointment, oldest first"""
    appointment = service.get_appointment(ctx.tenant_id, appointment_id)
    repo = HistoryRepository()
    edits = repo.get_edit_history(service.db, ctx.tenant_id, appointment.id)
    reschedules = repo.get_reschedule_history(service.db, ctx.tenant_id, appointment.id)
    return AppointmentHistoryResponse(
        appointmentId=appointment.id,
        edits=[edit_entry_response(e) for e in edits],
        reschedules=[reschedule_entry_response(r) for r in reschedules],
    )
