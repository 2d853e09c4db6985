"""Appointment domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from ...models import Appointment


class AppointmentCreate(BaseModel):
    """Schema for booking an appointment into a slot"""

    date: date
    slotNumber: int = Field(..., ge=1)
    type: str
    clientName: str = Field(..., min_length=1, max_length=255)
    clientEmail: EmailStr
    clientPhone: Optional[str] = None
    clientCode: Optional[str] = None
    technicianId: Optional[str] = None
    origin: Optional[str] = None
    salesRep: Optional[str] = None
    network: Optional[str] = None
    notes: Optional[str] = None


class AppointmentUpdate(BaseModel):
    """
    Schema for editing an appointment.
    Only fields present in the request are applied; an explicit null clears the field.
    """

    type: Optional[str] = None
    status: Optional[str] = None
    confirmationState: Optional[str] = None
    technicianId: Optional[str] = None
    origin: Optional[str] = None
    salesRep: Optional[str] = None
    network: Optional[str] = None
    notes: Optional[str] = None
    clientCode: Optional[str] = None

    class Config:
        extra = "forbid"


class RescheduleRequest(BaseModel):
    date: date
    slotNumber: int = Field(..., ge=1)
    reason: Optional[str] = Field(None, max_length=1000)


class AppointmentResponse(BaseModel):
    id: str
    date: date
    slotNumber: int
    type: str
    status: str
    confirmationState: str
    clientName: str
    clientEmail: str
    clientPhone: Optional[str] = None
    clientCode: Optional[str] = None
    technicianId: Optional[str] = None
    contractId: Optional[str] = None
    origin: Optional[str] = None
    salesRep: Optional[str] = None
    network: Optional[str] = None
    notes: Optional[str] = None
    createdBy: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class AppointmentListResponse(BaseModel):
    items: list[AppointmentResponse]
    total: int
    limit: int
    offset: int


def appointment_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        date=appointment.date,
        slotNumber=appointment.slot_number,
        type=appointment.type,
        status=appointment.status,
        confirmationState=appointment.confirmation_state,
        clientName=appointment.client_name,
        clientEmail=appointment.client_email,
        clientPhone=appointment.client_phone,
        clientCode=appointment.client_code,
        technicianId=appointment.technician_id,
        contractId=appointment.contract_id,
        origin=appointment.origin,
        salesRep=appointment.sales_rep,
        network=appointment.network,
        notes=appointment.notes,
        createdBy=appointment.created_by,
        createdAt=appointment.created_at,
        updatedAt=appointment.updated_at,
    )
