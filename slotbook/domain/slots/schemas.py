"""Slot domain schemas - Pydantic models for validation"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from ...models import Slot


class BulkSlotCreate(BaseModel):
    """Schema for provisioning slots on a date"""

    date: date
    quantity: int = Field(..., description="Number of slots to append to the date")


class SlotStatusUpdate(BaseModel):
    """Schema for blocking / unblocking a slot"""

    status: str  # 'available' or 'blocked'


class SlotAppointmentSummary(BaseModel):
    id: str
    clientName: str
    clientEmail: str
    type: str
    status: str
    confirmationState: str


class SlotResponse(BaseModel):
    date: date
    slotNumber: int
    status: str
    appointmentId: Optional[str] = None


class CalendarSlotResponse(SlotResponse):
    appointment: Optional[SlotAppointmentSummary] = None


class BulkSlotResponse(BaseModel):
    date: date
    created: int
    slots: list[SlotResponse]


class SlotStatsResponse(BaseModel):
    total: int
    available: int
    occupied: int
    blocked: int


def slot_response(slot: Slot) -> SlotResponse:
    return SlotResponse(
        date=slot.date,
        slotNumber=slot.slot_number,
        status=slot.status,
        appointmentId=slot.appointment_id,
    )


def calendar_slot_response(slot: Slot) -> CalendarSlotResponse:
    appointment = slot.appointment
    return CalendarSlotResponse(
        date=slot.date,
        slotNumber=slot.slot_number,
        status=slot.status,
        appointmentId=slot.appointment_id,
        appointment=(
            SlotAppointmentSummary(
                id=appointment.id,
                clientName=appointment.client_name,
                clientEmail=appointment.client_email,
                type=appointment.type,
                status=appointment.status,
                confirmationState=appointment.confirmation_state,
            )
            if appointment
            else None
        ),
    )
