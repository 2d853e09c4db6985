"""History schemas - Read-only views of the audit trail"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel


class EditHistoryEntryResponse(BaseModel):
    id: str
    appointmentId: str
    fieldName: str
    oldValue: Optional[str] = None
    newValue: Optional[str] = None
    actorId: Optional[str] = None
    createdAt: datetime


class RescheduleHistoryEntryResponse(BaseModel):
    id: str
    appointmentId: str
    oldDate: date
    oldSlotNumber: int
    newDate: date
    newSlotNumber: int
    reason: Optional[str] = None
    actorId: Optional[str] = None
    createdAt: datetime


class AppointmentHistoryResponse(BaseModel):
    """Full audit trail of one appointment"""

    appointmentId: str
    edits: list[EditHistoryEntryResponse]
    reschedules: list[RescheduleHistoryEntryResponse]


class HistoryFeedResponse(BaseModel):
    """Tenant-wide audit entries for the reporting UI"""

    start: datetime
    end: datetime
    edits: list[EditHistoryEntryResponse]
    reschedules: list[RescheduleHistoryEntryResponse]


def edit_entry_response(entry) -> EditHistoryEntryResponse:
    return EditHistoryEntryResponse(
        id=entry.id,
        appointmentId=entry.appointment_id,
        fieldName=entry.field_name,
        oldValue=entry.old_value,
        newValue=entry.new_value,
        actorId=entry.actor_id,
        createdAt=entry.created_at,
    )


def reschedule_entry_response(entry) -> RescheduleHistoryEntryResponse:
    return RescheduleHistoryEntryResponse(
        id=entry.id,
        appointmentId=entry.appointment_id,
        oldDate=entry.old_date,
        oldSlotNumber=entry.old_slot_number,
        newDate=entry.new_date,
        newSlotNumber=entry.new_slot_number,
        reason=entry.reason,
        actorId=entry.actor_id,
        createdAt=entry.created_at,
    )
