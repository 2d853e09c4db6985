"""History recorder - Appends audit entries alongside booking mutations"""

import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import Appointment, AppointmentEditHistory, RescheduleHistory
from .repository import HistoryRepository

logger = logging.getLogger(__name__)

CREATION_FIELD = "creation"


def normalize_history_value(value: Any) -> Optional[str]:
    """
    Stringify a field value for the audit trail.

    None and the literal string "null" both normalize to None so that a
    null-to-"null" edit is not recorded as a change.
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        value = value.value
    elif isinstance(value, (date, datetime)):
        value = value.isoformat()

    text = str(value)
    if text == "null":
        return None
    return text


class HistoryRecorder:
    """
    Writes history rows inside the caller's transaction.

    Each insert runs under a SAVEPOINT: if it fails, the savepoint is rolled
    back and the error logged, and the caller's mutation carries on.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = HistoryRepository()

    def record_field_change(
        self,
        tenant_id: str,
        appointment_id: str,
        field_name: str,
        old_value: Any,
        new_value: Any,
        actor_id: Optional[str] = None,
    ) -> Optional[AppointmentEditHistory]:
        """Append one edit entry if the normalized values differ. Returns the entry or None."""
        old_text = normalize_history_value(old_value)
        new_text = normalize_history_value(new_value)
        if old_text == new_text:
            return None

        try:
            with self.db.begin_nested():
                return self.repo.add_edit_entry(
                    self.db,
                    tenant_id=tenant_id,
                    appointment_id=appointment_id,
                    field_name=field_name,
                    old_value=old_text,
                    new_value=new_text,
                    actor_id=actor_id,
                )
        except SQLAlchemyError as e:
            logger.error(
                f"❌ Failed to record history for appointment {appointment_id} field {field_name}: {e}"
            )
            return None

    def record_creation(
        self, appointment: Appointment, actor_id: Optional[str] = None
    ) -> Optional[AppointmentEditHistory]:
        return self.record_field_change(
            appointment.tenant_id,
            appointment.id,
            CREATION_FIELD,
            None,
            f"{appointment.date.isoformat()}#{appointment.slot_number}",
            actor_id,
        )

    def record_reschedule(
        self,
        appointment: Appointment,
        new_date: date,
        new_slot_number: int,
        reason: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> Optional[RescheduleHistory]:
        """Append the before/after slot pair of a reschedule. Call before moving the appointment."""
        try:
            with self.db.begin_nested():
                return self.repo.add_reschedule_entry(
                    self.db,
                    tenant_id=appointment.tenant_id,
                    appointment_id=appointment.id,
                    old_date=appointment.date,
                    old_slot_number=appointment.slot_number,
                    new_date=new_date,
                    new_slot_number=new_slot_number,
                    reason=reason,
                    actor_id=actor_id,
                )
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to record reschedule history for appointment {appointment.id}: {e}")
            return None
