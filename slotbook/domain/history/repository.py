"""History repository - Append-only audit tables"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import AppointmentEditHistory, RescheduleHistory


class HistoryRepository:
    """Repository for edit and reschedule history. Inserts only, never updates or deletes."""

    @staticmethod
    def add_edit_entry(
        db: Session,
        tenant_id: str,
        appointment_id: str,
        field_name: str,
        old_value: Optional[str],
        new_value: Optional[str],
        actor_id: Optional[str] = None,
    ) -> AppointmentEditHistory:
        entry = AppointmentEditHistory(
            tenant_id=tenant_id,
            appointment_id=appointment_id,
            field_name=field_name,
            old_value=old_value,
            new_value=new_value,
            actor_id=actor_id,
        )
        db.add(entry)
        db.flush()
        return entry

    @staticmethod
    def add_reschedule_entry(
        db: Session,
        tenant_id: str,
        appointment_id: str,
        old_date: date,
        old_slot_number: int,
        new_date: date,
        new_slot_number: int,
        reason: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> RescheduleHistory:
        entry = RescheduleHistory(
            tenant_id=tenant_id,
            appointment_id=appointment_id,
            old_date=old_date,
            old_slot_number=old_slot_number,
            new_date=new_date,
            new_slot_number=new_slot_number,
            reason=reason,
            actor_id=actor_id,
        )
        db.add(entry)
        db.flush()
        return entry

    @staticmethod
    def get_edit_history(
        db: Session, tenant_id: str, appointment_id: str
    ) -> list[AppointmentEditHistory]:
        """Edit entries for one appointment, oldest first"""
        return (
            db.query(AppointmentEditHistory)
            .filter(
                AppointmentEditHistory.tenant_id == tenant_id,
                AppointmentEditHistory.appointment_id == appointment_id,
            )
            .order_by(AppointmentEditHistory.created_at.asc())
            .all()
        )

    @staticmethod
    def get_reschedule_history(
        db: Session, tenant_id: str, appointment_id: str
    ) -> list[RescheduleHistory]:
        """Reschedule entries for one appointment, oldest first"""
        return (
            db.query(RescheduleHistory)
            .filter(
                RescheduleHistory.tenant_id == tenant_id,
                RescheduleHistory.appointment_id == appointment_id,
            )
            .order_by(RescheduleHistory.created_at.asc())
            .all()
        )

    @staticmethod
    def get_edit_feed(
        db: Session, tenant_id: str, start: datetime, end: datetime, limit: int
    ) -> list[AppointmentEditHistory]:
        """Tenant-wide edit entries inside [start, end], newest first"""
        return (
            db.query(AppointmentEditHistory)
            .filter(
                AppointmentEditHistory.tenant_id == tenant_id,
                AppointmentEditHistory.created_at >= start,
                AppointmentEditHistory.created_at <= end,
            )
            .order_by(AppointmentEditHistory.created_at.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_reschedule_feed(
        db: Session, tenant_id: str, start: datetime, end: datetime, limit: int
    ) -> list[RescheduleHistory]:
        """Tenant-wide reschedule entries inside [start, end], newest first"""
        return (
            db.query(RescheduleHistory)
            .filter(
                RescheduleHistory.tenant_id == tenant_id,
                RescheduleHistory.created_at >= start,
                RescheduleHistory.created_at <= end,
            )
            .order_by(RescheduleHistory.created_at.desc())
            .limit(limit)
            .all()
        )
