"""Appointment repository - Database operations for appointments"""

from datetime import date
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from ...models import Appointment


class AppointmentRepository:
    """Repository for appointment rows. Flushes only; services commit."""

    @staticmethod
    def get_appointment_by_id(
        db: Session, tenant_id: str, appointment_id: str, for_update: bool = False
    ) -> Optional[Appointment]:
        query = db.query(Appointment).filter(
            Appointment.id == appointment_id, Appointment.tenant_id == tenant_id
        )
        if for_update:
            # Row lock on Postgres; status writes are also guarded by compare_and_set_status
            query = query.with_for_update().populate_existing()
        return query.first()

    @staticmethod
    def compare_and_set_status(
        db: Session, tenant_id: str, appointment_id: str, expected_status: str, new_status: str
    ) -> int:
        """Conditional status UPDATE. Returns 0 when the status is no longer expected_status."""
        result = db.execute(
            update(Appointment)
            .where(
                Appointment.id == appointment_id,
                Appointment.tenant_id == tenant_id,
                Appointment.status == expected_status,
            )
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    def create_appointment(db: Session, tenant_id: str, **appointment_data) -> Appointment:
        appointment = Appointment(tenant_id=tenant_id, **appointment_data)
        db.add(appointment)
        db.flush()
        return appointment

    @staticmethod
    def list_appointments(
        db: Session,
        tenant_id: str,
        status: Optional[str] = None,
        appointment_type: Optional[str] = None,
        technician_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Appointment], int]:
        """Filtered page of appointments ordered by date and slot, plus the unpaged total"""
        query = db.query(Appointment).filter(Appointment.tenant_id == tenant_id)

        if status:
            query = query.filter(Appointment.status == status)
        if appointment_type:
            query = query.filter(Appointment.type == appointment_type)
        if technician_id:
            query = query.filter(Appointment.technician_id == technician_id)
        if date_from:
            query = query.filter(Appointment.date >= date_from)
        if date_to:
            query = query.filter(Appointment.date <= date_to)

        total = query.count()
        items = (
            query.order_by(Appointment.date.asc(), Appointment.slot_number.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return items, total
