"""Slot repository - Database operations for the slot store"""

from datetime import date
from typing import Optional

from sqlalchemy import delete, func, update
from sqlalchemy.orm import Session, joinedload

from ...models import Slot, SlotStatus


class SlotRepository:
    """
    Repository for slot rows.

    Methods flush but never commit; the calling service owns the transaction.
    """

    @staticmethod
    def get_slot(db: Session, tenant_id: str, slot_date: date, slot_number: int) -> Optional[Slot]:
        return (
            db.query(Slot)
            .filter(
                Slot.tenant_id == tenant_id,
                Slot.date == slot_date,
                Slot.slot_number == slot_number,
            )
            .populate_existing()
            .first()
        )

    @staticmethod
    def get_slot_for_appointment(db: Session, tenant_id: str, appointment_id: str) -> Optional[Slot]:
        return (
            db.query(Slot)
            .filter(Slot.tenant_id == tenant_id, Slot.appointment_id == appointment_id)
            .populate_existing()
            .first()
        )

    @staticmethod
    def compare_and_set_status(
        db: Session,
        tenant_id: str,
        slot_date: date,
        slot_number: int,
        expected_status: SlotStatus,
        new_status: SlotStatus,
        appointment_id: Optional[str] = None,
    ) -> int:
        """
        Conditional UPDATE guarded by the current status.

        Returns the number of rows changed: 1 on success, 0 when the slot is
        missing or its status no longer matches expected_status.
        """
        result = db.execute(
            update(Slot)
            .where(
                Slot.tenant_id == tenant_id,
                Slot.date == slot_date,
                Slot.slot_number == slot_number,
                Slot.status == expected_status.value,
            )
            .values(status=new_status.value, appointment_id=appointment_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    def release_for_appointment(db: Session, tenant_id: str, appointment_id: str) -> int:
        """Free whichever occupied slot links the appointment. Returns rows changed."""
        result = db.execute(
            update(Slot)
            .where(
                Slot.tenant_id == tenant_id,
                Slot.appointment_id == appointment_id,
                Slot.status == SlotStatus.OCCUPIED.value,
            )
            .values(status=SlotStatus.AVAILABLE.value, appointment_id=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    def get_max_slot_number(db: Session, tenant_id: str, slot_date: date) -> int:
        """Highest slot number in use for the date, 0 if none"""
        value = (
            db.query(func.max(Slot.slot_number))
            .filter(Slot.tenant_id == tenant_id, Slot.date == slot_date)
            .scalar()
        )
        return value or 0

    @staticmethod
    def add_slots(db: Session, slots: list[Slot]) -> list[Slot]:
        db.add_all(slots)
        db.flush()
        return slots

    @staticmethod
    def delete_if_not_occupied(db: Session, tenant_id: str, slot_date: date, slot_number: int) -> int:
        """Delete the slot unless it is occupied. Returns rows deleted."""
        result = db.execute(
            delete(Slot)
            .where(
                Slot.tenant_id == tenant_id,
                Slot.date == slot_date,
                Slot.slot_number == slot_number,
                Slot.status != SlotStatus.OCCUPIED.value,
            )
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    @staticmethod
    def get_slots_between(db: Session, tenant_id: str, start: date, end: date) -> list[Slot]:
        """Slots in [start, end] with their appointment, ordered by date then number"""
        return (
            db.query(Slot)
            .options(joinedload(Slot.appointment))
            .filter(Slot.tenant_id == tenant_id, Slot.date >= start, Slot.date <= end)
            .order_by(Slot.date.asc(), Slot.slot_number.asc())
            .all()
        )

    @staticmethod
    def count_by_status(
        db: Session, tenant_id: str, start: Optional[date] = None, end: Optional[date] = None
    ) -> dict[str, int]:
        query = db.query(Slot.status, func.count(Slot.id)).filter(Slot.tenant_id == tenant_id)
        if start:
            query = query.filter(Slot.date >= start)
        if end:
            query = query.filter(Slot.date <= end)
        return {status: count for status, count in query.group_by(Slot.status).all()}
