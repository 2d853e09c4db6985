"""Slot service - Slot store state machine and bulk provisioning"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import (
    SCHEDULING_TIMEZONE,
    SLOT_BULK_MAX_QUANTITY,
    SLOT_PROVISION_HORIZON_DAYS,
    SLOT_PROVISION_MAX_RETRIES,
)
from ...exceptions import (
    BookingValidationError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    SlotUnavailableError,
)
from ...models import Slot, SlotStatus
from ...shared.validators import validate_date_range
from .repository import SlotRepository

logger = logging.getLogger(__name__)

# Edges of the slot state machine. Anything else, notably occupied -> blocked, is rejected.
ALLOWED_TRANSITIONS = {
    (SlotStatus.AVAILABLE, SlotStatus.OCCUPIED),
    (SlotStatus.AVAILABLE, SlotStatus.BLOCKED),
    (SlotStatus.BLOCKED, SlotStatus.AVAILABLE),
    (SlotStatus.OCCUPIED, SlotStatus.AVAILABLE),
}

ADMIN_STATUSES = {SlotStatus.AVAILABLE, SlotStatus.BLOCKED}


def slot_label(slot_date: date, slot_number: int) -> str:
    return f"{slot_date.isoformat()} #{slot_number}"


class SlotService:
    """
    Service layer for the slot store.

    get_slot, ensure_available, transition and release_for_appointment take
    part in a caller's unit of work and never commit. The admin operations and
    the provisioner are units of work of their own and commit.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = SlotRepository()

    # ========================================================================
    # SLOT STORE
    # ========================================================================

    def get_slot(self, tenant_id: str, slot_date: date, slot_number: int) -> Slot:
        slot = self.repo.get_slot(self.db, tenant_id, slot_date, slot_number)
        if not slot:
            raise NotFoundError(f"Slot {slot_label(slot_date, slot_number)} not found")
        return slot

    def ensure_available(self, tenant_id: str, slot_date: date, slot_number: int) -> Slot:
        """Return the slot if it can be booked, else raise SlotUnavailable naming the cause"""
        slot = self.get_slot(tenant_id, slot_date, slot_number)
        if slot.status == SlotStatus.BLOCKED.value:
            raise SlotUnavailableError(f"Slot {slot_label(slot_date, slot_number)} is blocked")
        if slot.status == SlotStatus.OCCUPIED.value:
            raise SlotUnavailableError(f"Slot {slot_label(slot_date, slot_number)} is already occupied")
        return slot

    def transition(
        self,
        tenant_id: str,
        slot_date: date,
        slot_number: int,
        expected_status: SlotStatus,
        new_status: SlotStatus,
        appointment_id: Optional[str] = None,
    ) -> Slot:
        """
        Move a slot from expected_status to new_status in one conditional update.

        The appointment link is set only when the slot becomes occupied and
        cleared otherwise.

        Raises:
            InvalidTransitionError: edge not in the state machine
            BookingValidationError: occupying without an appointment id
            NotFoundError: slot does not exist
            ConflictError: slot status changed underneath us
        """
        expected_status = SlotStatus(expected_status)
        new_status = SlotStatus(new_status)

        if (expected_status, new_status) not in ALLOWED_TRANSITIONS:
            raise InvalidTransitionError(
                f"Cannot change slot status from {expected_status.value} to {new_status.value}"
            )
        if new_status == SlotStatus.OCCUPIED and not appointment_id:
            raise BookingValidationError("An appointment id is required to occupy a slot")

        link = appointment_id if new_status == SlotStatus.OCCUPIED else None
        changed = self.repo.compare_and_set_status(
            self.db, tenant_id, slot_date, slot_number, expected_status, new_status, link
        )

        if changed != 1:
            current = self.repo.get_slot(self.db, tenant_id, slot_date, slot_number)
            if not current:
                raise NotFoundError(f"Slot {slot_label(slot_date, slot_number)} not found")
            logger.warning(
                f"⚠️ Slot {slot_label(slot_date, slot_number)} transition lost: "
                f"expected {expected_status.value}, found {current.status}"
            )
            raise ConflictError(
                f"Slot {slot_label(slot_date, slot_number)} is {current.status}, "
                f"expected {expected_status.value}"
            )

        return self.repo.get_slot(self.db, tenant_id, slot_date, slot_number)

    def release_for_appointment(self, tenant_id: str, appointment_id: str) -> Optional[Slot]:
        """
        Best-effort release of the slot linked to an appointment.
        Returns the freed slot, or None when no occupied slot links it.
        """
        slot = self.repo.get_slot_for_appointment(self.db, tenant_id, appointment_id)
        if not slot:
            logger.warning(f"⚠️ No slot linked to appointment {appointment_id}, nothing to release")
            return None

        if not self.repo.release_for_appointment(self.db, tenant_id, appointment_id):
            logger.warning(f"⚠️ Slot for appointment {appointment_id} was released concurrently")
            return None

        return self.repo.get_slot(self.db, tenant_id, slot.date, slot.slot_number)

    # ========================================================================
    # ADMIN OPERATIONS
    # ========================================================================

    def set_status(self, tenant_id: str, slot_date: date, slot_number: int, status: str) -> Slot:
        """Block or unblock a slot. Occupied slots must be released by cancelling first."""
        try:
            target = SlotStatus(status)
        except ValueError:
            raise BookingValidationError(f"Invalid slot status: {status}")
        if target not in ADMIN_STATUSES:
            raise BookingValidationError('Invalid status. Use "available" or "blocked"')

        slot = self.get_slot(tenant_id, slot_date, slot_number)
        current = SlotStatus(slot.status)
        if current == target:
            return slot
        if current == SlotStatus.OCCUPIED:
            raise InvalidTransitionError(
                f"Slot {slot_label(slot_date, slot_number)} is occupied; cancel or reschedule its appointment first"
            )

        try:
            slot = self.transition(tenant_id, slot_date, slot_number, current, target)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"✅ Slot {slot_label(slot_date, slot_number)} set to {target.value} for tenant {tenant_id}")
        return slot

    def delete_slot(self, tenant_id: str, slot_date: date, slot_number: int) -> None:
        slot = self.get_slot(tenant_id, slot_date, slot_number)
        if slot.status == SlotStatus.OCCUPIED.value:
            raise InvalidTransitionError(
                f"Slot {slot_label(slot_date, slot_number)} is occupied and cannot be deleted"
            )

        try:
            deleted = self.repo.delete_if_not_occupied(self.db, tenant_id, slot_date, slot_number)
            if deleted != 1:
                # Booked or removed after the check above
                if not self.repo.get_slot(self.db, tenant_id, slot_date, slot_number):
                    raise NotFoundError(f"Slot {slot_label(slot_date, slot_number)} not found")
                raise InvalidTransitionError(
                    f"Slot {slot_label(slot_date, slot_number)} is occupied and cannot be deleted"
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🗑️ Deleted slot {slot_label(slot_date, slot_number)} for tenant {tenant_id}")

    # ========================================================================
    # PROVISIONING
    # ========================================================================

    def _today(self) -> date:
        return datetime.now(ZoneInfo(SCHEDULING_TIMEZONE)).date()

    def _validate_provisioning(self, slot_date: date, quantity: int) -> None:
        if quantity < 1 or quantity > SLOT_BULK_MAX_QUANTITY:
            raise BookingValidationError(f"Quantity must be between 1 and {SLOT_BULK_MAX_QUANTITY}")

        today = self._today()
        if slot_date < today:
            raise BookingValidationError("Cannot create slots for past dates")
        if slot_date > today + timedelta(days=SLOT_PROVISION_HORIZON_DAYS):
            raise BookingValidationError(
                f"Cannot create slots more than {SLOT_PROVISION_HORIZON_DAYS} days in the future"
            )

    def create_slots_in_bulk(self, tenant_id: str, slot_date: date, quantity: int) -> list[Slot]:
        """
        Append `quantity` available slots to a date, numbered after the current maximum.

        Two concurrent calls for the same date may read the same maximum; the
        loser hits the (tenant, date, slot_number) unique constraint, rolls back
        and re-reads. After SLOT_PROVISION_MAX_RETRIES attempts it gives up
        with ConflictError.
        """
        self._validate_provisioning(slot_date, quantity)

        for attempt in range(1, SLOT_PROVISION_MAX_RETRIES + 1):
            try:
                start = self.repo.get_max_slot_number(self.db, tenant_id, slot_date) + 1
                slots = [
                    Slot(
                        tenant_id=tenant_id,
                        date=slot_date,
                        slot_number=start + offset,
                        status=SlotStatus.AVAILABLE.value,
                    )
                    for offset in range(quantity)
                ]
                self.repo.add_slots(self.db, slots)
                self.db.commit()
            except IntegrityError as e:
                self.db.rollback()
                logger.warning(
                    f"⚠️ Slot numbering collision for {slot_date.isoformat()} "
                    f"(attempt {attempt}/{SLOT_PROVISION_MAX_RETRIES}): {e.orig}"
                )
                continue
            except Exception:
                self.db.rollback()
                raise

            logger.info(
                f"✅ Created {quantity} slots for {slot_date.isoformat()} "
                f"(#{start}-#{start + quantity - 1}) for tenant {tenant_id}"
            )
            return slots

        raise ConflictError(
            f"Could not allocate slot numbers for {slot_date.isoformat()}, please retry"
        )

    # ========================================================================
    # READ MODELS
    # ========================================================================

    def get_calendar(self, tenant_id: str, start: date, end: date) -> dict[str, list[Slot]]:
        """Slots in [start, end] grouped by ISO date"""
        try:
            validate_date_range(start, end)
        except ValueError as e:
            raise BookingValidationError(str(e))

        calendar: dict[str, list[Slot]] = {}
        for slot in self.repo.get_slots_between(self.db, tenant_id, start, end):
            calendar.setdefault(slot.date.isoformat(), []).append(slot)

        logger.info(f"📅 Found {sum(len(v) for v in calendar.values())} slots between {start} and {end}")
        return calendar

    def get_stats(
        self, tenant_id: str, start: Optional[date] = None, end: Optional[date] = None
    ) -> dict[str, int]:
        if start and end:
            try:
                validate_date_range(start, end)
            except ValueError as e:
                raise BookingValidationError(str(e))

        counts = self.repo.count_by_status(self.db, tenant_id, start, end)
        stats = {status.value: counts.get(status.value, 0) for status in SlotStatus}
        stats["total"] = sum(stats.values())
        return stats
