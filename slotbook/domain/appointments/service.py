"""Appointment service - Booking, editing, cancelling and rescheduling appointments"""

import logging
from datetime import date
from typing import Any, Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from ...config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...exceptions import (
    BookingValidationError,
    CannotRescheduleCancelledError,
    ConflictError,
    InvalidTransitionError,
    NoOpRescheduleError,
    NotFoundError,
)
from ...models import Appointment, AppointmentStatus, ConfirmationState, SlotStatus
from ...shared.validators import normalize_phone
from ...utils.sanitization import sanitize_string
from ..catalog.repository import CatalogRepository
from ..history.recorder import HistoryRecorder
from ..slots.service import SlotService, slot_label
from .repository import AppointmentRepository
from .schemas import AppointmentCreate

logger = logging.getLogger(__name__)

# Editable fields: API name (also the history field name) -> column
UPDATABLE_FIELDS = {
    "type": "type",
    "status": "status",
    "confirmationState": "confirmation_state",
    "technicianId": "technician_id",
    "origin": "origin",
    "salesRep": "sales_rep",
    "network": "network",
    "notes": "notes",
    "clientCode": "client_code",
}
REQUIRED_FIELDS = {"type", "status", "confirmationState"}
FREE_TEXT_FIELDS = {"origin", "salesRep", "network", "notes", "clientCode"}

# Status changes allowed through an edit. "rescheduled" is only set by rescheduling.
EDIT_STATUS_TRANSITIONS = {
    AppointmentStatus.PENDING: {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED},
    AppointmentStatus.RESCHEDULED: {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED},
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.CANCELLED: set(),
}


class AppointmentService:
    """Service layer for appointment business logic. Every public mutation is one transaction."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()
        self.catalog = CatalogRepository()
        self.slots = SlotService(db)
        self.history = HistoryRecorder(db)

    def get_appointment(
        self, tenant_id: str, appointment_id: str, for_update: bool = False
    ) -> Appointment:
        appointment = self.repo.get_appointment_by_id(self.db, tenant_id, appointment_id, for_update)
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment

    def _claim_status(
        self, tenant_id: str, appointment: Appointment, expected_status: str, new_status: str
    ) -> bool:
        """Set the status only if it is still the one read at the start of the operation"""
        changed = self.repo.compare_and_set_status(
            self.db, tenant_id, appointment.id, expected_status, new_status
        )
        if changed != 1:
            logger.warning(
                f"⚠️ Appointment {appointment.id} status changed concurrently, expected {expected_status}"
            )
            return False
        set_committed_value(appointment, "status", new_status)
        return True

    def list_appointments(
        self,
        tenant_id: str,
        status: Optional[str] = None,
        appointment_type: Optional[str] = None,
        technician_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> tuple[list[Appointment], int]:
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise BookingValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")
        if offset < 0:
            raise BookingValidationError("Offset must not be negative")

        logger.info(
            f"Listing appointments with filters: status={status}, type={appointment_type}, "
            f"technician={technician_id}, from={date_from}, to={date_to}"
        )
        return self.repo.list_appointments(
            self.db,
            tenant_id,
            status=status,
            appointment_type=appointment_type,
            technician_id=technician_id,
            date_from=date_from,
            date_to=date_to,
            limit=limit,
            offset=offset,
        )

    # ========================================================================
    # BOOKING
    # ========================================================================

    def book_slot(
        self,
        tenant_id: str,
        slot_date: date,
        slot_number: int,
        actor_id: Optional[str] = None,
        **appointment_data,
    ) -> Appointment:
        """
        Insert an appointment and occupy its slot inside the current transaction.

        The caller must have checked availability and is responsible for
        commit / rollback. A slot lost to a concurrent booking raises
        ConflictError from the conditional transition.
        """
        appointment = self.repo.create_appointment(
            self.db,
            tenant_id,
            date=slot_date,
            slot_number=slot_number,
            status=AppointmentStatus.PENDING.value,
            confirmation_state=ConfirmationState.PRE_SCHEDULED.value,
            created_by=actor_id,
            **appointment_data,
        )
        self.slots.transition(
            tenant_id,
            slot_date,
            slot_number,
            SlotStatus.AVAILABLE,
            SlotStatus.OCCUPIED,
            appointment.id,
        )
        self.history.record_creation(appointment, actor_id)
        return appointment

    def create_appointment(
        self, tenant_id: str, data: AppointmentCreate, actor_id: Optional[str] = None
    ) -> Appointment:
        """Book a standalone appointment into an available slot"""
        logger.info(f"📝 Creating appointment for {slot_label(data.date, data.slotNumber)}, type={data.type}")

        if not self.catalog.is_valid_type(self.db, tenant_id, data.type):
            raise BookingValidationError(f"Invalid appointment type: {data.type}")

        try:
            client_phone = normalize_phone(data.clientPhone)
        except ValueError as e:
            raise BookingValidationError(str(e))

        self.slots.ensure_available(tenant_id, data.date, data.slotNumber)

        try:
            appointment = self.book_slot(
                tenant_id,
                data.date,
                data.slotNumber,
                actor_id,
                type=data.type,
                client_name=sanitize_string(data.clientName),
                client_email=str(data.clientEmail),
                client_phone=client_phone,
                client_code=sanitize_string(data.clientCode),
                technician_id=data.technicianId,
                origin=sanitize_string(data.origin),
                sales_rep=sanitize_string(data.salesRep),
                network=sanitize_string(data.network),
                notes=sanitize_string(data.notes),
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Booking {slot_label(data.date, data.slotNumber)} rolled back: {e}")
            raise

        logger.info(f"✅ Appointment {appointment.id} booked into {slot_label(data.date, data.slotNumber)}")
        return appointment

    # ========================================================================
    # EDITING
    # ========================================================================

    def _validate_updates(self, tenant_id: str, appointment: Appointment, updates: dict[str, Any]) -> None:
        unknown = set(updates) - set(UPDATABLE_FIELDS)
        if unknown:
            raise BookingValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        for field in REQUIRED_FIELDS & set(updates):
            if updates[field] is None:
                raise BookingValidationError(f"{field} cannot be null")

        new_type = updates.get("type")
        if new_type is not None and new_type != appointment.type:
            if not self.catalog.is_valid_type(self.db, tenant_id, new_type):
                raise BookingValidationError(f"Invalid appointment type: {new_type}")

        confirmation = updates.get("confirmationState")
        if confirmation is not None:
            try:
                ConfirmationState(confirmation)
            except ValueError:
                raise BookingValidationError(f"Invalid confirmation state: {confirmation}")

        new_status = updates.get("status")
        if new_status is not None and new_status != appointment.status:
            try:
                target = AppointmentStatus(new_status)
            except ValueError:
                raise BookingValidationError(f"Invalid appointment status: {new_status}")
            current = AppointmentStatus(appointment.status)
            if target not in EDIT_STATUS_TRANSITIONS[current]:
                raise InvalidTransitionError(
                    f"Cannot change appointment status from {current.value} to {target.value}"
                )

    def update_appointment(
        self,
        tenant_id: str,
        appointment_id: str,
        updates: dict[str, Any],
        actor_id: Optional[str] = None,
    ) -> Appointment:
        """
        Apply whitelisted field edits and record one history entry per changed field.

        Slot linkage is untouched, except that an edit to status "cancelled"
        releases the slot exactly like cancel_appointment.
        """
        appointment = self.get_appointment(tenant_id, appointment_id, for_update=True)
        loaded_status = appointment.status
        old_values = {
            field: getattr(appointment, column)
            for field, column in UPDATABLE_FIELDS.items()
            if field in updates
        }
        self._validate_updates(tenant_id, appointment, updates)

        target_status = updates.get("status") or loaded_status
        cancelling = (
            target_status == AppointmentStatus.CANCELLED.value
            and loaded_status != AppointmentStatus.CANCELLED.value
        )

        changed_fields = []
        try:
            if not self._claim_status(tenant_id, appointment, loaded_status, target_status):
                raise ConflictError(
                    f"Appointment {appointment_id} was changed by another request, reload and retry"
                )

            for field, value in updates.items():
                column = UPDATABLE_FIELDS[field]
                if field in FREE_TEXT_FIELDS:
                    value = sanitize_string(value, blank_as_none=True)
                if field != "status":
                    setattr(appointment, column, value)
                    self.db.flush()
                if self.history.record_field_change(
                    tenant_id, appointment.id, field, old_values[field], value, actor_id
                ):
                    changed_fields.append(field)

            if cancelling:
                self.slots.release_for_appointment(tenant_id, appointment.id)

            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to update appointment {appointment_id}: {e}")
            raise

        logger.info(f"✅ Updated appointment {appointment_id}, changed fields: {changed_fields or 'none'}")
        return appointment

    def cancel_appointment(
        self, tenant_id: str, appointment_id: str, actor_id: Optional[str] = None
    ) -> Appointment:
        """Cancel an appointment and free its slot. Cancelling twice is a no-op."""
        appointment = self.get_appointment(tenant_id, appointment_id, for_update=True)
        if appointment.status == AppointmentStatus.CANCELLED.value:
            logger.info(f"Appointment {appointment_id} already cancelled, nothing to do")
            return appointment

        previous_status = appointment.status
        if not self._claim_status(tenant_id, appointment, previous_status, AppointmentStatus.CANCELLED.value):
            self.db.rollback()
            appointment = self.get_appointment(tenant_id, appointment_id)
            if appointment.status == AppointmentStatus.CANCELLED.value:
                logger.info(f"Appointment {appointment_id} was cancelled concurrently, nothing to do")
                return appointment
            raise ConflictError(
                f"Appointment {appointment_id} was changed by another request, reload and retry"
            )

        try:
            self.history.record_field_change(
                tenant_id,
                appointment.id,
                "status",
                previous_status,
                AppointmentStatus.CANCELLED.value,
                actor_id,
            )
            self.slots.release_for_appointment(tenant_id, appointment.id)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to cancel appointment {appointment_id}: {e}")
            raise

        logger.info(f"✅ Appointment {appointment_id} cancelled and slot released")
        return appointment

    # ========================================================================
    # RESCHEDULING
    # ========================================================================

    def reschedule_appointment(
        self,
        tenant_id: str,
        appointment_id: str,
        new_date: date,
        new_slot_number: int,
        reason: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> Appointment:
        """
        Move an appointment to another available slot.

        History is written first, then old slot released, appointment moved
        and new slot occupied, all in one transaction: a failure at any step
        leaves both slots and the appointment as they were.
        """
        appointment = self.get_appointment(tenant_id, appointment_id, for_update=True)
        current_status = appointment.status

        if current_status == AppointmentStatus.CANCELLED.value:
            raise CannotRescheduleCancelledError("Cancelled appointments cannot be rescheduled")
        if appointment.date == new_date and appointment.slot_number == new_slot_number:
            raise NoOpRescheduleError("Appointment is already booked into that slot")

        old_label = slot_label(appointment.date, appointment.slot_number)
        new_label = slot_label(new_date, new_slot_number)

        self.slots.ensure_available(tenant_id, new_date, new_slot_number)

        try:
            # A cancel that landed since the read above makes this miss
            if not self._claim_status(
                tenant_id, appointment, current_status, AppointmentStatus.RESCHEDULED.value
            ):
                raise ConflictError(
                    f"Appointment {appointment_id} was changed by another request, reload and retry"
                )

            self.history.record_reschedule(
                appointment, new_date, new_slot_number, sanitize_string(reason, blank_as_none=True), actor_id
            )

            self.slots.release_for_appointment(tenant_id, appointment.id)

            appointment.date = new_date
            appointment.slot_number = new_slot_number
            self.db.flush()

            self.slots.transition(
                tenant_id,
                new_date,
                new_slot_number,
                SlotStatus.AVAILABLE,
                SlotStatus.OCCUPIED,
                appointment.id,
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Reschedule of {appointment_id} from {old_label} to {new_label} rolled back: {e}")
            raise

        logger.info(f"✅ Appointment {appointment_id} rescheduled from {old_label} to {new_label}")
        return appointment
