"""Tests for the slot store and the bulk provisioner."""

from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import OTHER_DAY, TENANT_ID, VISIT_DAY, make_slots, utc_today
from slotbook.domain.slots.service import SlotService
from slotbook.exceptions import (
    BookingValidationError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    SlotUnavailableError,
)
from slotbook.models import Slot, SlotStatus


def snapshot(slot):
    """Detached copy of a slot as it was read, unaffected by later commits."""
    return Slot(
        tenant_id=slot.tenant_id, date=slot.date, slot_number=slot.slot_number, status=slot.status
    )


class TestTransition:
    """Conditional status changes."""

    def test_occupy_links_appointment(self, db):
        make_slots(db, TENANT_ID, VISIT_DAY, 1)
        slot = SlotService(db).transition(
            TENANT_ID, VISIT_DAY, 1, SlotStatus.AVAILABLE, SlotStatus.OCCUPIED, "appt-1"
        )
        assert slot.status == "occupied"
        assert slot.appointment_id == "appt-1"

    def test_release_clears_link(self, db):
        make_slots(db, TENANT_ID, VISIT_DAY, 1)
        service = SlotService(db)
        service.transition(TENANT_ID, VISIT_DAY, 1, SlotStatus.AVAILABLE, SlotStatus.OCCUPIED, "appt-1")
        slot = service.transition(TENANT_ID, VISIT_DAY, 1, SlotStatus.OCCUPIED, SlotStatus.AVAILABLE)
        assert slot.status == "available"
        assert slot.appointment_id is None

    def test_stale_expected_status_is_a_conflict(self, db):
        """Second writer expecting 'available' loses once the slot is taken."""
        make_slots(db, TENANT_ID, VISIT_DAY, 1)
        service = SlotService(db)
        service.transition(TENANT_ID, VISIT_DAY, 1, SlotStatus.AVAILABLE, SlotStatus.OCCUPIED, "appt-1")

        with pytest.raises(ConflictError):
            service.transition(
                TENANT_ID, VISIT_DAY, 1, SlotStatus.AVAILABLE, SlotStatus.OCCUPIED, "appt-2"
            )
        assert service.get_slot(TENANT_ID, VISIT_DAY, 1).appointment_id == "appt-1"

    def test_occupied_to_blocked_is_rejected(self, db):
        make_slots(db, TENANT_ID, VISIT_DAY, 1)
        with pytest.raises(InvalidTransitionError):
            SlotService(db).transition(
                TENANT_ID, VISIT_DAY, 1, SlotStatus.OCCUPIED, SlotStatus.BLOCKED
            )

    def test_occupy_requires_appointment_id(self, db):
        make_slots(db, TENANT_ID, VISIT_DAY, 1)
        with pytest.raises(BookingValidationError):
            SlotService(db).transition(
                TENANT_ID, VISIT_DAY, 1, SlotStatus.AVAILABLE, SlotStatus.OCCUPIED
            )

    def test_missing_slot(self, db):
        with pytest.raises(NotFoundError):
            SlotService(db).transition(
                TENANT_ID, VISIT_DAY, 9, SlotStatus.AVAILABLE, SlotStatus.BLOCKED
            )

    def test_database_rejects_unlinked_occupied_slot(self, db):
        db.add(Slot(tenant_id=TENANT_ID, date=VISIT_DAY, slot_number=1, status="occupied"))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()


class TestAvailability:
    def test_blocked_slot_is_unavailable(self, db):
        make_slots(db, TENANT_ID, VISIT_DAY, 1, status=SlotStatus.BLOCKED)
        with pytest.raises(SlotUnavailableError, match="blocked"):
            SlotService(db).ensure_available(TENANT_ID, VISIT_DAY, 1)

    def test_slots_are_scoped_to_tenant(self, db):
        make_slots(db, TENANT_ID, VISIT_DAY, 1)
        with pytest.raises(NotFoundError):
            SlotService(db).get_slot("other-tenant", VISIT_DAY, 1)


class TestAdminOperations:
    def test_block_and_unblock(self, db):
        make_slots(db, TENANT_ID, VISIT_DAY, 1)
        service = SlotService(db)
        assert service.set_status(TENANT_ID, VISIT_DAY, 1, "blocked").status == "blocked"
        assert service.set_status(TENANT_ID, VISIT_DAY, 1, "available").status == "available"

    def test_cannot_block_occupied_slot(self, db):
        make_slots(db, TENANT_ID, VISIT_DAY, 1)
        service = SlotService(db)
        service.transition(TENANT_ID, VISIT_DAY, 1, SlotStatus.AVAILABLE, SlotStatus.OCCUPIED, "appt-1")
        db.commit()

        with pytest.raises(InvalidTransitionError):
            service.set_status(TENANT_ID, VISIT_DAY, 1, "blocked")

    def test_cannot_set_occupied_directly(self, db):
        make_slots(db, TENANT_ID, VISIT_DAY, 1)
        with pytest.raises(BookingValidationError):
            SlotService(db).set_status(TENANT_ID, VISIT_DAY, 1, "occupied")

    def test_delete_free_slot(self, db):
        make_slots(db, TENANT_ID, VISIT_DAY, 2)
        service = SlotService(db)
        service.delete_slot(TENANT_ID, VISIT_DAY, 2)
        with pytest.raises(NotFoundError):
            service.get_slot(TENANT_ID, VISIT_DAY, 2)

    def test_delete_occupied_slot_is_rejected(self, db):
        make_slots(db, TENANT_ID, VISIT_DAY, 1)
        service = SlotService(db)
        service.transition(TENANT_ID, VISIT_DAY, 1, SlotStatus.AVAILABLE, SlotStatus.OCCUPIED, "appt-1")
        db.commit()

        with pytest.raises(InvalidTransitionError):
            service.delete_slot(TENANT_ID, VISIT_DAY, 1)

    def test_slot_booked_during_delete_survives(self, db, monkeypatch):
        """A booking that lands after the occupied check still blocks the delete."""
        make_slots(db, TENANT_ID, VISIT_DAY, 1)
        service = SlotService(db)
        original_get_slot = service.get_slot

        def read_then_book(tenant_id, slot_date, slot_number):
            seen = snapshot(original_get_slot(tenant_id, slot_date, slot_number))
            service.repo.compare_and_set_status(
                db, tenant_id, slot_date, slot_number, SlotStatus.AVAILABLE, SlotStatus.OCCUPIED, "appt-1"
            )
            db.commit()
            return seen

        monkeypatch.setattr(service, "get_slot", read_then_book)

        with pytest.raises(InvalidTransitionError):
            service.delete_slot(TENANT_ID, VISIT_DAY, 1)

        db.expire_all()
        slot = db.query(Slot).filter(Slot.tenant_id == TENANT_ID, Slot.slot_number == 1).one()
        assert (slot.status, slot.appointment_id) == ("occupied", "appt-1")

    def test_slot_removed_during_delete_is_not_found(self, db, monkeypatch):
        make_slots(db, TENANT_ID, VISIT_DAY, 1)
        service = SlotService(db)
        original_get_slot = service.get_slot

        def read_then_remove(tenant_id, slot_date, slot_number):
            seen = snapshot(original_get_slot(tenant_id, slot_date, slot_number))
            service.repo.delete_if_not_occupied(db, tenant_id, slot_date, slot_number)
            db.commit()
            return seen

        monkeypatch.setattr(service, "get_slot", read_then_remove)

        with pytest.raises(NotFoundError):
            service.delete_slot(TENANT_ID, VISIT_DAY, 1)


class TestProvisioning:
    """Bulk slot creation."""

    def test_numbers_continue_after_existing_slots(self, db):
        service = SlotService(db)
        first = service.create_slots_in_bulk(TENANT_ID, VISIT_DAY, 10)
        second = service.create_slots_in_bulk(TENANT_ID, VISIT_DAY, 5)

        assert [s.slot_number for s in first] == list(range(1, 11))
        assert [s.slot_number for s in second] == list(range(11, 16))
        assert all(s.status == "available" for s in first + second)

    def test_numbering_is_per_date_and_tenant(self, db):
        make_slots(db, TENANT_ID, VISIT_DAY, 3)
        service = SlotService(db)
        assert service.create_slots_in_bulk(TENANT_ID, OTHER_DAY, 1)[0].slot_number == 1

    @pytest.mark.parametrize("quantity", [0, 51])
    def test_quantity_bounds(self, db, quantity):
        with pytest.raises(BookingValidationError):
            SlotService(db).create_slots_in_bulk(TENANT_ID, VISIT_DAY, quantity)

    def test_past_date_rejected(self, db):
        with pytest.raises(BookingValidationError, match="past"):
            SlotService(db).create_slots_in_bulk(TENANT_ID, utc_today() - timedelta(days=1), 1)

    def test_beyond_horizon_rejected(self, db):
        with pytest.raises(BookingValidationError, match="future"):
            SlotService(db).create_slots_in_bulk(TENANT_ID, utc_today() + timedelta(days=31), 1)

    def test_numbering_collision_is_retried(self, db, monkeypatch):
        """A stale maximum hits the unique key, then the retry re-reads it."""
        make_slots(db, TENANT_ID, VISIT_DAY, 3)
        service = SlotService(db)
        reads = iter([0, 3])
        monkeypatch.setattr(service.repo, "get_max_slot_number", lambda *args: next(reads))

        slots = service.create_slots_in_bulk(TENANT_ID, VISIT_DAY, 2)

        assert [s.slot_number for s in slots] == [4, 5]
        assert db.query(Slot).filter(Slot.tenant_id == TENANT_ID).count() == 5

    def test_gives_up_after_bounded_retries(self, db, monkeypatch):
        make_slots(db, TENANT_ID, VISIT_DAY, 3)
        service = SlotService(db)
        monkeypatch.setattr(service.repo, "get_max_slot_number", lambda *args: 0)

        with pytest.raises(ConflictError):
            service.create_slots_in_bulk(TENANT_ID, VISIT_DAY, 2)
        assert db.query(Slot).filter(Slot.tenant_id == TENANT_ID).count() == 3


class TestReadModels:
    def test_calendar_groups_by_date(self, db):
        make_slots(db, TENANT_ID, VISIT_DAY, 2)
        make_slots(db, TENANT_ID, OTHER_DAY, 1)

        calendar = SlotService(db).get_calendar(TENANT_ID, VISIT_DAY, OTHER_DAY)

        assert list(calendar) == [VISIT_DAY.isoformat(), OTHER_DAY.isoformat()]
        assert [s.slot_number for s in calendar[VISIT_DAY.isoformat()]] == [1, 2]

    def test_calendar_rejects_inverted_range(self, db):
        with pytest.raises(BookingValidationError):
            SlotService(db).get_calendar(TENANT_ID, OTHER_DAY, VISIT_DAY)

    def test_stats(self, db):
        make_slots(db, TENANT_ID, VISIT_DAY, 3)
        service = SlotService(db)
        service.set_status(TENANT_ID, VISIT_DAY, 3, "blocked")

        assert service.get_stats(TENANT_ID) == {
            "available": 2,
            "occupied": 0,
            "blocked": 1,
            "total": 3,
        }
