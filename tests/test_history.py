"""Tests for the history recorder."""

from datetime import date
from enum import Enum

import pytest
from sqlalchemy.exc import SQLAlchemyError

from conftest import ACTOR_ID, TENANT_ID, VISIT_DAY
from slotbook.domain.history.recorder import HistoryRecorder, normalize_history_value
from slotbook.domain.history.repository import HistoryRepository
from slotbook.models import Appointment, AppointmentEditHistory, AppointmentStatus


class TestNormalizeHistoryValue:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, None),
            ("null", None),
            ("tech-42", "tech-42"),
            (3, "3"),
            (date(2026, 3, 1), "2026-03-01"),
            (AppointmentStatus.CANCELLED, "cancelled"),
        ],
    )
    def test_values(self, value, expected):
        assert normalize_history_value(value) == expected

    def test_plain_enum(self):
        class Color(Enum):
            RED = "red"

        assert normalize_history_value(Color.RED) == "red"


class TestHistoryRecorder:
    def test_unchanged_value_is_skipped(self, db):
        recorder = HistoryRecorder(db)
        assert recorder.record_field_change(TENANT_ID, "appt-1", "notes", "a", "a", ACTOR_ID) is None
        assert db.query(AppointmentEditHistory).count() == 0

    def test_entries_survive_with_the_outer_transaction(self, db):
        recorder = HistoryRecorder(db)
        recorder.record_field_change(TENANT_ID, "appt-1", "technicianId", None, "tech-42", ACTOR_ID)
        db.commit()

        (entry,) = HistoryRepository.get_edit_history(db, TENANT_ID, "appt-1")
        assert (entry.field_name, entry.old_value, entry.new_value) == ("technicianId", None, "tech-42")
        assert entry.created_at is not None

    def test_failed_insert_keeps_outer_work(self, db, monkeypatch):
        """A broken history write is rolled back to its savepoint; earlier work still commits."""
        recorder = HistoryRecorder(db)
        recorder.record_field_change(TENANT_ID, "appt-1", "notes", None, "first", ACTOR_ID)

        def insert_then_fail(db, **fields):
            db.add(AppointmentEditHistory(**fields))
            db.flush()
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(HistoryRepository, "add_edit_entry", staticmethod(insert_then_fail))

        assert recorder.record_field_change(TENANT_ID, "appt-1", "notes", "first", "second") is None
        db.commit()

        (entry,) = db.query(AppointmentEditHistory).all()
        assert entry.new_value == "first"

    def test_reschedule_entry(self, db):
        recorder = HistoryRecorder(db)
        appointment = Appointment(
            id="appt-1", tenant_id=TENANT_ID, date=VISIT_DAY, slot_number=1
        )
        recorder.record_reschedule(appointment, VISIT_DAY, 3, "weather", ACTOR_ID)
        db.commit()

        (entry,) = HistoryRepository.get_reschedule_history(db, TENANT_ID, "appt-1")
        assert (entry.old_slot_number, entry.new_slot_number, entry.reason) == (1, 3, "weather")
