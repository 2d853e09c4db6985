"""Shared fixtures: in-memory database, seeded catalog and an API client."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

import uuid
from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from slotbook.database import Base, create_db_engine, get_db
from slotbook.domain.appointments.schemas import AppointmentCreate
from slotbook.main import app
from slotbook.models import AppointmentType, Slot, SlotStatus

TENANT_ID = str(uuid.uuid4())
OTHER_TENANT_ID = str(uuid.uuid4())
ACTOR_ID = "agent-7"


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


VISIT_DAY = utc_today() + timedelta(days=5)
OTHER_DAY = utc_today() + timedelta(days=6)


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    db_engine = create_db_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=db_engine)
    yield db_engine
    Base.metadata.drop_all(bind=db_engine)
    db_engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def catalog(db):
    """Appointment-type catalog for TENANT_ID, with one disabled type."""
    db.add_all(
        [
            AppointmentType(tenant_id=TENANT_ID, code="installation", name="Installation"),
            AppointmentType(tenant_id=TENANT_ID, code="maintenance", name="Maintenance"),
            AppointmentType(tenant_id=TENANT_ID, code="legacy_visit", name="Legacy", disabled=True),
        ]
    )
    db.commit()


@pytest.fixture
def client(db, catalog):
    """API client sharing the test session."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def headers():
    return {"X-Tenant-Id": TENANT_ID, "X-Actor-Id": ACTOR_ID}


def make_slots(db, tenant_id, slot_date, count, status=SlotStatus.AVAILABLE):
    """Insert slots numbered 1..count directly, bypassing the provisioner."""
    slots = [
        Slot(tenant_id=tenant_id, date=slot_date, slot_number=n, status=status.value)
        for n in range(1, count + 1)
    ]
    db.add_all(slots)
    db.commit()
    return slots


def appointment_payload(slot_date=VISIT_DAY, slot_number=1, **overrides):
    data = {
        "date": slot_date,
        "slotNumber": slot_number,
        "type": "installation",
        "clientName": "Ana Souza",
        "clientEmail": "ana.souza@provedor.com.br",
        "clientPhone": "(11) 98765-4321",
    }
    data.update(overrides)
    return AppointmentCreate(**data)
