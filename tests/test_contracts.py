"""Tests for contract registration with an optional installation booking."""

import pytest
from sqlalchemy import update

from conftest import ACTOR_ID, TENANT_ID, VISIT_DAY, make_slots
from slotbook.domain.contracts.schemas import ContractCreate
from slotbook.domain.contracts.service import ContractService
from slotbook.exceptions import (
    BookingValidationError,
    ConflictError,
    NotFoundError,
    SlotUnavailableError,
)
from slotbook.models import Appointment, Contract, ContractAddon, Slot, SlotStatus


def contract_payload(with_visit=True, **overrides):
    data = {
        "customerName": "Carla Mendes",
        "customerEmail": "carla.mendes@provedor.com.br",
        "customerPhone": "+55 11 91234-5678",
        "customerDocument": "123.456.789-00",
        "installationAddress": "Rua das Flores, 100",
        "planCode": "FIBRA500",
        "planName": "Fibra 500 Mega",
        "planValue": 99.9,
        "dueDay": 10,
        "salesRep": "Diego",
        "addons": [
            {"code": "WIFI_MESH", "name": "Wi-Fi Mesh", "value": 19.9},
            {"code": "TV", "name": "TV Box", "value": 29.9},
        ],
    }
    if with_visit:
        data["appointment"] = {"date": VISIT_DAY, "slotNumber": 1, "technicianId": "tech-1"}
    data.update(overrides)
    return ContractCreate(**data)


def assert_nothing_written(db):
    assert db.query(Contract).count() == 0
    assert db.query(ContractAddon).count() == 0
    assert db.query(Appointment).count() == 0


@pytest.fixture
def service(db):
    make_slots(db, TENANT_ID, VISIT_DAY, 2)
    return ContractService(db)


class TestCreateContract:
    def test_contract_with_installation(self, db, service):
        contract = service.create_contract(TENANT_ID, contract_payload(), ACTOR_ID)

        assert contract.status == "pending"
        assert [a.code for a in contract.addons] == ["WIFI_MESH", "TV"]
        appointment = contract.appointment
        assert appointment.contract_id == contract.id
        assert appointment.type == "installation"
        assert appointment.client_name == "Carla Mendes"
        assert appointment.client_phone == "+5511912345678"
        assert appointment.technician_id == "tech-1"

        slot = service.slots.get_slot(TENANT_ID, VISIT_DAY, 1)
        assert (slot.status, slot.appointment_id) == ("occupied", appointment.id)

    def test_contract_without_installation_skips_slots(self, db, service):
        contract = service.create_contract(TENANT_ID, contract_payload(with_visit=False), ACTOR_ID)

        assert contract.appointment is None
        assert db.query(Appointment).count() == 0
        assert service.slots.get_slot(TENANT_ID, VISIT_DAY, 1).status == "available"

    def test_unavailable_slot_writes_nothing(self, db, service):
        service.slots.set_status(TENANT_ID, VISIT_DAY, 1, "blocked")

        with pytest.raises(SlotUnavailableError):
            service.create_contract(TENANT_ID, contract_payload(), ACTOR_ID)
        assert_nothing_written(db)

    def test_missing_slot_writes_nothing(self, db, service):
        payload = contract_payload()
        payload.appointment.slotNumber = 9

        with pytest.raises(NotFoundError):
            service.create_contract(TENANT_ID, payload, ACTOR_ID)
        assert_nothing_written(db)

    def test_slot_lost_after_check_rolls_everything_back(self, db, service, monkeypatch):
        """Slot gets blocked by someone else between the check and the booking."""
        check = service.slots.ensure_available

        def check_then_lose_race(tenant_id, slot_date, slot_number):
            slot = check(tenant_id, slot_date, slot_number)
            db.execute(
                update(Slot)
                .where(Slot.id == slot.id)
                .values(status=SlotStatus.BLOCKED.value)
            )
            db.commit()
            return slot

        monkeypatch.setattr(service.slots, "ensure_available", check_then_lose_race)

        with pytest.raises(ConflictError):
            service.create_contract(TENANT_ID, contract_payload(), ACTOR_ID)

        assert_nothing_written(db)
        assert service.slots.get_slot(TENANT_ID, VISIT_DAY, 1).status == "blocked"

    def test_installation_requires_email(self, db, service):
        with pytest.raises(BookingValidationError, match="email"):
            service.create_contract(TENANT_ID, contract_payload(customerEmail=None), ACTOR_ID)
        assert_nothing_written(db)


class TestReadContracts:
    def test_get_is_scoped_to_tenant(self, service):
        contract = service.create_contract(TENANT_ID, contract_payload(), ACTOR_ID)

        assert service.get_contract(TENANT_ID, contract.id).id == contract.id
        with pytest.raises(NotFoundError):
            service.get_contract("other-tenant", contract.id)

    def test_list_filters_by_status(self, service):
        service.create_contract(TENANT_ID, contract_payload(with_visit=False), ACTOR_ID)
        service.create_contract(TENANT_ID, contract_payload(), ACTOR_ID)

        contracts, total = service.list_contracts(TENANT_ID, status="pending")
        assert total == 2
        assert len(contracts) == 2

        _, total = service.list_contracts(TENANT_ID, status="active")
        assert total == 0
