"""Contract service - Business logic for contract operations"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...config import CONTRACT_APPOINTMENT_TYPE, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...exceptions import BookingValidationError, NotFoundError
from ...models import Contract
from ...shared.validators import normalize_phone
from ...utils.sanitization import sanitize_string
from ..appointments.service import AppointmentService
from ..slots.service import slot_label
from .repository import ContractRepository
from .schemas import ContractCreate

logger = logging.getLogger(__name__)


class ContractService:
    """Service layer for contract business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ContractRepository()
        self.appointments = AppointmentService(db)
        self.slots = self.appointments.slots

    def get_contract(self, tenant_id: str, contract_id: str) -> Contract:
        """Get a specific contract"""
        contract = self.repo.get_contract_by_id(self.db, tenant_id, contract_id)
        if not contract:
            raise NotFoundError("Contract not found")
        return contract

    def list_contracts(
        self,
        tenant_id: str,
        status: Optional[str] = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> tuple[list[Contract], int]:
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise BookingValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")
        if offset < 0:
            raise BookingValidationError("Offset must not be negative")
        return self.repo.get_contracts(self.db, tenant_id, status, limit, offset)

    def create_contract(
        self, tenant_id: str, data: ContractCreate, actor_id: Optional[str] = None
    ) -> Contract:
        """
        Register a sale and, when requested, book its installation visit.

        Slot availability is checked before anything is written. Contract,
        add-ons, appointment and slot occupation share one transaction, so a
        slot lost to a concurrent booking leaves no contract behind.
        """
        logger.info(f"📝 Creating contract for {data.customerName}, addons: {len(data.addons)}")

        try:
            customer_phone = normalize_phone(data.customerPhone)
        except ValueError as e:
            raise BookingValidationError(str(e))

        visit = data.appointment
        if visit:
            if not data.customerEmail:
                raise BookingValidationError("Customer email is required to book an installation")
            self.slots.ensure_available(tenant_id, visit.date, visit.slotNumber)

        customer_name = sanitize_string(data.customerName)
        try:
            contract = self.repo.create_contract(
                self.db,
                tenant_id,
                customer_name=customer_name,
                customer_email=str(data.customerEmail) if data.customerEmail else None,
                customer_phone=customer_phone,
                customer_document=sanitize_string(data.customerDocument),
                installation_address=sanitize_string(data.installationAddress),
                plan_code=sanitize_string(data.planCode),
                plan_name=sanitize_string(data.planName),
                plan_value=data.planValue,
                due_day=data.dueDay,
                origin=sanitize_string(data.origin),
                sales_rep=sanitize_string(data.salesRep),
                notes=sanitize_string(data.notes),
                created_by=actor_id,
            )

            self.repo.add_addons(
                self.db,
                tenant_id,
                contract,
                [
                    {
                        "code": sanitize_string(addon.code),
                        "name": sanitize_string(addon.name),
                        "value": addon.value,
                    }
                    for addon in data.addons
                ],
            )

            if visit:
                self.appointments.book_slot(
                    tenant_id,
                    visit.date,
                    visit.slotNumber,
                    actor_id,
                    type=CONTRACT_APPOINTMENT_TYPE,
                    client_name=customer_name,
                    client_email=str(data.customerEmail),
                    client_phone=customer_phone,
                    client_code=sanitize_string(data.clientCode),
                    technician_id=visit.technicianId,
                    contract_id=contract.id,
                    origin=sanitize_string(data.origin),
                    sales_rep=sanitize_string(data.salesRep),
                    network=sanitize_string(visit.network),
                    notes=sanitize_string(visit.notes),
                )

            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Contract creation rolled back: {e}")
            raise

        self.db.refresh(contract)
        if visit:
            logger.info(
                f"✅ Contract {contract.id} created with installation at {slot_label(visit.date, visit.slotNumber)}"
            )
        else:
            logger.info(f"✅ Contract {contract.id} created without appointment")
        return contract
