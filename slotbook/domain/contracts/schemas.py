"""Contract domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from ..appointments.schemas import AppointmentResponse, appointment_response


class ContractAddonInput(BaseModel):
    """Add-on line item sold with the contract"""

    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    value: float = Field(0.0, ge=0)


class ContractAppointmentRequest(BaseModel):
    """Installation visit to book together with the contract"""

    date: date
    slotNumber: int = Field(..., ge=1)
    technicianId: Optional[str] = None
    network: Optional[str] = None
    notes: Optional[str] = None


class ContractCreate(BaseModel):
    """Schema for registering a sale, optionally with its installation visit"""

    customerName: str = Field(..., min_length=1, max_length=255)
    customerEmail: Optional[EmailStr] = None
    customerPhone: Optional[str] = None
    customerDocument: Optional[str] = None  # CPF / CNPJ
    installationAddress: Optional[str] = None
    clientCode: Optional[str] = None
    planCode: Optional[str] = None
    planName: Optional[str] = None
    planValue: Optional[float] = Field(None, ge=0)
    dueDay: Optional[int] = Field(None, ge=1, le=31)
    origin: Optional[str] = None
    salesRep: Optional[str] = None
    notes: Optional[str] = None
    addons: list[ContractAddonInput] = []
    appointment: Optional[ContractAppointmentRequest] = None


class ContractAddonResponse(BaseModel):
    code: str
    name: str
    value: float


class ContractResponse(BaseModel):
    """Schema for contract response"""

    id: str
    status: str
    customerName: str
    customerEmail: Optional[str] = None
    customerPhone: Optional[str] = None
    customerDocument: Optional[str] = None
    installationAddress: Optional[str] = None
    planCode: Optional[str] = None
    planName: Optional[str] = None
    planValue: Optional[float] = None
    dueDay: Optional[int] = None
    origin: Optional[str] = None
    salesRep: Optional[str] = None
    notes: Optional[str] = None
    addons: list[ContractAddonResponse]
    appointment: Optional[AppointmentResponse] = None
    createdBy: Optional[str] = None
    createdAt: Optional[datetime] = None


class ContractListResponse(BaseModel):
    items: list[ContractResponse]
    total: int
    limit: int
    offset: int


def contract_response(contract) -> ContractResponse:
    return ContractResponse(
        id=contract.id,
        status=contract.status,
        customerName=contract.customer_name,
        customerEmail=contract.customer_email,
        customerPhone=contract.customer_phone,
        customerDocument=contract.customer_document,
        installationAddress=contract.installation_address,
        planCode=contract.plan_code,
        planName=contract.plan_name,
        planValue=contract.plan_value,
        dueDay=contract.due_day,
        origin=contract.origin,
        salesRep=contract.sales_rep,
        notes=contract.notes,
        addons=[ContractAddonResponse(code=a.code, name=a.name, value=a.value) for a in contract.addons],
        appointment=appointment_response(contract.appointment) if contract.appointment else None,
        createdBy=contract.created_by,
        createdAt=contract.created_at,
    )
