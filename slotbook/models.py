import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate a UUID primary key"""
    return str(uuid.uuid4())


def utc_now():
    """Naive UTC timestamp with microseconds, for append-only audit rows"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SlotStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    BLOCKED = "blocked"


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    RESCHEDULED = "rescheduled"
    CANCELLED = "cancelled"


class ConfirmationState(str, Enum):
    PRE_SCHEDULED = "pre-scheduled"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class AppointmentType(Base):
    """Tenant catalog of appointment types. Rows are disabled, never deleted."""

    __tablename__ = "appointment_types"
    __table_args__ = (UniqueConstraint("tenant_id", "code", name="uq_appointment_types_tenant_code"),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String(36), nullable=False, index=True)
    code = Column(String(50), nullable=False)
    name = Column(String(255), nullable=False)
    disabled = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Slot(Base):
    """Bookable unit keyed by (tenant, date, slot number)"""

    __tablename__ = "slots"
    __table_args__ = (
        UniqueConstraint("tenant_id", "date", "slot_number", name="uq_slots_tenant_date_number"),
        CheckConstraint("slot_number >= 1", name="ck_slots_number_positive"),
        CheckConstraint(
            "status IN ('available', 'occupied', 'blocked')", name="ck_slots_status_valid"
        ),
        # Occupied <=> linked to an appointment
        CheckConstraint(
            "(status = 'occupied' AND appointment_id IS NOT NULL) "
            "OR (status <> 'occupied' AND appointment_id IS NULL)",
            name="ck_slots_occupied_link",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String(36), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    slot_number = Column(Integer, nullable=False)
    status = Column(String(20), default=SlotStatus.AVAILABLE.value, nullable=False)
    appointment_id = Column(String(36), ForeignKey("appointments.id"), nullable=True, unique=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    appointment = relationship("Appointment", foreign_keys=[appointment_id])


class Contract(Base):
    """Sales contract. Owns at most one appointment."""

    __tablename__ = "contracts"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), nullable=False, index=True)
    status = Column(String(50), default="pending", nullable=False, index=True)

    # Customer
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    customer_document = Column(String(50), nullable=True)  # CPF / CNPJ
    installation_address = Column(Text, nullable=True)

    # Plan
    plan_code = Column(String(50), nullable=True)
    plan_name = Column(String(255), nullable=True)
    plan_value = Column(Float, nullable=True)
    due_day = Column(Integer, nullable=True)

    # Sale
    origin = Column(String(100), nullable=True)
    sales_rep = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    addons = relationship("ContractAddon", back_populates="contract", cascade="all, delete-orphan")
    appointment = relationship("Appointment", back_populates="contract", uselist=False)


class ContractAddon(Base):
    __tablename__ = "contract_addons"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String(36), nullable=False, index=True)
    contract_id = Column(String(36), ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False)
    code = Column(String(50), nullable=False)
    name = Column(String(255), nullable=False)
    value = Column(Float, nullable=False, default=0.0)

    contract = relationship("Contract", back_populates="addons")


class Appointment(Base):
    """Scheduled visit bound to exactly one slot at a time"""

    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_tenant_date_slot", "tenant_id", "date", "slot_number"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), nullable=False, index=True)

    # Current slot; earlier assignments live in reschedule_history
    date = Column(Date, nullable=False)
    slot_number = Column(Integer, nullable=False)

    client_name = Column(String(255), nullable=False)
    client_email = Column(String(255), nullable=False)
    client_phone = Column(String(50), nullable=True)
    client_code = Column(String(100), nullable=True)

    type = Column(String(50), nullable=False)
    # Status workflow: pending -> rescheduled -> completed, or cancelled from any non-final state
    status = Column(String(20), default=AppointmentStatus.PENDING.value, nullable=False, index=True)
    confirmation_state = Column(
        String(20), default=ConfirmationState.PRE_SCHEDULED.value, nullable=False
    )

    technician_id = Column(String(36), nullable=True, index=True)
    contract_id = Column(String(36), ForeignKey("contracts.id"), nullable=True, unique=True)

    origin = Column(String(100), nullable=True)
    sales_rep = Column(String(255), nullable=True)
    network = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    contract = relationship("Contract", back_populates="appointment")


class AppointmentEditHistory(Base):
    """One row per changed field per edit. Append-only."""

    __tablename__ = "appointment_edit_history"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), nullable=False, index=True)
    appointment_id = Column(String(36), ForeignKey("appointments.id"), nullable=False, index=True)
    field_name = Column(String(100), nullable=False)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    actor_id = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False, index=True)


class RescheduleHistory(Base):
    """Before/after slot pair for every reschedule. Append-only."""

    __tablename__ = "reschedule_history"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), nullable=False, index=True)
    appointment_id = Column(String(36), ForeignKey("appointments.id"), nullable=False, index=True)
    old_date = Column(Date, nullable=False)
    old_slot_number = Column(Integer, nullable=False)
    new_date = Column(Date, nullable=False)
    new_slot_number = Column(Integer, nullable=False)
    reason = Column(Text, nullable=True)
    actor_id = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False, index=True)
