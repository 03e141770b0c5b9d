"""
Message domain models and schemas.

Every notifiable record carries one or more delivery phases. A phase is
four columns (status, owner, claim time, retry count) following the
PENDING -> PROCESSING -> SENT/FAILED state machine.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Optional

from pydantic import BaseModel
from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import declarative_base

from notifier.utils.time import utc_now

Base = declarative_base()


class MessageStatus(IntEnum):
    """Delivery status of a single phase."""
    PENDING = 0
    PROCESSING = 1
    SENT = 2
    FAILED = 3


class CategoryKind(str, Enum):
    """Notification categories handled by the dispatch engine."""
    WELCOME = "welcome"
    CONFIRMATION = "confirmation"
    REMINDER = "reminder"


class Patient(Base):
    """Patient phone record; source of welcome messages."""
    
    __tablename__ = "patients"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    patient_id = Column(Integer, nullable=True, index=True)
    branch_id = Column(Integer, nullable=False, default=1)
    name = Column(String(120), nullable=True)
    number = Column(String(32), nullable=True)
    created_at = Column(DateTime, default=utc_now)
    
    whatsapp_status = Column(Integer, nullable=False, default=MessageStatus.PENDING)
    whatsapp_owner_id = Column(String(255), nullable=True)
    whatsapp_claimed_at = Column(DateTime, nullable=True)
    whatsapp_retry_count = Column(Integer, nullable=False, default=0)
    
    __table_args__ = (
        Index("ix_patients_whatsapp_status", "whatsapp_status", "patient_id", "branch_id"),
    )
    
    def __repr__(self) -> str:
        return f"<Patient(id={self.id}, patient_id={self.patient_id}, status={self.whatsapp_status})>"


class Specialty(Base):
    __tablename__ = "specialties"
    
    id = Column(Integer, primary_key=True)
    arb_name = Column(String(120), nullable=True)
    eng_name = Column(String(120), nullable=True)


class Doctor(Base):
    __tablename__ = "doctors"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    doctor_id = Column(Integer, nullable=False)
    branch_id = Column(Integer, nullable=False, default=1)
    arb_name = Column(String(120), nullable=True)
    eng_name = Column(String(120), nullable=True)
    specialty_id = Column(Integer, nullable=True)
    
    __table_args__ = (
        UniqueConstraint("doctor_id", "branch_id", name="uq_doctors_doctor_branch"),
    )


class Appointment(Base):
    """Booked appointment as written by the clinic system."""
    
    __tablename__ = "appointments"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    patient_id = Column(Integer, nullable=True)
    doctor_id = Column(Integer, nullable=True)
    branch_id = Column(Integer, nullable=False, default=1)
    the_date = Column(Integer, nullable=False)  # yyyymmdd
    the_time = Column(Integer, nullable=False)  # hmm / hhmm, clinic local time


class AppointmentQueueEntry(Base):
    """
    Deduplicated projection of an appointment.
    
    Created once per natural key by the ingestion step. The confirmation
    (initial_*) and reminder (reminder_*) phases evolve independently.
    """
    
    __tablename__ = "appointment_queue"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    patient_id = Column(Integer, nullable=False)
    doctor_id = Column(Integer, nullable=False)
    appointment_date = Column(Integer, nullable=False)
    appointment_time = Column(Integer, nullable=False)
    branch_id = Column(Integer, nullable=False, default=1)
    appointment_at = Column(DateTime, nullable=False)  # UTC instant
    recipient = Column(String(32), nullable=False)
    patient_name = Column(String(120), nullable=True)
    doctor_name = Column(String(120), nullable=True)
    specialty_name = Column(String(120), nullable=True)
    created_at = Column(DateTime, default=utc_now)
    
    initial_status = Column(Integer, nullable=False, default=MessageStatus.PENDING)
    initial_owner_id = Column(String(255), nullable=True)
    initial_claimed_at = Column(DateTime, nullable=True)
    initial_retry_count = Column(Integer, nullable=False, default=0)
    
    reminder_status = Column(Integer, nullable=False, default=MessageStatus.PENDING)
    reminder_owner_id = Column(String(255), nullable=True)
    reminder_claimed_at = Column(DateTime, nullable=True)
    reminder_retry_count = Column(Integer, nullable=False, default=0)
    
    __table_args__ = (
        UniqueConstraint(
            "patient_id", "doctor_id", "appointment_date", "appointment_time",
            name="uq_appointment_queue_natural_key",
        ),
        Index("ix_appointment_queue_initial_status", "initial_status"),
        Index("ix_appointment_queue_reminder_status", "reminder_status", "appointment_at"),
    )
    
    def __repr__(self) -> str:
        return (
            f"<AppointmentQueueEntry(id={self.id}, patient_id={self.patient_id}, "
            f"initial={self.initial_status}, reminder={self.reminder_status})>"
        )


# Natural key used by insert-if-absent
QUEUE_NATURAL_KEY = ("patient_id", "doctor_id", "appointment_date", "appointment_time")


class CompanyProfile(Base):
    """Clinic header used when rendering messages."""
    
    __tablename__ = "company_profile"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    arb_name = Column(String(255), nullable=True)
    eng_name = Column(String(255), nullable=True)
    arb_address = Column(String(500), nullable=True)
    eng_address = Column(String(500), nullable=True)
    arb_tel = Column(String(64), nullable=True)
    eng_tel = Column(String(64), nullable=True)


class DeliveryLog(Base):
    """Append-only record of every transport attempt."""
    
    __tablename__ = "delivery_logs"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    category = Column(String(32), nullable=False)
    record_id = Column(Integer, nullable=False)
    recipient = Column(String(64), nullable=True)
    status = Column(String(16), nullable=False)  # sent, failed
    error = Column(String(1000), nullable=True)
    worker_id = Column(String(255), nullable=True)
    attempted_at = Column(DateTime, default=utc_now, index=True)


@dataclass(frozen=True)
class MessagePhase:
    """A model together with the four columns of one delivery phase."""
    name: str
    model: Any
    status: Any
    owner_id: Any
    claimed_at: Any
    retry_count: Any
    
    @property
    def id_column(self):
        return self.model.id


WELCOME_PHASE = MessagePhase(
    name="welcome",
    model=Patient,
    status=Patient.whatsapp_status,
    owner_id=Patient.whatsapp_owner_id,
    claimed_at=Patient.whatsapp_claimed_at,
    retry_count=Patient.whatsapp_retry_count,
)

CONFIRMATION_PHASE = MessagePhase(
    name="confirmation",
    model=AppointmentQueueEntry,
    status=AppointmentQueueEntry.initial_status,
    owner_id=AppointmentQueueEntry.initial_owner_id,
    claimed_at=AppointmentQueueEntry.initial_claimed_at,
    retry_count=AppointmentQueueEntry.initial_retry_count,
)

REMINDER_PHASE = MessagePhase(
    name="reminder",
    model=AppointmentQueueEntry,
    status=AppointmentQueueEntry.reminder_status,
    owner_id=AppointmentQueueEntry.reminder_owner_id,
    claimed_at=AppointmentQueueEntry.reminder_claimed_at,
    retry_count=AppointmentQueueEntry.reminder_retry_count,
)

ALL_PHASES = (WELCOME_PHASE, CONFIRMATION_PHASE, REMINDER_PHASE)


# Pydantic Schemas

class SendResult(BaseModel):
    """Outcome of a single transport call."""
    success: bool
    error: Optional[str] = None


class TickReport(BaseModel):
    """Summary of one dispatch tick."""
    category: CategoryKind
    skipped: bool = False
    ingested: int = 0
    claimed: int = 0
    sent: int = 0
    failed: int = 0
    lost_races: int = 0
    # Claimed but outside the send window; retried after the stale timeout
    deferred: int = 0


class DeliveryLogResponse(BaseModel):
    """Schema for delivery log entries."""
    id: int
    category: str
    record_id: int
    recipient: Optional[str]
    status: str
    error: Optional[str]
    worker_id: Optional[str]
    attempted_at: datetime
    
    class Config:
        from_attributes = True
