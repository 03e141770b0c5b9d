"""
Shared test data and doubles.
"""

from datetime import datetime
from typing import List, Optional

from notifier.domain.messages import (
    AppointmentQueueEntry,
    MessageStatus,
    Patient,
    SendResult,
)

# Fixed reference instant (naive UTC) used across tests
T0 = datetime(2026, 3, 10, 8, 0, 0)

TEST_TIMEZONE = "Asia/Riyadh"


class FakeTransport:
    """Transport double that records every send."""
    
    def __init__(self, fail_for: Optional[set] = None, raise_for: Optional[set] = None):
        self.sent: List[tuple] = []
        self.fail_for = fail_for or set()
        self.raise_for = raise_for or set()
    
    async def send(self, recipient: str, content: str) -> SendResult:
        if recipient in self.raise_for:
            raise RuntimeError(f"transport exploded for {recipient}")
        self.sent.append((recipient, content))
        if recipient in self.fail_for:
            return SendResult(success=False, error="recipient unreachable")
        return SendResult(success=True)
    
    @property
    def recipients(self) -> List[str]:
        return [recipient for recipient, _ in self.sent]


async def add_patients(session_factory, count: int, start: int = 1, **overrides) -> List[Patient]:
    """Insert ``count`` pending patients with distinct phone numbers."""
    patients = []
    for i in range(start, start + count):
        values = dict(
            patient_id=1000 + i,
            branch_id=1,
            name=f"Patient {i}",
            number=f"05{i:08d}",
        )
        values.update(overrides)
        patients.append(Patient(**values))
    
    async with session_factory() as session:
        session.add_all(patients)
        await session.commit()
    return patients


async def add_queue_entry(session_factory, appointment_at: datetime, **overrides) -> AppointmentQueueEntry:
    """Insert an appointment queue entry directly, already confirmed by default."""
    values = dict(
        patient_id=1001,
        doctor_id=7,
        appointment_date=int(appointment_at.strftime("%Y%m%d")),
        appointment_time=int(appointment_at.strftime("%H%M")),
        branch_id=1,
        appointment_at=appointment_at,
        recipient="966500000001",
        patient_name="Patient 1",
        doctor_name="د. أحمد",
        specialty_name="الأسنان",
        initial_status=MessageStatus.SENT,
    )
    values.update(overrides)
    entry = AppointmentQueueEntry(**values)
    
    async with session_factory() as session:
        session.add(entry)
        await session.commit()
    return entry
