"""
Notification categories.

Each category binds a delivery phase to its claim conditions, recipient
resolution, eligibility gate and renderer. The dispatch engine runs all of
them through the same tick.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from notifier.domain.errors import ValidationFailure
from notifier.domain.messages import (
    AppointmentQueueEntry,
    CategoryKind,
    CONFIRMATION_PHASE,
    MessagePhase,
    MessageStatus,
    REMINDER_PHASE,
    WELCOME_PHASE,
)
from notifier.usecases.message_templates import (
    render_confirmation,
    render_reminder,
    render_welcome,
)
from notifier.utils.phone import normalize_phone_number
from notifier.utils.reminder_window import is_within_reminder_window, reminder_window


@dataclass(frozen=True)
class Category:
    kind: CategoryKind
    phase: MessagePhase
    render: Callable[[Any, Any], str]
    # Returns normalised recipient digits or raises ValidationFailure
    recipient: Callable[[Any, str], str]
    # Extra claim conditions; None means the category is switched off this tick
    claim_criteria: Callable[[datetime, Optional[float]], Optional[List[Any]]]
    # Pre-send check on a claimed record
    gate: Callable[[Any, datetime, Optional[float]], bool]
    ingests: bool = False
    windowed: bool = False


def _no_criteria(now: datetime, window_hours: Optional[float]) -> List[Any]:
    return []


def _always(record: Any, now: datetime, window_hours: Optional[float]) -> bool:
    return True


def _patient_recipient(patient, country_code: str) -> str:
    if patient.patient_id is None:
        raise ValidationFailure(f"Patient row {patient.id} has no patient id")
    recipient = normalize_phone_number(patient.number, country_code)
    if not recipient:
        raise ValidationFailure(f"Patient {patient.patient_id} has no phone number")
    return recipient


def _queue_recipient(entry, country_code: str) -> str:
    if not entry.recipient:
        raise ValidationFailure(f"Queue entry {entry.id} has no recipient")
    return entry.recipient


def _reminder_criteria(now: datetime, window_hours: Optional[float]) -> Optional[List[Any]]:
    window = reminder_window(window_hours)
    if window is None:
        return None
    return [
        AppointmentQueueEntry.initial_status == MessageStatus.SENT,
        AppointmentQueueEntry.appointment_at > now,
        AppointmentQueueEntry.appointment_at <= now + window,
    ]


def _reminder_gate(entry, now: datetime, window_hours: Optional[float]) -> bool:
    return is_within_reminder_window(entry.appointment_at, window_hours, now)


WELCOME = Category(
    kind=CategoryKind.WELCOME,
    phase=WELCOME_PHASE,
    render=render_welcome,
    recipient=_patient_recipient,
    claim_criteria=_no_criteria,
    gate=_always,
)

CONFIRMATION = Category(
    kind=CategoryKind.CONFIRMATION,
    phase=CONFIRMATION_PHASE,
    render=render_confirmation,
    recipient=_queue_recipient,
    claim_criteria=_no_criteria,
    gate=_always,
    ingests=True,
)

REMINDER = Category(
    kind=CategoryKind.REMINDER,
    phase=REMINDER_PHASE,
    render=render_reminder,
    recipient=_queue_recipient,
    claim_criteria=_reminder_criteria,
    gate=_reminder_gate,
    ingests=True,
    windowed=True,
)

CATEGORIES: Dict[CategoryKind, Category] = {
    category.kind: category for category in (WELCOME, CONFIRMATION, REMINDER)
}
