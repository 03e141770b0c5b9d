"""
Reminder eligibility window.

An appointment is eligible for its reminder while
``appointment_at - window <= now < appointment_at``.
"""

from datetime import datetime, timedelta
from typing import Optional


def reminder_window(window_hours: Optional[float]) -> Optional[timedelta]:
    """Window length, or None when reminders are disabled."""
    if window_hours is None or window_hours <= 0:
        return None
    return timedelta(hours=window_hours)


def is_within_reminder_window(
    appointment_at: datetime,
    window_hours: Optional[float],
    now: datetime
) -> bool:
    """
    Check whether ``now`` falls in the reminder window of an appointment.
    
    Args:
        appointment_at: Appointment instant (naive UTC)
        window_hours: Window length in hours, None when disabled
        now: Reference instant (naive UTC)
    
    Returns:
        True if a reminder may be sent now
    """
    window = reminder_window(window_hours)
    if window is None:
        return False
    return appointment_at - window <= now < appointment_at
