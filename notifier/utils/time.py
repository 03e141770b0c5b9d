"""
Time utilities.

The store keeps naive UTC datetimes. Appointment dates and times arrive as
clinic-local integer encodings (yyyymmdd, hmm) and are converted to UTC
instants once, at ingestion.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Get the current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: datetime, tz: Optional[ZoneInfo] = None) -> datetime:
    """
    Convert a datetime to naive UTC.
    
    Args:
        dt: Datetime to convert (naive values are read in ``tz``, or UTC)
        tz: Zone for naive input
    
    Returns:
        Naive UTC datetime
    """
    if dt.tzinfo is None:
        if tz is None:
            return dt
        dt = dt.replace(tzinfo=tz)
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_db_datetime(raw_date: int, raw_time: int, tz_name: str) -> datetime:
    """
    Build a naive UTC instant from clinic-local date/time encodings.
    
    Args:
        raw_date: Date as yyyymmdd (e.g. 20250824)
        raw_time: Time as hmm or hhmm (e.g. 900, 1145)
        tz_name: IANA zone of the clinic
    
    Returns:
        Naive UTC datetime
    
    Raises:
        ValueError: If either encoding is not a valid date or time
    """
    date_str = str(raw_date)
    time_str = str(raw_time).zfill(4)
    if len(date_str) != 8 or len(time_str) != 4:
        raise ValueError(f"Invalid appointment encoding: {raw_date} {raw_time}")
    
    local = datetime(
        int(date_str[0:4]),
        int(date_str[4:6]),
        int(date_str[6:8]),
        int(time_str[0:2]),
        int(time_str[2:4]),
        tzinfo=ZoneInfo(tz_name),
    )
    return to_naive_utc(local)


def ingest_cutoff_date(tz_name: str, lookback_days: int = 0, now: Optional[datetime] = None) -> int:
    """
    Earliest appointment date (yyyymmdd) accepted by ingestion.
    
    Args:
        tz_name: IANA zone of the clinic
        lookback_days: Days before today still accepted
        now: Naive UTC reference time (defaults to now)
    """
    now = now or utc_now()
    local_today = now.replace(tzinfo=timezone.utc).astimezone(ZoneInfo(tz_name)).date()
    cutoff = local_today - timedelta(days=lookback_days)
    return int(cutoff.strftime("%Y%m%d"))


def format_db_date(raw_date: Union[int, str, None]) -> str:
    """Format a date from yyyymmdd (20250824) to yyyy-mm-dd (2025-08-24)."""
    value = "" if raw_date is None else str(raw_date)
    if len(value) == 8:
        return f"{value[0:4]}-{value[4:6]}-{value[6:8]}"
    return value


def format_db_time(raw_time: Union[int, str, None]) -> str:
    """Format a time from hmm/hhmm (900, 1145) to HH:mm (09:00, 11:45)."""
    if raw_time is None:
        return ""
    value = str(raw_time).zfill(4)
    if len(value) == 4:
        return f"{value[0:2]}:{value[2:4]}"
    return value
