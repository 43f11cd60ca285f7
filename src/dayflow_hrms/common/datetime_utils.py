from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta
from typing import Optional

from ..core.exceptions import ValidationError

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": "seconds", "s": "seconds", "m": "minutes", "h": "hours", "d": "days"}


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date.

    Full ISO timestamps are accepted too; only the date part is kept.
    """
    try:
        return datetime.strptime(value[:10], "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date: {value!r} (expected YYYY-MM-DD)")


def parse_optional_date(value: Optional[str]) -> Optional[date]:
    if value is None or not str(value).strip():
        return None
    return parse_iso_date(str(value).strip())


def parse_hhmm(value: str) -> time:
    try:
        return datetime.strptime(value.strip(), "%H:%M").time()
    except (AttributeError, ValueError):
        raise ValidationError("Invalid time (expected HH:MM)")


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch it easily.
    """
    return datetime.now()


def start_of_day(value: date) -> datetime:
    """Midnight of the given day; documents store calendar dates this way."""
    return datetime.combine(value, time.min)


def business_days(start: date, end: date) -> int:
    """Count Monday-Friday days in the inclusive range."""
    if end < start:
        return 0
    days = 0
    current = start
    while current <= end:
        if current.weekday() < 5:
            days += 1
        current += timedelta(days=1)
    return days


def month_bounds(year: int, month: int) -> tuple[date, date]:
    first = date(year, month, 1)
    if month == 12:
        next_first = date(year + 1, 1, 1)
    else:
        next_first = date(year, month + 1, 1)
    return first, next_first - timedelta(days=1)


def format_hours(hours: float) -> str:
    """Render fractional hours as HH:MM:SS, truncating; non-positive is 00:00:00."""
    if not hours or hours <= 0:
        return "00:00:00"
    whole = int(hours)
    minutes_f = (hours - whole) * 60
    minutes = int(minutes_f + 1e-9)
    seconds = int((minutes_f - minutes) * 60 + 1e-6)
    if seconds >= 60:
        minutes, seconds = minutes + 1, 0
    if minutes >= 60:
        whole, minutes = whole + 1, 0
    return f"{whole:02d}:{minutes:02d}:{seconds:02d}"


def parse_duration(value: str) -> timedelta:
    """Parse durations like '1d', '12h', '30m' or '3600' into a timedelta."""
    match = _DURATION_RE.match(str(value or ""))
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit]: int(amount)})
