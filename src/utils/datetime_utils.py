"""
Date and time utilities.

All timestamps in the domain are timezone-aware UTC datetimes. Calendar
values (budget periods, goal target dates) are plain dates.
"""

import calendar
from datetime import date, datetime, time, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current UTC datetime with tzinfo set."""
    return datetime.now(timezone.utc)


def ensure_utc(value: date | datetime) -> datetime:
    """
    Normalize a date or datetime to an aware UTC datetime.

    Dates become midnight UTC. Naive datetimes are taken to be UTC already.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    raise TypeError(f"Expected date or datetime, got {type(value).__name__}")


def parse_moment(value):
    """Turn dates and ISO-8601 strings into aware UTC datetimes; other values pass through."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, (date, datetime)):
        return ensure_utc(value)
    return value


def to_iso(value: Optional[date | datetime]) -> Optional[str]:
    """ISO-8601 string or None."""
    if value is None:
        return None
    return value.isoformat()


def end_of_month(year: int, month: int) -> date:
    """Last calendar day of the given month."""
    return date(year, month, calendar.monthrange(year, month)[1])


def add_months(day: date, months: int) -> date:
    """
    Shift a date by whole months, clamping the day to the target month.

    >>> add_months(date(2024, 1, 31), 1)
    datetime.date(2024, 2, 29)
    """
    index = day.month - 1 + months
    year = day.year + index // 12
    month = index % 12 + 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


__all__ = ["add_months", "end_of_month", "ensure_utc", "parse_moment", "to_iso", "utcnow"]
