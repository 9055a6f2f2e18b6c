"""Timestamp helpers.

All timestamps are stored as ISO-8601 strings in UTC, which keeps string
ordering consistent with chronological ordering.
"""

import math
from datetime import datetime, timedelta

import pytz


def now_utc() -> datetime:
    return datetime.now(pytz.utc)


def to_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value.astimezone(pytz.utc)


def to_utc_iso(value: datetime) -> str:
    return to_utc(value).isoformat()


def parse_iso(value: str) -> datetime:
    return to_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def days_until(deadline: datetime, now: datetime) -> int:
    """Whole days left before a deadline, rounded up."""
    return math.ceil((deadline - now) / timedelta(days=1))


def shift_months(value: datetime, months: int) -> datetime:
    """Move a datetime by a number of calendar months, clamping the day."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, _days_in_month(year, month))
    return value.replace(year=year, month=month, day=day)


def _days_in_month(year: int, month: int) -> int:
    if month == 12:
        return 31
    return (datetime(year, month + 1, 1) - datetime(year, month, 1)).days
