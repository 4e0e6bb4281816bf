"""Shared date utilities.

All datetimes are stored naive in UTC, so anything coming in with a timezone is
converted before comparison.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    """Current UTC time as a naive datetime"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Union[datetime, date]) -> datetime:
    """Normalize a date or datetime to a naive UTC datetime"""
    if not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day)
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def days_between(start: datetime, end: Optional[datetime] = None) -> int:
    """Whole days elapsed from start to end (floored)"""
    end = to_naive_utc(end) if end is not None else utcnow()
    return (end - to_naive_utc(start)).days


def add_days(value: datetime, days: int) -> datetime:
    return to_naive_utc(value) + timedelta(days=days)


def is_same_day(a: datetime, b: datetime) -> bool:
    return to_naive_utc(a).date() == to_naive_utc(b).date()


def format_date(value: datetime) -> str:
    """Format as "15 March 2023" """
    return to_naive_utc(value).strftime("%d %B %Y")
