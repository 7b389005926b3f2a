"""Timezone-aware UTC helpers for timestamps and reporting windows.

Usage:
    from libs.common.datetime_utils import utc_now

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Union


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def start_of_day(day: Union[date, datetime]) -> datetime:
    """Midnight UTC of the given day."""
    if isinstance(day, datetime):
        day = day.astimezone(timezone.utc).date()
    return datetime.combine(day, time.min, timezone.utc)


def end_of_day(day: Union[date, datetime]) -> datetime:
    """Exclusive upper bound for the given day (next midnight UTC)."""
    return start_of_day(day) + timedelta(days=1)


def start_of_month(year: int, month: int) -> datetime:
    return datetime(year, month, 1, tzinfo=timezone.utc)


def start_of_next_month(year: int, month: int) -> datetime:
    if month == 12:
        return start_of_month(year + 1, 1)
    return start_of_month(year, month + 1)
