from __future__ import annotations

from datetime import date, datetime, time

import pytz
from dateutil.relativedelta import relativedelta


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_hhmm(value: str) -> time:
    """Parse HH:MM string into time."""
    return datetime.strptime(value.strip(), "%H:%M").time()


def now_utc() -> datetime:
    """Current time as an aware UTC datetime.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now(pytz.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive values (as stored in MySQL) or convert aware ones."""
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value.astimezone(pytz.utc)


def to_naive_utc(value: datetime) -> datetime:
    return ensure_utc(value).replace(tzinfo=None)


def to_local(value: datetime, tz: pytz.BaseTzInfo) -> datetime:
    return ensure_utc(value).astimezone(tz)


def local_day(value: datetime, tz: pytz.BaseTzInfo) -> date:
    """Calendar day of ``value`` in the facility timezone."""
    return to_local(value, tz).date()


def local_datetime(day: date, at: time, tz: pytz.BaseTzInfo) -> datetime:
    """Facility-local wall clock ``day at`` as an aware UTC datetime."""
    return tz.localize(datetime.combine(day, at)).astimezone(pytz.utc)


def add_months(value: datetime, months: int, tz: pytz.BaseTzInfo) -> datetime:
    """Add calendar months in the facility timezone.

    Jan 31 + 1 month lands on the last day of February; the wall-clock time
    is kept even across DST changes.
    """
    local = to_local(value, tz).replace(tzinfo=None)
    shifted = local + relativedelta(months=months)
    return tz.localize(shifted).astimezone(pytz.utc)


def same_local_month(a: datetime, b: datetime, tz: pytz.BaseTzInfo) -> bool:
    la = to_local(a, tz)
    lb = to_local(b, tz)
    return (la.year, la.month) == (lb.year, lb.month)


def whole_days_between(start: datetime, end: datetime) -> int:
    """Number of whole days from ``start`` to ``end`` (truncated toward zero)."""
    seconds = (ensure_utc(end) - ensure_utc(start)).total_seconds()
    return int(seconds / 86400)
