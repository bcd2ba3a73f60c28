# backend/app/services/lessons/intervals.py
"""
Pure time-interval helpers.

Intervals are half-open: [start, end). Touching intervals do not overlap.
Weekdays follow the 0 = Sunday .. 6 = Saturday numbering used by the API.
"""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """[a, b) and [c, d) conflict iff a < d and b > c."""
    return start_a < end_b and end_a > start_b


def contains(outer_start: datetime, outer_end: datetime, start: datetime, end: datetime) -> bool:
    """True when [start, end) lies fully inside [outer_start, outer_end)."""
    return outer_start <= start and end <= outer_end


def api_weekday(day: date) -> int:
    """Weekday with Sunday = 0 (Python's weekday() has Monday = 0)."""
    return (day.weekday() + 1) % 7


def in_date_range(day: date, date_from: date | None, date_to: date | None) -> bool:
    """Inclusive range check; a missing bound is unbounded."""
    if date_from is not None and day < date_from:
        return False
    if date_to is not None and day > date_to:
        return False
    return True


def iter_dates(date_from: date, date_to: date):
    """Yield every date in [date_from, date_to]."""
    current = date_from
    while current <= date_to:
        yield current
        current += timedelta(days=1)


def local_to_utc(day: date, at: time, tz: ZoneInfo) -> datetime:
    """Local wall-clock time on `day` in `tz` → naive UTC datetime."""
    local = datetime.combine(day, at, tzinfo=tz)
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def utc_to_local(value: datetime, tz: ZoneInfo) -> datetime:
    """Naive UTC datetime → aware local datetime in `tz`."""
    return value.replace(tzinfo=timezone.utc).astimezone(tz)


def local_day_bounds(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Naive UTC [start, end) covering the local calendar day."""
    start = local_to_utc(day, time(0, 0), tz)
    end = local_to_utc(day + timedelta(days=1), time(0, 0), tz)
    return start, end


def minutes_between(start: datetime, end: datetime) -> int:
    return round((end - start).total_seconds() / 60)
