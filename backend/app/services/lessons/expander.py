# backend/app/services/lessons/expander.py
"""
Template expansion.

Turns a ScheduleTemplate plus a date range, weekday set and daily anchor
time into concrete candidate lesson intervals.

Contains:
✓ date range + weekday filter (0 = Sunday)
✓ explicit closed dates
✓ lesson/break walk from base_time_start, in the batch time zone
✓ optional end-of-day limit (legacy rule path): template repeats, day truncates

Does NOT contain:
✗ Existing slots (see conflicts.py)
✗ Any I/O
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from .config import SchedulingConfig, get_scheduling_config
from .intervals import api_weekday, iter_dates, local_to_utc
from .template import ScheduleSpec, ScheduleTemplate


@dataclass(frozen=True)
class Candidate:
    """A proposed slot. start_at/end_at are naive UTC."""
    date: date
    start_at: datetime
    end_at: datetime
    capacity: int
    joinable: bool


def matching_dates(
    valid_from: date,
    valid_to: date,
    days_of_week,
    ignore_weekdays: bool = False,
) -> list[date]:
    """Dates in [valid_from, valid_to] whose weekday is selected."""
    selected = set(days_of_week or ())
    return [
        day
        for day in iter_dates(valid_from, valid_to)
        if ignore_weekdays or api_weekday(day) in selected
    ]


def expand_template(
    template: ScheduleTemplate,
    valid_from: date,
    valid_to: date,
    days_of_week,
    base_time_start: time,
    timezone: ZoneInfo | str,
    closed_dates=frozenset(),
    day_end: time | None = None,
    ignore_weekdays: bool = False,
    config: SchedulingConfig | None = None,
) -> list[Candidate]:
    """
    Expand a template into candidate intervals.

    Args:
        closed_dates: local dates that produce nothing
        day_end: local time-of-day limit; when set, the template repeats
                 until a block would run past it and the day stops there
        ignore_weekdays: generate for every date in range (single-day overwrite)

    Returns:
        Candidates ordered by date, then by position in the day.
    """
    config = config or get_scheduling_config()
    tz = ZoneInfo(timezone) if isinstance(timezone, str) else timezone
    closed = set(closed_dates)

    candidates: list[Candidate] = []
    for day in matching_dates(valid_from, valid_to, days_of_week, ignore_weekdays):
        if day in closed:
            continue
        candidates.extend(_expand_day(template, day, base_time_start, tz, day_end, config))
    return candidates


def expand_spec(
    spec: ScheduleSpec,
    closed_dates=frozenset(),
    config: SchedulingConfig | None = None,
) -> list[Candidate]:
    """Expand a batch spec (weekday mask ignored for a single-day overwrite)."""
    if not spec.template.blocks:
        return []
    return expand_template(
        spec.template,
        spec.valid_from,
        spec.valid_to,
        spec.days_of_week,
        spec.base_time,
        spec.zone,
        closed_dates=closed_dates,
        ignore_weekdays=spec.overwrites_day,
        config=config,
    )


def _expand_day(
    template: ScheduleTemplate,
    day: date,
    base_time_start: time,
    tz: ZoneInfo,
    day_end: time | None,
    config: SchedulingConfig,
) -> list[Candidate]:
    cursor = local_to_utc(day, base_time_start, tz)
    limit = local_to_utc(day, day_end, tz) if day_end is not None else None

    result: list[Candidate] = []
    while True:
        for block in template.blocks:
            end = cursor + timedelta(minutes=block.duration_minutes)
            if limit is not None and end > limit:
                return result
            if block.is_lesson:
                result.append(Candidate(
                    date=day,
                    start_at=cursor,
                    end_at=end,
                    capacity=template.capacity_for(block, config),
                    joinable=template.joinable_for(block),
                ))
            cursor = end
        # Without a limit the template is walked exactly once
        if limit is None:
            return result
