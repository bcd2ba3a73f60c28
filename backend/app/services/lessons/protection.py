# backend/app/services/lessons/protection.py
"""
Booking protection analysis.

Read-only impact report run before destructive schedule changes: which
live bookings sit on the slots a change would touch, split into
confirmed (protected, need a human) and pending (modifiable).
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session, joinedload

from ...models.generated import LessonBookings as DBBooking, LessonSlots as DBSlot
from .config import SchedulingConfig, get_scheduling_config, time_str_to_minutes
from .intervals import api_weekday, in_date_range, utc_to_local

UPCOMING_DAYS = 7


@dataclass
class ProtectionFilter:
    slot_ids: list[int] = field(default_factory=list)
    rule_id: int | None = None
    batch_id: int | None = None
    date_from: date | None = None
    date_to: date | None = None
    days_of_week: list[int] = field(default_factory=list)
    time_start: str | None = None
    time_end: str | None = None
    location: str | None = None
    timezone: str | None = None


def check_booking_protection(
    db: Session,
    flt: ProtectionFilter,
    config: SchedulingConfig | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Classify non-cancelled bookings matching the filter.

    Dates, weekdays and times are evaluated in the filter's time zone
    (default: configured zone).
    """
    config = config or get_scheduling_config()
    now = now or datetime.now(timezone.utc).replace(tzinfo=None)
    tz = ZoneInfo(flt.timezone or config.default_timezone)

    query = (
        db.query(DBBooking)
        .join(DBSlot, DBBooking.slot_id == DBSlot.id)
        .options(joinedload(DBBooking.slot), joinedload(DBBooking.user))
        .filter(DBBooking.status != "cancelled")
    )
    if flt.slot_ids:
        query = query.filter(DBBooking.slot_id.in_(flt.slot_ids))
    if flt.rule_id:
        query = query.filter(DBSlot.created_from_rule_id == flt.rule_id)
    if flt.batch_id:
        query = query.filter(DBSlot.created_from_batch_id == flt.batch_id)
    if flt.location:
        query = query.filter(DBSlot.location == flt.location)

    bookings = [
        b for b in query.order_by(DBSlot.start_at, DBBooking.id).all()
        if _matches(b.slot, flt, tz)
    ]

    protected = [b for b in bookings if b.status == "confirmed"]
    modifiable = [b for b in bookings if b.status == "pending"]

    summary = {
        "total_affected_bookings": len(bookings),
        "protected_bookings": len(protected),
        "modifiable_bookings": len(modifiable),
        "total_affected_participants": sum(b.group_size or 0 for b in bookings),
        "can_proceed_safely": not protected,
        "requires_notification": bool(modifiable),
    }

    by_date: dict[str, list[dict]] = {}
    for b in bookings:
        key = utc_to_local(b.slot.start_at, tz).date().isoformat()
        by_date.setdefault(key, []).append(_booking_entry(b))

    upcoming = [
        b for b in bookings
        if now <= b.slot.start_at <= now + timedelta(days=UPCOMING_DAYS)
    ]

    return {
        "protection_summary": summary,
        "protected_bookings": [_booking_entry(b) for b in protected],
        "modifiable_bookings": [_booking_entry(b) for b in modifiable],
        "bookings_by_date": by_date,
        "recommendations": _recommendations(summary, len(upcoming)),
    }


def _matches(slot, flt: ProtectionFilter, tz: ZoneInfo) -> bool:
    local_start = utc_to_local(slot.start_at, tz)

    if not in_date_range(local_start.date(), flt.date_from, flt.date_to):
        return False

    if flt.days_of_week and api_weekday(local_start.date()) not in flt.days_of_week:
        return False

    if flt.time_start and flt.time_end:
        minutes = local_start.hour * 60 + local_start.minute
        if not time_str_to_minutes(flt.time_start) <= minutes < time_str_to_minutes(flt.time_end):
            return False

    return True


def _booking_entry(b) -> dict:
    return {
        "id": b.id,
        "slot_id": b.slot_id,
        "group_size": b.group_size,
        "status": b.status,
        "allow_fill": bool(b.allow_fill),
        "created_at": b.created_at,
        "slot": {
            "id": b.slot.id,
            "start_at": b.slot.start_at,
            "end_at": b.slot.end_at,
            "location": b.slot.location,
            "created_from_rule_id": b.slot.created_from_rule_id,
            "created_from_batch_id": b.slot.created_from_batch_id,
        },
        "user": {
            "id": b.user.id,
            "name": b.user.name,
            "email": b.user.email,
        } if b.user else None,
    }


def _recommendations(summary: dict, upcoming: int) -> list[str]:
    recommendations = []

    if summary["protected_bookings"] > 0:
        recommendations.append(
            f"{summary['protected_bookings']} confirmed bookings cannot be changed automatically."
        )
        recommendations.append("Contact the affected users before changing the schedule.")

    if summary["modifiable_bookings"] > 0:
        recommendations.append(
            f"{summary['modifiable_bookings']} pending bookings can still be modified."
        )

    if summary["total_affected_bookings"] == 0:
        recommendations.append("No bookings affected. Safe to proceed.")

    if upcoming > 0:
        recommendations.append(
            f"{upcoming} affected bookings are within the next {UPCOMING_DAYS} days; contact those users first."
        )

    return recommendations
