# backend/app/routers/lessons.py
"""
Lessons API endpoints (members).

GET    /lessons/slots           - Slots in a range, with occupancy
POST   /lessons/book            - Book a slot
GET    /lessons/user/bookings   - Caller's bookings
DELETE /lessons/bookings/{id}   - Cancel own booking
"""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, selectinload

from ..auth import CallerContext, get_optional_caller, require_user
from ..database import get_db
from ..models.generated import LessonBookings as DBBookings, LessonSlots as DBSlots
from ..schemas.lesson_bookings import (
    BookLessonResponse,
    CancelBookingResponse,
    LessonBookingCreate,
    UserBookingItem,
)
from ..schemas.lesson_slots import LessonSlotRead, PublicLessonSlot
from ..services.lessons import get_scheduling_config
from ..services.lessons.bookings import book_lesson, cancel_booking
from ..services.lessons.exceptions import BookingError
from ..services.lessons.intervals import local_day_bounds, minutes_between
from ..services.lessons.projection import active_bookings

router = APIRouter(prefix="/lessons", tags=["lessons"])


@router.get("/slots", response_model=list[PublicLessonSlot])
def list_slots(
    date_from: str | None = Query(None, alias="from"),
    date_to: str | None = Query(None, alias="to"),
    caller: CallerContext | None = Depends(get_optional_caller),
    db: Session = Depends(get_db),
):
    query = slots_in_range(db, date_from, date_to)
    slots = query.options(selectinload(DBSlots.lesson_bookings)).all()

    result = []
    for slot in slots:
        active = active_bookings(slot.lesson_bookings)
        fills = {bool(b.allow_fill) for b in active}
        result.append(PublicLessonSlot(
            id=slot.id,
            start_at=slot.start_at,
            end_at=slot.end_at,
            max_capacity=slot.max_capacity,
            location=slot.location,
            status=slot.status,
            participants_count=sum(b.group_size or 0 for b in active),
            joinable=all(b.allow_fill for b in active),
            # Uniform allow_fill across active bookings, else unknown
            allow_fill_policy=fills.pop() if len(fills) == 1 else None,
            duration_minutes=minutes_between(slot.start_at, slot.end_at),
            user_booked=(
                any(b.user_id == caller.user_id for b in active) if caller else None
            ),
        ))
    return result


@router.post("/book", response_model=BookLessonResponse, status_code=status.HTTP_201_CREATED)
def book(
    data: LessonBookingCreate,
    caller: CallerContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    try:
        booking, slot = book_lesson(
            db,
            slot_id=data.slot_id,
            user_id=caller.user_id,
            group_size=data.group_size,
            allow_fill=data.allow_fill,
            participants=data.participants,
            observations=data.observations,
        )
    except BookingError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return BookLessonResponse(
        booking_id=booking.id,
        slot=LessonSlotRead.model_validate(slot) if slot else None,
    )


@router.get("/user/bookings", response_model=list[UserBookingItem])
def list_user_bookings(
    date_from: date | None = Query(None, alias="from"),
    caller: CallerContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    tz = ZoneInfo(get_scheduling_config().default_timezone)
    # Without an explicit start, only today onwards
    start, _ = local_day_bounds(date_from or datetime.now(tz).date(), tz)

    bookings = (
        db.query(DBBookings)
        .join(DBSlots, DBBookings.slot_id == DBSlots.id)
        .filter(DBBookings.user_id == caller.user_id, DBSlots.start_at >= start)
        .order_by(DBBookings.created_at.desc(), DBBookings.id.desc())
        .all()
    )
    return [
        UserBookingItem(
            booking_id=b.id,
            status=b.status,
            group_size=b.group_size,
            created_at=b.created_at,
            slot=LessonSlotRead.model_validate(b.slot),
        )
        for b in bookings
    ]


@router.delete("/bookings/{id}", response_model=CancelBookingResponse)
def cancel_own_booking(
    id: int,
    caller: CallerContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    return _cancel(db, id, CallerContext(user_id=caller.user_id, is_admin=False))


# ── Shared helpers ───────────────────────────────────────────────────────


def _cancel(db: Session, booking_id: int, caller: CallerContext) -> CancelBookingResponse:
    try:
        booking, already = cancel_booking(db, booking_id, caller)
    except BookingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    slot = db.get(DBSlots, booking.slot_id)
    return CancelBookingResponse(
        message="Booking was already cancelled" if already else "Booking cancelled",
        booking_id=booking.id,
        slot=LessonSlotRead.model_validate(slot) if slot else None,
    )


def parse_range_bound(value: str | None, end: bool = False) -> datetime | None:
    """
    "YYYY-MM-DD" → local day start (or next day start when end=True),
    ISO datetime → naive UTC.
    """
    if not value:
        return None
    try:
        if len(value) <= 10:
            day = date.fromisoformat(value)
            tz = ZoneInfo(get_scheduling_config().default_timezone)
            start, stop = local_day_bounds(day, tz)
            return stop if end else start
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date: {value}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def slots_in_range(db: Session, date_from: str | None, date_to: str | None):
    start = parse_range_bound(date_from)
    stop = parse_range_bound(date_to, end=True)

    query = db.query(DBSlots)
    if start is not None:
        query = query.filter(DBSlots.start_at >= start)
    if stop is not None:
        query = query.filter(DBSlots.end_at <= stop)
    return query.order_by(DBSlots.start_at, DBSlots.id)
