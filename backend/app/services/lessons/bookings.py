# backend/app/services/lessons/bookings.py
"""
Lesson booking flow.

book_lesson does the capacity/lock check and the insert in one
transaction; only after it commits does the consistency manager run.
Cancellation is a soft delete (status) followed by the same recompute.
"""

import logging

from sqlalchemy.orm import Session

from ...models.generated import (
    LessonBookingParticipants as DBParticipant,
    LessonBookings as DBBooking,
    LessonSlots as DBSlot,
    Users as DBUser,
)
from ..events import emit_event
from .consistency import on_booking_cancelled, on_booking_created
from .exceptions import BookingError
from .store import SqlSlotStore

logger = logging.getLogger(__name__)


def book_lesson(
    db: Session,
    *,
    slot_id: int,
    user_id: int,
    group_size: int,
    allow_fill: bool,
    participants: list[str] | None = None,
    observations: str | None = None,
) -> tuple[DBBooking, DBSlot | None]:
    """
    Admit a booking.

    Returns:
        (booking, slot after recompute)

    Raises:
        BookingError: slot missing/unavailable, locked, or over capacity
    """
    slot = (
        db.query(DBSlot)
        .filter(DBSlot.id == slot_id)
        .with_for_update()
        .first()
    )
    if not slot:
        raise BookingError("Slot not found", 404)
    if slot.status != "open":
        raise BookingError("Slot is not open for booking", 409)
    if group_size < 1 or group_size > slot.max_capacity:
        raise BookingError(f"group_size must be between 1 and {slot.max_capacity}")

    active = (
        db.query(DBBooking)
        .filter(DBBooking.slot_id == slot_id, DBBooking.status != "cancelled")
        .all()
    )
    if any(not b.allow_fill for b in active):
        raise BookingError("Slot is reserved exclusively", 409)
    if any(b.user_id == user_id for b in active):
        raise BookingError("You already have a booking for this slot", 409)

    taken = sum(b.group_size or 0 for b in active)
    if taken + group_size > slot.max_capacity:
        raise BookingError("Not enough places left in this slot", 409)

    user = db.get(DBUser, user_id)
    primary = " ".join(p for p in (user.name, user.surname) if p) if user else None

    booking = DBBooking(
        slot_id=slot_id,
        user_id=user_id,
        group_size=group_size,
        allow_fill=int(allow_fill),
        status="confirmed",
        observations=observations,
    )
    if primary:
        booking.participants.append(DBParticipant(name=primary, is_primary=1))
    for name in participants or []:
        if name and name.strip():
            booking.participants.append(DBParticipant(name=name.strip(), is_primary=0))

    db.add(booking)
    db.commit()
    db.refresh(booking)
    logger.info(f"Booking {booking.id} created on slot {slot_id} (size={group_size}, fill={allow_fill})")

    updated = on_booking_created(SqlSlotStore(db), booking)
    emit_event("lesson_booking_created", {
        "booking_id": booking.id,
        "slot_id": slot_id,
        "user_id": user_id,
        "group_size": group_size,
    })
    return booking, updated


def cancel_booking(db: Session, booking_id: int, caller) -> tuple[DBBooking, bool]:
    """
    Cancel a booking (owner or admin).

    Returns:
        (booking, already_cancelled)

    Raises:
        BookingError: not found / not the owner
    """
    booking = db.get(DBBooking, booking_id)
    if not booking:
        raise BookingError("Booking not found", 404)
    if not caller.is_admin and booking.user_id != caller.user_id:
        raise BookingError("Forbidden", 403)

    already = booking.status == "cancelled"
    if not already:
        booking.status = "cancelled"
        db.commit()
        db.refresh(booking)
        logger.info(f"Booking {booking_id} cancelled by user {caller.user_id}")

    # Runs on repeats too: recompute is idempotent and heals stale slots
    on_booking_cancelled(SqlSlotStore(db), booking)

    if not already:
        emit_event("lesson_booking_cancelled", {
            "booking_id": booking.id,
            "slot_id": booking.slot_id,
            "user_id": booking.user_id,
            "by_admin": caller.is_admin,
        })
    return booking, already
