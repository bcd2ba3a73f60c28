# backend/app/services/lessons/consistency.py
"""
Booking consistency.

Keeps a slot's status (open/full) and exclusive lock in line with its
bookings. Runs after the booking write that triggered it has been
committed, always from a fresh read of the whole booking set, so running
it again changes nothing and a lost update heals on the next event.

Failures are logged and swallowed: the booking change itself is already
durable.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from .projection import SlotProjection, project
from .store import SlotStore

logger = logging.getLogger(__name__)


def recompute_slot(store: SlotStore, slot_id: int):
    """
    Project the slot from its current bookings and persist changed fields.

    Returns:
        The (possibly updated) slot, or None if it does not exist.

    Raises:
        SQLAlchemyError on persistence failure (callers decide how fatal).
    """
    slot = store.get_slot(slot_id)
    if not slot:
        return None

    bookings = store.list_bookings(slot_id)
    projection: SlotProjection = project(bookings, slot.max_capacity, slot.status)
    changes = projection.changes(slot)
    if not changes:
        return slot

    logger.info(f"Slot {slot_id} recomputed: {changes}")
    updated = store.update_slot(slot_id, **changes)
    _emit_slot_updated(updated, projection)
    return updated


def on_booking_created(store: SlotStore, booking):
    """
    React to a committed booking.

    A non-fill booking takes the lock unless an earlier one holds it;
    status becomes full once active group sizes reach capacity.
    """
    return _recompute_best_effort(store, booking, "created")


def on_booking_cancelled(store: SlotStore, booking):
    """
    React to a committed cancellation.

    The lock passes to the lowest-id remaining non-fill booking, or clears;
    status is recomputed from the remaining bookings.
    """
    return _recompute_best_effort(store, booking, "cancelled")


def reconcile_slot(store: SlotStore, slot_id: int):
    """Repair entry point; same projection as the event path."""
    return recompute_slot(store, slot_id)


def _recompute_best_effort(store: SlotStore, booking, event: str):
    slot_id, booking_id = booking.slot_id, booking.id
    try:
        return recompute_slot(store, slot_id)
    except SQLAlchemyError:
        logger.exception(f"Could not recompute slot {slot_id} after booking {booking_id} {event}")
        _rollback(store)
        return None


def _rollback(store: SlotStore) -> None:
    db = getattr(store, "db", None)
    if db is not None:
        db.rollback()


def _emit_slot_updated(slot, projection: SlotProjection) -> None:
    from ..events import emit_event

    emit_event("lesson_slot_updated", {
        "slot_id": slot.id,
        "status": projection.status,
        "locked_by_booking_id": projection.locked_by_booking_id,
        "participants": projection.participants,
        "max_capacity": slot.max_capacity,
    })
