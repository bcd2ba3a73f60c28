# backend/app/services/lessons/projection.py
"""
Slot projection: the capacity/lock fields of a slot as a pure function of
its booking set.

Used by the live booking event path and by reconciliation alike.
"""

from dataclasses import dataclass

ACTIVE_SLOT_STATUSES = ("open", "full")
SLOT_STATUSES = ("open", "full", "cancelled", "closed")
BOOKING_STATUSES = ("pending", "confirmed", "cancelled")


@dataclass(frozen=True)
class SlotProjection:
    status: str
    locked_by_booking_id: int | None
    joinable: bool
    participants: int

    def changes(self, slot) -> dict:
        """Fields that differ from the stored slot."""
        current = {
            "status": slot.status,
            "locked_by_booking_id": slot.locked_by_booking_id,
            "joinable": bool(slot.joinable),
        }
        wanted = {
            "status": self.status,
            "locked_by_booking_id": self.locked_by_booking_id,
            "joinable": self.joinable,
        }
        return {k: v for k, v in wanted.items() if current[k] != v}


def active_bookings(bookings) -> list:
    return [b for b in bookings if b.status != "cancelled"]


def project(bookings, max_capacity: int, current_status: str) -> SlotProjection:
    """
    Args:
        bookings: every booking on the slot (any status); each needs
                  id, status, group_size, allow_fill
        max_capacity: slot capacity
        current_status: stored slot status

    Returns:
        SlotProjection. cancelled/closed status is kept as is.
    """
    active = active_bookings(bookings)

    lockers = sorted(b.id for b in active if not b.allow_fill)
    locked_by = lockers[0] if lockers else None

    participants = sum(b.group_size or 0 for b in active)

    status = current_status
    if current_status in ACTIVE_SLOT_STATUSES:
        status = "full" if participants >= max_capacity else "open"

    return SlotProjection(
        status=status,
        locked_by_booking_id=locked_by,
        joinable=locked_by is None,
        participants=participants,
    )
