# backend/app/services/lessons/store.py
"""
Slot store.

The engine talks to persistence only through SlotStore. SqlSlotStore is
the SQLAlchemy implementation; every write commits its own unit of work.

Deletes are guarded in SQL: a slot that still has a non-cancelled booking
is never removed, whatever the caller asked for.
"""

import json
import logging
from datetime import date, datetime
from typing import Iterable, Protocol

from sqlalchemy import exists, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models.generated import (
    LessonAvailabilityOverrides as DBOverride,
    LessonAvailabilityRules as DBRule,
    LessonBookings as DBBooking,
    LessonSlotBatches as DBBatch,
    LessonSlots as DBSlot,
)
from .config import SchedulingConfig, get_scheduling_config
from .exceptions import PartialInsertError
from .template import ScheduleSpec

logger = logging.getLogger(__name__)

SLOT_FIELDS = (
    "start_at",
    "end_at",
    "max_capacity",
    "location",
    "status",
    "joinable",
    "locked_by_booking_id",
    "created_from_rule_id",
    "created_from_batch_id",
)


class SlotStore(Protocol):
    def list_slots(self, location: str, start: datetime, end: datetime) -> list: ...

    def insert_slots(self, rows: list[dict]) -> list: ...

    def delete_slots(self, ids: Iterable[int]) -> list[int]: ...

    def get_slot(self, slot_id: int): ...

    def update_slot(self, slot_id: int, **fields): ...

    def list_bookings(self, slot_id: int) -> list: ...

    def active_booking_slot_ids(self, slot_ids: Iterable[int]) -> set[int]: ...

    def count_active_bookings(self, slot_ids: Iterable[int]) -> int: ...

    def closed_dates(self, location: str, date_from: date, date_to: date) -> set[date]: ...

    def list_active_rules(self) -> list: ...

    def create_batch(self, spec: ScheduleSpec): ...

    def replace_slots(self, delete_ids: Iterable[int], row: dict): ...

    def clear_slots(self, location: str, start: datetime, end: datetime) -> list[int]: ...


def _active_booking_exists():
    return exists().where(
        DBBooking.slot_id == DBSlot.id,
        DBBooking.status != "cancelled",
    )


class SqlSlotStore:
    """SQLAlchemy-backed SlotStore."""

    def __init__(self, db: Session, config: SchedulingConfig | None = None):
        self.db = db
        self.config = config or get_scheduling_config()

    # ── Read ─────────────────────────────────────────────────────────────

    def list_slots(self, location: str, start: datetime, end: datetime) -> list[DBSlot]:
        """Slots at location whose [start_at, end_at) intersects [start, end)."""
        return (
            self.db.query(DBSlot)
            .filter(
                DBSlot.location == location,
                DBSlot.start_at < end,
                DBSlot.end_at > start,
            )
            .order_by(DBSlot.start_at, DBSlot.id)
            .all()
        )

    def get_slot(self, slot_id: int) -> DBSlot | None:
        return self.db.get(DBSlot, slot_id, populate_existing=True)

    def list_bookings(self, slot_id: int) -> list[DBBooking]:
        """All bookings of a slot, bypassing the identity map (read-your-writes)."""
        return (
            self.db.query(DBBooking)
            .populate_existing()
            .filter(DBBooking.slot_id == slot_id)
            .order_by(DBBooking.id)
            .all()
        )

    def active_booking_slot_ids(self, slot_ids: Iterable[int]) -> set[int]:
        ids = list(set(slot_ids))
        if not ids:
            return set()
        rows = (
            self.db.query(DBBooking.slot_id)
            .filter(
                DBBooking.slot_id.in_(ids),
                DBBooking.status != "cancelled",
            )
            .distinct()
            .all()
        )
        return {row[0] for row in rows}

    def count_active_bookings(self, slot_ids: Iterable[int]) -> int:
        ids = list(set(slot_ids))
        if not ids:
            return 0
        return (
            self.db.query(DBBooking)
            .filter(
                DBBooking.slot_id.in_(ids),
                DBBooking.status != "cancelled",
            )
            .count()
        )

    def closed_dates(self, location: str, date_from: date, date_to: date) -> set[date]:
        """Dates closed by an override for this location (or for all locations)."""
        rows = (
            self.db.query(DBOverride.date)
            .filter(
                DBOverride.kind == "closed",
                DBOverride.date >= date_from,
                DBOverride.date <= date_to,
                or_(DBOverride.location.is_(None), DBOverride.location == location),
            )
            .all()
        )
        return {row[0] for row in rows}

    def list_active_rules(self) -> list[DBRule]:
        return (
            self.db.query(DBRule)
            .filter(DBRule.active == 1)
            .order_by(DBRule.id)
            .all()
        )

    # ── Write ────────────────────────────────────────────────────────────

    def create_batch(self, spec: ScheduleSpec) -> DBBatch:
        batch = DBBatch(
            title=spec.title,
            valid_from=spec.valid_from,
            valid_to=spec.valid_to,
            days_of_week=json.dumps(list(spec.days_of_week)),
            base_time_start=spec.base_time_start,
            location=spec.location,
            timezone=spec.timezone,
            template=json.dumps(spec.template.to_dict()),
            options=json.dumps(spec.options),
        )
        self.db.add(batch)
        self.db.commit()
        self.db.refresh(batch)
        return batch

    def insert_slots(self, rows: list[dict]) -> list[DBSlot]:
        """
        Bulk insert in chunks of config.insert_chunk_size, one commit per chunk.

        Raises:
            PartialInsertError: a chunk failed; earlier chunks stay committed
        """
        inserted: list[DBSlot] = []
        size = self.config.insert_chunk_size

        for offset in range(0, len(rows), size):
            chunk = [DBSlot(**_slot_row(r)) for r in rows[offset:offset + size]]
            try:
                self.db.add_all(chunk)
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Slot insert failed at row {offset}: {e}")
                raise PartialInsertError(inserted, len(rows) - offset, e) from e
            inserted.extend(chunk)

        return inserted

    def delete_slots(self, ids: Iterable[int]) -> list[int]:
        """Delete booking-free slots among ids. Returns the ids actually deleted."""
        deleted = self._delete_free(DBSlot.id.in_(list(set(ids))))
        self.db.commit()
        return deleted

    def replace_slots(self, delete_ids: Iterable[int], row: dict) -> DBSlot | None:
        """
        Delete the given slots and insert row in one transaction.

        Returns None (and changes nothing) when any of the slots picked up
        a booking in the meantime.
        """
        wanted = set(delete_ids)
        try:
            deleted = self._delete_free(DBSlot.id.in_(list(wanted)))
            if set(deleted) != wanted:
                self.db.rollback()
                logger.info(f"Replace aborted, slots {sorted(wanted - set(deleted))} got booked")
                return None
            slot = DBSlot(**_slot_row(row))
            self.db.add(slot)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(slot)
        return slot

    def clear_slots(self, location: str, start: datetime, end: datetime) -> list[int]:
        """Delete booking-free slots at location starting in [start, end)."""
        deleted = self._delete_free(
            DBSlot.location == location,
            DBSlot.start_at >= start,
            DBSlot.start_at < end,
        )
        self.db.commit()
        return deleted

    def update_slot(self, slot_id: int, **fields) -> DBSlot | None:
        slot = self.db.get(DBSlot, slot_id)
        if not slot:
            return None
        for key, value in fields.items():
            if key not in SLOT_FIELDS:
                raise ValueError(f"Unknown slot field: {key}")
            setattr(slot, key, _column_value(value))
        self.db.commit()
        self.db.refresh(slot)
        return slot

    # ── Helpers ──────────────────────────────────────────────────────────

    def _delete_free(self, *criteria) -> list[int]:
        ids = [
            row[0]
            for row in self.db.query(DBSlot.id)
            .filter(*criteria, ~_active_booking_exists())
            .all()
        ]
        if ids:
            # Only cancelled bookings remain here; they go with the slot
            self.db.query(DBBooking).filter(DBBooking.slot_id.in_(ids)).delete(
                synchronize_session="fetch"
            )
            self.db.query(DBSlot).filter(DBSlot.id.in_(ids)).delete(
                synchronize_session="fetch"
            )
        return ids


def _slot_row(row: dict) -> dict:
    return {k: _column_value(v) for k, v in row.items() if k in SLOT_FIELDS}


def _column_value(value):
    # Boolean flags are stored as 0/1 integers
    if isinstance(value, bool):
        return int(value)
    return value
