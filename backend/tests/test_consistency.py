import json
from unittest.mock import Mock

from sqlalchemy.exc import OperationalError

from app.services.lessons.consistency import (
    on_booking_cancelled,
    on_booking_created,
    reconcile_slot,
)
from app.services.lessons.store import SqlSlotStore


class TestOnBookingCreated:
    def test_exclusive_booking_locks_slot(self, db, make_slot, make_booking):
        slot = make_slot()
        a = make_booking(slot, group_size=2, allow_fill=False)

        updated = on_booking_created(SqlSlotStore(db), a)

        assert updated.locked_by_booking_id == a.id
        assert updated.joinable == 0
        assert updated.status == "open"

    def test_fills_slot(self, db, make_slot, make_booking):
        slot = make_slot(max_capacity=2)
        make_booking(slot, group_size=1)
        b = make_booking(slot, group_size=1)

        updated = on_booking_created(SqlSlotStore(db), b)
        assert updated.status == "full"

    def test_emits_slot_updated(self, db, make_slot, make_booking, mock_redis):
        slot = make_slot(max_capacity=1)
        booking = make_booking(slot)

        on_booking_created(SqlSlotStore(db), booking)

        queue, raw = mock_redis.rpush.call_args.args
        event = json.loads(raw)
        assert queue == "events:p2p"
        assert event["type"] == "lesson_slot_updated"
        assert event["slot_id"] == slot.id
        assert event["status"] == "full"


class TestOnBookingCancelled:
    def test_scenario_lock_released_and_reopened(self, db, make_slot, make_booking):
        store = SqlSlotStore(db)
        slot = make_slot(max_capacity=4)

        a = make_booking(slot, group_size=2, allow_fill=False)
        on_booking_created(store, a)
        b = make_booking(slot, group_size=2, allow_fill=True)
        assert on_booking_created(store, b).status == "full"

        a.status = "cancelled"
        db.commit()
        updated = on_booking_cancelled(store, a)

        assert updated.locked_by_booking_id is None
        assert updated.joinable == 1
        assert updated.status == "open"

    def test_lock_passes_to_next_exclusive_booking(self, db, make_slot, make_booking):
        store = SqlSlotStore(db)
        slot = make_slot(max_capacity=6)
        a = make_booking(slot, allow_fill=False)
        c = make_booking(slot, allow_fill=False)
        on_booking_created(store, c)

        a.status = "cancelled"
        db.commit()
        assert on_booking_cancelled(store, a).locked_by_booking_id == c.id

    def test_idempotent(self, db, make_slot, make_booking, mock_redis):
        store = SqlSlotStore(db)
        slot = make_slot()
        a = make_booking(slot, allow_fill=False)
        on_booking_created(store, a)

        a.status = "cancelled"
        db.commit()
        on_booking_cancelled(store, a)
        mock_redis.reset_mock()

        second = on_booking_cancelled(store, a)

        assert second.locked_by_booking_id is None
        assert second.status == "open"
        mock_redis.rpush.assert_not_called()


class TestBestEffort:
    def test_persistence_failure_is_swallowed(self, make_slot, make_booking, db):
        slot = make_slot()
        booking = make_booking(slot)

        store = Mock()
        store.db = Mock()
        store.get_slot.side_effect = OperationalError("SELECT", {}, Exception("db gone"))

        assert on_booking_created(store, booking) is None
        store.db.rollback.assert_called_once()

    def test_missing_slot(self, db):
        assert reconcile_slot(SqlSlotStore(db), 999) is None


class TestReconcile:
    def test_repairs_stale_slot(self, db, make_slot, make_booking):
        slot = make_slot(max_capacity=2)
        make_booking(slot, group_size=2, allow_fill=False)
        # Booking written without running the event handler
        assert slot.status == "open"

        repaired = reconcile_slot(SqlSlotStore(db), slot.id)

        assert repaired.status == "full"
        assert repaired.locked_by_booking_id is not None
