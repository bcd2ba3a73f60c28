import random
from types import SimpleNamespace

import pytest

from app.services.lessons.projection import active_bookings, project


def booking(id, group_size=1, allow_fill=True, status="confirmed"):
    return SimpleNamespace(id=id, group_size=group_size, allow_fill=allow_fill, status=status)


class TestProject:
    def test_empty_slot(self):
        p = project([], 4, "open")
        assert p.status == "open"
        assert p.locked_by_booking_id is None
        assert p.joinable is True
        assert p.participants == 0

    def test_exclusive_booking_locks(self):
        p = project([booking(1, group_size=2, allow_fill=False)], 4, "open")
        assert p.locked_by_booking_id == 1
        assert p.joinable is False
        assert p.status == "open"

    def test_lowest_id_holds_the_lock(self):
        p = project([booking(9, allow_fill=False), booking(3, allow_fill=False)], 4, "open")
        assert p.locked_by_booking_id == 3

    def test_full_at_capacity(self):
        p = project([booking(1, group_size=2), booking(2, group_size=2)], 4, "open")
        assert p.status == "full"

    def test_reopens_below_capacity(self):
        p = project([booking(1, group_size=2), booking(2, group_size=2, status="cancelled")], 4, "full")
        assert p.status == "open"
        assert p.participants == 2

    def test_pending_bookings_count(self):
        p = project([booking(1, group_size=4, status="pending")], 4, "open")
        assert p.status == "full"

    @pytest.mark.parametrize("status", ["cancelled", "closed"])
    def test_administrative_status_kept(self, status):
        p = project([booking(1, group_size=4)], 4, status)
        assert p.status == status

    def test_changes_only_differing_fields(self):
        slot = SimpleNamespace(status="open", locked_by_booking_id=None, joinable=1)
        p = project([booking(5, allow_fill=False)], 4, "open")
        assert p.changes(slot) == {"locked_by_booking_id": 5, "joinable": False}

    def test_no_changes_when_in_sync(self):
        slot = SimpleNamespace(status="open", locked_by_booking_id=None, joinable=1)
        assert project([booking(1)], 4, "open").changes(slot) == {}


class TestExclusiveThenShared:
    """Exclusive pair books, a second pair joins, the first pair cancels."""

    def test_sequence(self):
        a = booking(1, group_size=2, allow_fill=False)
        p = project([a], 4, "open")
        assert (p.locked_by_booking_id, p.status) == (1, "open")

        b = booking(2, group_size=2, allow_fill=True)
        p = project([a, b], 4, p.status)
        assert p.status == "full"

        a.status = "cancelled"
        p = project([a, b], 4, p.status)
        assert p.locked_by_booking_id is None
        assert p.status == "open"


class TestInvariants:
    @pytest.mark.parametrize("seed", range(20))
    def test_random_event_sequences(self, seed):
        rng = random.Random(seed)
        capacity = rng.randint(1, 6)
        bookings = []
        status = "open"

        for step in range(30):
            live = active_bookings(bookings)
            if live and rng.random() < 0.4:
                rng.choice(live).status = "cancelled"
            else:
                bookings.append(booking(
                    step + 1,
                    group_size=rng.randint(1, 3),
                    allow_fill=rng.random() < 0.6,
                    status=rng.choice(["pending", "confirmed"]),
                ))

            p = project(bookings, capacity, status)
            status = p.status
            live = active_bookings(bookings)

            # Capacity
            assert (status == "full") == (sum(b.group_size for b in live) >= capacity)

            # Lock
            exclusive = [b.id for b in live if not b.allow_fill]
            if p.locked_by_booking_id is None:
                assert not exclusive
            else:
                assert p.locked_by_booking_id == min(exclusive)
