from datetime import date, datetime, time
from zoneinfo import ZoneInfo

import pytest

from app.services.lessons.config import minutes_to_time_str, time_str_to_minutes
from app.services.lessons.intervals import (
    api_weekday,
    in_date_range,
    iter_dates,
    local_day_bounds,
    local_to_utc,
    minutes_between,
    overlaps,
    utc_to_local,
)

MADRID = ZoneInfo("Europe/Madrid")


class TestOverlaps:
    def test_partial_overlap(self):
        assert overlaps(
            datetime(2025, 6, 2, 17, 0), datetime(2025, 6, 2, 18, 0),
            datetime(2025, 6, 2, 17, 30), datetime(2025, 6, 2, 18, 30),
        )

    def test_touching_intervals_do_not_overlap(self):
        assert not overlaps(
            datetime(2025, 6, 2, 17, 0), datetime(2025, 6, 2, 18, 0),
            datetime(2025, 6, 2, 18, 0), datetime(2025, 6, 2, 19, 0),
        )
        assert not overlaps(
            datetime(2025, 6, 2, 18, 0), datetime(2025, 6, 2, 19, 0),
            datetime(2025, 6, 2, 17, 0), datetime(2025, 6, 2, 18, 0),
        )

    def test_containment_overlaps(self):
        assert overlaps(
            datetime(2025, 6, 2, 16, 0), datetime(2025, 6, 2, 20, 0),
            datetime(2025, 6, 2, 17, 0), datetime(2025, 6, 2, 18, 0),
        )


class TestWeekdays:
    def test_sunday_is_zero(self):
        assert api_weekday(date(2025, 6, 1)) == 0  # Sunday
        assert api_weekday(date(2025, 6, 2)) == 1  # Monday
        assert api_weekday(date(2025, 6, 7)) == 6  # Saturday


class TestDates:
    def test_iter_dates_inclusive(self):
        days = list(iter_dates(date(2025, 6, 2), date(2025, 6, 4)))
        assert days == [date(2025, 6, 2), date(2025, 6, 3), date(2025, 6, 4)]

    def test_in_date_range_open_bounds(self):
        assert in_date_range(date(2025, 6, 2), None, None)
        assert in_date_range(date(2025, 6, 2), date(2025, 6, 2), None)
        assert not in_date_range(date(2025, 6, 1), date(2025, 6, 2), None)
        assert not in_date_range(date(2025, 6, 3), None, date(2025, 6, 2))


class TestTimeZones:
    def test_local_to_utc_summer(self):
        assert local_to_utc(date(2025, 6, 2), time(17, 0), MADRID) == datetime(2025, 6, 2, 15, 0)

    def test_local_to_utc_winter(self):
        assert local_to_utc(date(2025, 1, 13), time(17, 0), MADRID) == datetime(2025, 1, 13, 16, 0)

    def test_utc_to_local_round_trip(self):
        local = utc_to_local(datetime(2025, 6, 2, 15, 0), MADRID)
        assert (local.hour, local.minute) == (17, 0)

    def test_local_day_bounds(self):
        start, end = local_day_bounds(date(2025, 6, 2), MADRID)
        assert start == datetime(2025, 6, 1, 22, 0)
        assert end == datetime(2025, 6, 2, 22, 0)

    def test_local_day_bounds_dst_change(self):
        # 2025-03-30: clocks go forward, the local day is 23 hours long
        start, end = local_day_bounds(date(2025, 3, 30), MADRID)
        assert minutes_between(start, end) == 23 * 60


class TestTimeStrings:
    def test_time_str_to_minutes(self):
        assert time_str_to_minutes("17:30") == 1050
        assert time_str_to_minutes("08:00:00") == 480

    @pytest.mark.parametrize("value", ["17", "24:00", "12:60", "ab:cd"])
    def test_invalid_time_str(self, value):
        with pytest.raises(ValueError):
            time_str_to_minutes(value)

    def test_minutes_to_time_str(self):
        assert minutes_to_time_str(1050) == "17:30"
        assert minutes_to_time_str(0) == "00:00"
