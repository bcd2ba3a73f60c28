from datetime import date, datetime, time

import pytest

from app.services.lessons.exceptions import ScheduleValidationError
from app.services.lessons.expander import expand_spec, expand_template, matching_dates
from app.services.lessons.template import (
    Block,
    ScheduleTemplate,
    build_schedule_spec,
    rule_template,
)

ONE_LESSON = ScheduleTemplate(blocks=(Block("lesson", 60),))


def make_spec(config, **overrides):
    params = dict(
        valid_from=date(2025, 6, 2),
        valid_to=date(2025, 6, 13),
        days_of_week=[1, 3],
        base_time_start="17:00",
        template=ONE_LESSON,
        location="Soses",
        config=config,
    )
    params.update(overrides)
    return build_schedule_spec(**params)


class TestExpandSpec:
    def test_mondays_and_wednesdays(self, utc_config):
        candidates = expand_spec(make_spec(utc_config), config=utc_config)

        assert [c.date for c in candidates] == [
            date(2025, 6, 2), date(2025, 6, 4), date(2025, 6, 9), date(2025, 6, 11),
        ]
        for c in candidates:
            assert (c.start_at.hour, c.start_at.minute) == (17, 0)
            assert (c.end_at.hour, c.end_at.minute) == (18, 0)
            assert c.capacity == 4
            assert c.joinable is True

    def test_local_times_converted_to_utc(self, utc_config):
        spec = make_spec(utc_config, timezone="Europe/Madrid")
        candidates = expand_spec(spec, config=utc_config)

        assert candidates[0].start_at == datetime(2025, 6, 2, 15, 0)
        assert candidates[0].end_at == datetime(2025, 6, 2, 16, 0)

    def test_deterministic(self, utc_config):
        spec = make_spec(utc_config)
        assert expand_spec(spec, config=utc_config) == expand_spec(spec, config=utc_config)

    def test_closed_dates_produce_nothing(self, utc_config):
        candidates = expand_spec(
            make_spec(utc_config),
            closed_dates={date(2025, 6, 4)},
            config=utc_config,
        )
        assert date(2025, 6, 4) not in [c.date for c in candidates]
        assert len(candidates) == 3

    def test_blocks_and_breaks_walk_the_day(self, utc_config):
        template = ScheduleTemplate(
            blocks=(
                Block("lesson", 60, max_capacity=2),
                Block("break", 15),
                Block("lesson", 90, joinable=False),
            ),
            default_max_capacity=6,
        )
        spec = make_spec(utc_config, valid_to=date(2025, 6, 2), template=template)
        first, second = expand_spec(spec, config=utc_config)

        assert first.start_at == datetime(2025, 6, 2, 17, 0)
        assert first.end_at == datetime(2025, 6, 2, 18, 0)
        assert first.capacity == 2
        assert second.start_at == datetime(2025, 6, 2, 18, 15)
        assert second.end_at == datetime(2025, 6, 2, 19, 45)
        assert second.capacity == 6
        assert second.joinable is False

    def test_overwrite_day_ignores_weekday_mask(self, utc_config):
        # 2025-06-03 is a Tuesday, not in {1, 3}
        spec = make_spec(
            utc_config,
            valid_from=date(2025, 6, 3),
            valid_to=date(2025, 6, 3),
            overwrite_day=True,
        )
        candidates = expand_spec(spec, config=utc_config)
        assert [c.date for c in candidates] == [date(2025, 6, 3)]

    def test_empty_template_overwrite_yields_nothing(self, utc_config):
        spec = make_spec(
            utc_config,
            valid_from=date(2025, 6, 3),
            valid_to=date(2025, 6, 3),
            days_of_week=[],
            template=ScheduleTemplate(),
            overwrite_day=True,
        )
        assert expand_spec(spec, config=utc_config) == []


class TestDayEnd:
    def test_rule_template_repeats_until_day_end(self, utc_config):
        candidates = expand_template(
            rule_template(60),
            date(2025, 6, 2),
            date(2025, 6, 2),
            [1],
            time(17, 0),
            "UTC",
            day_end=time(20, 30),
            config=utc_config,
        )
        assert [c.start_at.hour for c in candidates] == [17, 18, 19]
        assert candidates[-1].end_at == datetime(2025, 6, 2, 20, 0)

    def test_nothing_fits(self, utc_config):
        candidates = expand_template(
            rule_template(90),
            date(2025, 6, 2),
            date(2025, 6, 2),
            [1],
            time(17, 0),
            "UTC",
            day_end=time(18, 0),
            config=utc_config,
        )
        assert candidates == []


class TestMatchingDates:
    def test_weekday_filter(self):
        days = matching_dates(date(2025, 6, 1), date(2025, 6, 7), [0, 6])
        assert days == [date(2025, 6, 1), date(2025, 6, 7)]

    def test_ignore_weekdays(self):
        days = matching_dates(date(2025, 6, 1), date(2025, 6, 3), [], ignore_weekdays=True)
        assert len(days) == 3


class TestValidation:
    def test_inverted_range(self, utc_config):
        with pytest.raises(ScheduleValidationError):
            make_spec(utc_config, valid_from=date(2025, 6, 13), valid_to=date(2025, 6, 2))

    def test_weekday_out_of_range(self, utc_config):
        with pytest.raises(ScheduleValidationError):
            make_spec(utc_config, days_of_week=[7])

    def test_empty_weekdays(self, utc_config):
        with pytest.raises(ScheduleValidationError):
            make_spec(utc_config, days_of_week=[])

    def test_empty_template(self, utc_config):
        with pytest.raises(ScheduleValidationError):
            make_spec(utc_config, template=ScheduleTemplate())

    def test_template_without_lessons(self, utc_config):
        with pytest.raises(ScheduleValidationError):
            make_spec(utc_config, template=ScheduleTemplate(blocks=(Block("break", 30),)))

    def test_non_positive_duration(self, utc_config):
        with pytest.raises(ScheduleValidationError):
            make_spec(utc_config, template=ScheduleTemplate(blocks=(Block("lesson", 0),)))

    def test_bad_time(self, utc_config):
        with pytest.raises(ScheduleValidationError):
            make_spec(utc_config, base_time_start="25:00")

    def test_unknown_timezone(self, utc_config):
        with pytest.raises(ScheduleValidationError):
            make_spec(utc_config, timezone="Mars/Olympus")

    def test_unknown_policy(self, utc_config):
        with pytest.raises(ScheduleValidationError):
            make_spec(utc_config, policy="merge")

    def test_defaults_filled_from_config(self, utc_config):
        spec = make_spec(utc_config, location=None)
        assert spec.location == "Soses"
        assert spec.timezone == "UTC"
        assert spec.policy == "skip"
        assert spec.options == {"policy": "skip"}


class TestTemplateSerialization:
    def test_from_dict_restores_blocks(self):
        template = ScheduleTemplate(
            blocks=(Block("lesson", 60, max_capacity=2), Block("break", 10)),
            default_joinable=False,
        )
        assert ScheduleTemplate.from_dict(template.to_dict()) == template
