from datetime import date, datetime

from app.services.lessons.conflicts import (
    ExistingSlot,
    build_preview,
    conflict_report,
    detect_conflicts,
)
from app.services.lessons.expander import Candidate
from app.services.lessons.template import Block, ScheduleTemplate, build_schedule_spec


def candidate(day, start_hour, start_minute=0, end_hour=None, end_minute=0):
    end_hour = end_hour if end_hour is not None else start_hour + 1
    return Candidate(
        date=day,
        start_at=datetime(day.year, day.month, day.day, start_hour, start_minute),
        end_at=datetime(day.year, day.month, day.day, end_hour, end_minute),
        capacity=4,
        joinable=True,
    )


def existing(slot_id, start, end):
    return ExistingSlot(id=slot_id, start_at=start, end_at=end, location="Soses")


DAY = date(2025, 6, 2)


class TestDetectConflicts:
    def test_overlapping_slot_is_reported(self):
        slot = existing(7, datetime(2025, 6, 2, 17, 30), datetime(2025, 6, 2, 18, 30))
        [item] = detect_conflicts([candidate(DAY, 17)], [slot])

        assert item.has_conflict
        assert item.conflict == slot
        assert item.conflicts == (slot,)

    def test_adjacent_slot_is_not_a_conflict(self):
        slot = existing(7, datetime(2025, 6, 2, 18, 0), datetime(2025, 6, 2, 19, 0))
        [item] = detect_conflicts([candidate(DAY, 17)], [slot])
        assert not item.has_conflict

    def test_first_conflict_in_start_order(self):
        later = existing(1, datetime(2025, 6, 2, 17, 45), datetime(2025, 6, 2, 18, 15))
        earlier = existing(2, datetime(2025, 6, 2, 16, 30), datetime(2025, 6, 2, 17, 15))
        [item] = detect_conflicts([candidate(DAY, 17)], [later, earlier])

        assert item.conflict.id == 2
        assert [s.id for s in item.conflicts] == [2, 1]

    def test_accepts_orm_like_rows(self, make_slot):
        slot = make_slot(start_at=datetime(2025, 6, 2, 17, 30))
        [item] = detect_conflicts([candidate(DAY, 17)], [slot])
        assert item.conflict.id == slot.id


class TestConflictReport:
    def test_only_conflicting_candidates(self):
        slot = existing(7, datetime(2025, 6, 2, 17, 30), datetime(2025, 6, 2, 18, 30))
        annotated = detect_conflicts([candidate(DAY, 17), candidate(DAY, 19)], [slot])
        report = conflict_report(annotated)

        assert len(report) == 1
        assert report[0]["date"] == "2025-06-02"
        assert report[0]["proposed_start_at"] == datetime(2025, 6, 2, 17, 0)
        assert report[0]["existing_slot"]["id"] == 7


class TestPreview:
    def test_counts(self, utc_config):
        template = ScheduleTemplate(
            blocks=(Block("lesson", 60), Block("break", 15), Block("lesson", 60)),
        )
        spec = build_schedule_spec(
            valid_from=date(2025, 6, 2),
            valid_to=date(2025, 6, 13),
            days_of_week=[1, 3],
            base_time_start="17:00",
            template=template,
            config=utc_config,
        )
        preview = build_preview(spec, candidates=[None] * 6, closed_dates={date(2025, 6, 4)})

        assert preview == {
            "total_days": 12,
            "matching_days": 4,
            "closed_days": 1,
            "total_lesson_blocks": 6,
            "total_slots": 6,
        }
