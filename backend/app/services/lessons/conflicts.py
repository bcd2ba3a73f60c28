# backend/app/services/lessons/conflicts.py
"""
Conflict detection between candidate intervals and stored slots.

Stored slots are fetched once for the whole window by the caller; the
comparison here is in memory.
"""

from dataclasses import dataclass
from datetime import datetime

from .expander import Candidate, matching_dates
from .intervals import overlaps
from .template import ScheduleSpec


@dataclass(frozen=True)
class ExistingSlot:
    """Snapshot of a stored slot, enough for reporting and replacement."""
    id: int
    start_at: datetime
    end_at: datetime
    location: str

    @classmethod
    def from_row(cls, row) -> "ExistingSlot":
        return cls(id=row.id, start_at=row.start_at, end_at=row.end_at, location=row.location)


@dataclass(frozen=True)
class AnnotatedCandidate:
    candidate: Candidate
    # First overlapping slot in start order, for reporting
    conflict: ExistingSlot | None = None
    # Every overlapping slot; replacement has to clear all of them
    conflicts: tuple[ExistingSlot, ...] = ()

    @property
    def has_conflict(self) -> bool:
        return self.conflict is not None


def detect_conflicts(candidates: list[Candidate], existing_slots) -> list[AnnotatedCandidate]:
    """Annotate each candidate with the stored slots it overlaps."""
    existing = sorted(
        (s if isinstance(s, ExistingSlot) else ExistingSlot.from_row(s) for s in existing_slots),
        key=lambda s: (s.start_at, s.id),
    )

    result = []
    for candidate in candidates:
        hits = tuple(
            s for s in existing
            if overlaps(candidate.start_at, candidate.end_at, s.start_at, s.end_at)
        )
        result.append(AnnotatedCandidate(
            candidate=candidate,
            conflict=hits[0] if hits else None,
            conflicts=hits,
        ))
    return result


def build_preview(
    spec: ScheduleSpec,
    candidates: list[Candidate],
    closed_dates=frozenset(),
) -> dict:
    """Aggregate counts for a schedule preview."""
    days = matching_dates(
        spec.valid_from,
        spec.valid_to,
        spec.days_of_week,
        ignore_weekdays=spec.overwrites_day,
    )
    closed_set = set(closed_dates)
    closed = [d for d in days if d in closed_set]
    return {
        "total_days": spec.total_days,
        "matching_days": len(days),
        "closed_days": len(closed),
        "total_lesson_blocks": spec.template.lesson_blocks * (len(days) - len(closed)),
        "total_slots": len(candidates),
    }


def conflict_report(annotated: list[AnnotatedCandidate]) -> list[dict]:
    """Serializable conflict list, one entry per conflicting candidate."""
    return [
        {
            "date": item.candidate.date.isoformat(),
            "proposed_start_at": item.candidate.start_at,
            "proposed_end_at": item.candidate.end_at,
            "existing_slot": {
                "id": item.conflict.id,
                "start_at": item.conflict.start_at,
                "end_at": item.conflict.end_at,
                "location": item.conflict.location,
            },
        }
        for item in annotated
        if item.has_conflict
    ]