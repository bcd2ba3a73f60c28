# backend/app/services/lessons/scheduler.py
"""
Schedule application.

  expand → detect conflicts → resolve policy → delete/insert → batch record

check_schedule_conflicts is the same pipeline without the last step.
apply_schedule always reports counts; a failure part-way through leaves
what was already written and shows up as failed_count.
"""

import json
import logging
from datetime import date

from sqlalchemy.exc import SQLAlchemyError

from .config import SchedulingConfig, get_scheduling_config
from .conflicts import build_preview, conflict_report, detect_conflicts
from .exceptions import PartialInsertError
from .expander import Candidate, expand_spec, expand_template
from .intervals import local_day_bounds
from .policy import CREATE, REPLACE, SKIP, resolve
from .store import SlotStore
from .template import ScheduleSpec, parse_time, rule_template

logger = logging.getLogger(__name__)


def check_schedule_conflicts(
    store: SlotStore,
    spec: ScheduleSpec,
    config: SchedulingConfig | None = None,
) -> dict:
    """
    Dry run: expand the spec and report overlaps with stored slots.

    Returns:
        Dict with preview, slot_conflicts, affected_bookings_count, can_proceed.
    """
    config = config or get_scheduling_config()

    closed = store.closed_dates(spec.location, spec.valid_from, spec.valid_to)
    candidates = expand_spec(spec, closed, config)
    existing = _existing_slots(store, spec, candidates)

    if spec.overwrites_day:
        # Booking-free slots of that day would be cleared first
        day_start, day_end = local_day_bounds(spec.valid_from, spec.zone)
        booked = store.active_booking_slot_ids(s.id for s in existing)
        existing = [
            s for s in existing
            if s.id in booked or not (day_start <= s.start_at < day_end)
        ]

    annotated = detect_conflicts(candidates, existing)
    conflicts = conflict_report(annotated)
    conflicting_ids = {s.id for item in annotated for s in item.conflicts}

    return {
        "preview": build_preview(spec, candidates, closed),
        "slot_conflicts": conflicts,
        "affected_bookings_count": store.count_active_bookings(conflicting_ids),
        "can_proceed": not conflicts,
    }


def apply_schedule(
    store: SlotStore,
    spec: ScheduleSpec,
    config: SchedulingConfig | None = None,
) -> dict:
    """
    Apply a schedule batch.

    Returns:
        Dict with batch_id and created/skipped/replaced/failed counts.

    Raises:
        SQLAlchemyError if the batch record itself cannot be written.
    """
    config = config or get_scheduling_config()

    batch = store.create_batch(spec)
    logger.info(
        f"Applying schedule batch {batch.id}: {spec.valid_from}..{spec.valid_to} "
        f"days={list(spec.days_of_week)} at {spec.location} policy={spec.policy} force={spec.force}"
    )

    outcome = {
        "batch_id": batch.id,
        "created_count": 0,
        "skipped_count": 0,
        "replaced_count": 0,
        "failed_count": 0,
        "cleared_count": 0,
        "message": None,
    }

    if spec.overwrites_day:
        day_start, day_end = local_day_bounds(spec.valid_from, spec.zone)
        cleared = store.clear_slots(spec.location, day_start, day_end)
        outcome["cleared_count"] = len(cleared)
        if not spec.template.blocks:
            outcome["message"] = "Day cleared"
            _emit_applied(spec, outcome)
            return outcome

    closed = store.closed_dates(spec.location, spec.valid_from, spec.valid_to)
    candidates = expand_spec(spec, closed, config)
    annotated = detect_conflicts(candidates, _existing_slots(store, spec, candidates))
    booked = store.active_booking_slot_ids(
        s.id for item in annotated for s in item.conflicts
    )
    decisions = resolve(annotated, spec.policy, spec.force, booked)

    outcome["skipped_count"] = sum(1 for d in decisions if d.action == SKIP)

    # Replacements first, one transaction each
    blocked: set[int] = set()
    for decision in decisions:
        if decision.action != REPLACE:
            continue
        if any(s.id in blocked for s in decision.item.conflicts):
            # Shared slot got booked under an earlier replacement
            outcome["skipped_count"] += 1
            continue
        row = _slot_row(decision.candidate, spec.location, batch_id=batch.id)
        try:
            slot = store.replace_slots(decision.delete_slot_ids, row)
        except SQLAlchemyError as e:
            logger.error(f"Batch {batch.id}: replace of {decision.delete_slot_ids} failed: {e}")
            outcome["failed_count"] += 1
            continue
        if slot is None:
            blocked.update(decision.delete_slot_ids)
            outcome["skipped_count"] += 1
        else:
            outcome["replaced_count"] += 1

    rows = [
        _slot_row(d.candidate, spec.location, batch_id=batch.id)
        for d in decisions
        if d.action == CREATE
    ]
    created, failed = _insert(store, rows)
    outcome["created_count"] = created
    outcome["failed_count"] += failed

    logger.info(
        f"Schedule batch {batch.id} applied: created={outcome['created_count']} "
        f"skipped={outcome['skipped_count']} replaced={outcome['replaced_count']} "
        f"failed={outcome['failed_count']}"
    )
    _emit_applied(spec, outcome)
    return outcome


def generate_from_rules(
    store: SlotStore,
    date_from: date,
    date_to: date,
    config: SchedulingConfig | None = None,
) -> dict:
    """
    Generate slots from active availability rules.

    Each rule is a single lesson block repeated from time_start until
    time_end (local, default time zone). Closed dates and already occupied
    intervals are skipped.
    """
    config = config or get_scheduling_config()

    created: list = []
    skipped = 0
    failed = 0

    for rule in store.list_active_rules():
        lo = max(date_from, rule.valid_from) if rule.valid_from else date_from
        hi = min(date_to, rule.valid_to) if rule.valid_to else date_to
        if lo > hi:
            continue

        try:
            days = json.loads(rule.days_of_week) if rule.days_of_week else []
        except json.JSONDecodeError:
            logger.warning(f"Rule {rule.id}: invalid days_of_week {rule.days_of_week!r}")
            continue

        location = rule.location or config.default_location
        closed = store.closed_dates(location, lo, hi)
        candidates = expand_template(
            rule_template(rule.duration_minutes),
            lo,
            hi,
            days,
            parse_time(rule.time_start),
            config.default_timezone,
            closed_dates=closed,
            day_end=parse_time(rule.time_end),
            config=config,
        )
        if not candidates:
            continue

        existing = store.list_slots(
            location,
            candidates[0].start_at,
            max(c.end_at for c in candidates),
        )
        decisions = resolve(detect_conflicts(candidates, existing), "skip", False, ())

        rows = [
            _slot_row(d.candidate, location, rule_id=rule.id)
            for d in decisions
            if d.action == CREATE
        ]
        skipped += len(decisions) - len(rows)
        try:
            created.extend(store.insert_slots(rows))
        except PartialInsertError as e:
            created.extend(e.inserted)
            failed += e.failed_count

    logger.info(f"Rule generation {date_from}..{date_to}: created={len(created)} skipped={skipped}")
    return {
        "created_count": len(created),
        "skipped_count": skipped,
        "failed_count": failed,
        "created": created,
    }


# ── Helpers ──────────────────────────────────────────────────────────────


def _existing_slots(store: SlotStore, spec: ScheduleSpec, candidates: list[Candidate]) -> list:
    """One read covering the whole local date range and every candidate."""
    start, _ = local_day_bounds(spec.valid_from, spec.zone)
    _, end = local_day_bounds(spec.valid_to, spec.zone)
    if candidates:
        start = min(start, min(c.start_at for c in candidates))
        end = max(end, max(c.end_at for c in candidates))
    return store.list_slots(spec.location, start, end)


def _slot_row(
    candidate: Candidate,
    location: str,
    batch_id: int | None = None,
    rule_id: int | None = None,
) -> dict:
    return {
        "start_at": candidate.start_at,
        "end_at": candidate.end_at,
        "max_capacity": candidate.capacity,
        "location": location,
        "status": "open",
        "joinable": candidate.joinable,
        "created_from_batch_id": batch_id,
        "created_from_rule_id": rule_id,
    }


def _insert(store: SlotStore, rows: list[dict]) -> tuple[int, int]:
    try:
        return len(store.insert_slots(rows)), 0
    except PartialInsertError as e:
        return len(e.inserted), e.failed_count


def _emit_applied(spec: ScheduleSpec, outcome: dict) -> None:
    from ..events import emit_event

    emit_event("lesson_schedule_applied", {
        "location": spec.location,
        "valid_from": spec.valid_from,
        "valid_to": spec.valid_to,
        **{k: v for k, v in outcome.items() if k != "message"},
    })
