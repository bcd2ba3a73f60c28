# backend/app/services/lessons/policy.py
"""
Conflict resolution policy.

| conflict | policy  | force | booking on conflicting slot | outcome |
|----------|---------|-------|-----------------------------|---------|
| none     | any     | any   | -                           | create  |
| yes      | skip    | any   | -                           | skip    |
| yes      | protect | any   | -                           | skip    |
| yes      | replace | False | -                           | skip    |
| yes      | replace | True  | no                          | replace |
| yes      | replace | True  | yes                         | skip    |

A slot with any non-cancelled booking (pending or confirmed) is never
deleted.
"""

from dataclasses import dataclass

from .conflicts import AnnotatedCandidate

CREATE = "create"
SKIP = "skip"
REPLACE = "replace"


@dataclass(frozen=True)
class Decision:
    item: AnnotatedCandidate
    action: str
    reason: str
    delete_slot_ids: tuple[int, ...] = ()

    @property
    def candidate(self):
        return self.item.candidate


def decide(
    item: AnnotatedCandidate,
    policy: str,
    force: bool,
    booked_slot_ids,
) -> Decision:
    """Outcome for a single candidate."""
    if not item.has_conflict:
        return Decision(item, CREATE, "no_conflict")

    if policy == "skip":
        return Decision(item, SKIP, "policy_skip")
    if policy == "protect":
        return Decision(item, SKIP, "policy_protect")
    if policy != "replace":
        raise ValueError(f"Unknown policy: {policy}")

    if not force:
        return Decision(item, SKIP, "replace_not_forced")

    conflicting_ids = tuple(s.id for s in item.conflicts)
    if any(slot_id in booked_slot_ids for slot_id in conflicting_ids):
        return Decision(item, SKIP, "protected_booking")

    return Decision(item, REPLACE, "replaced", delete_slot_ids=conflicting_ids)


def resolve(
    annotated: list[AnnotatedCandidate],
    policy: str,
    force: bool,
    booked_slot_ids,
) -> list[Decision]:
    """
    Decide per candidate.

    When several candidates overlap the same stored slot, only the first
    replacement deletes it; later ones just create.
    """
    booked = set(booked_slot_ids)
    claimed: set[int] = set()

    decisions = []
    for item in annotated:
        decision = decide(item, policy, force, booked)
        if decision.action == REPLACE:
            fresh = tuple(i for i in decision.delete_slot_ids if i not in claimed)
            claimed.update(fresh)
            decision = Decision(item, REPLACE, decision.reason, delete_slot_ids=fresh)
        decisions.append(decision)
    return decisions


def summarize(decisions: list[Decision]) -> dict:
    return {
        "created_count": sum(1 for d in decisions if d.action == CREATE),
        "skipped_count": sum(1 for d in decisions if d.action == SKIP),
        "replaced_count": sum(1 for d in decisions if d.action == REPLACE),
    }
