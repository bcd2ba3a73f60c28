# backend/app/services/lessons/__init__.py
"""
Lessons scheduling and booking-consistency engine.

Schedule path: template → candidates → conflicts → policy → slot store
Booking path: booking event → projection → slot status/lock
"""

from .config import SchedulingConfig, get_scheduling_config
from .template import Block, ScheduleSpec, ScheduleTemplate, build_schedule_spec
from .expander import Candidate, expand_spec, expand_template
from .conflicts import detect_conflicts
from .policy import resolve
from .projection import SlotProjection, project
from .store import SlotStore, SqlSlotStore
from .consistency import on_booking_cancelled, on_booking_created, reconcile_slot
from .scheduler import apply_schedule, check_schedule_conflicts, generate_from_rules
from .protection import ProtectionFilter, check_booking_protection

__all__ = [
    "SchedulingConfig",
    "get_scheduling_config",
    "Block",
    "ScheduleSpec",
    "ScheduleTemplate",
    "build_schedule_spec",
    "Candidate",
    "expand_spec",
    "expand_template",
    "detect_conflicts",
    "resolve",
    "SlotProjection",
    "project",
    "SlotStore",
    "SqlSlotStore",
    "on_booking_cancelled",
    "on_booking_created",
    "reconcile_slot",
    "apply_schedule",
    "check_schedule_conflicts",
    "generate_from_rules",
    "ProtectionFilter",
    "check_booking_protection",
]
