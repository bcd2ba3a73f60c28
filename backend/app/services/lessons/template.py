# backend/app/services/lessons/template.py
"""
Schedule templates and batch specifications.

A template is an ordered list of lesson/break blocks walked from a daily
anchor time. A batch spec binds a template to a date range, weekday set,
location and time zone.
"""

from dataclasses import dataclass, field
from datetime import date, time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .config import SchedulingConfig, get_scheduling_config, time_str_to_minutes
from .exceptions import ScheduleValidationError

BLOCK_KINDS = ("lesson", "break")
POLICIES = ("skip", "protect", "replace")


@dataclass(frozen=True)
class Block:
    kind: str
    duration_minutes: int
    max_capacity: int | None = None
    joinable: bool | None = None

    @property
    def is_lesson(self) -> bool:
        return self.kind == "lesson"


@dataclass(frozen=True)
class ScheduleTemplate:
    blocks: tuple[Block, ...] = ()
    default_max_capacity: int | None = None
    default_joinable: bool | None = None

    @property
    def lesson_blocks(self) -> int:
        return sum(1 for b in self.blocks if b.is_lesson)

    def capacity_for(self, block: Block, config: SchedulingConfig) -> int:
        if block.max_capacity is not None:
            return block.max_capacity
        if self.default_max_capacity is not None:
            return self.default_max_capacity
        return config.default_max_capacity

    def joinable_for(self, block: Block) -> bool:
        if block.joinable is not None:
            return block.joinable
        if self.default_joinable is not None:
            return self.default_joinable
        return True

    def to_dict(self) -> dict:
        """Serializable form stored on the batch record."""
        blocks = []
        for b in self.blocks:
            item = {"kind": b.kind, "duration_minutes": b.duration_minutes}
            if b.max_capacity is not None:
                item["max_capacity"] = b.max_capacity
            if b.joinable is not None:
                item["joinable"] = b.joinable
            blocks.append(item)
        defaults = {}
        if self.default_max_capacity is not None:
            defaults["max_capacity"] = self.default_max_capacity
        if self.default_joinable is not None:
            defaults["joinable"] = self.default_joinable
        return {"blocks": blocks, "defaults": defaults}

    @classmethod
    def from_dict(cls, data: dict | None) -> "ScheduleTemplate":
        data = data or {}
        defaults = data.get("defaults") or {}
        blocks = tuple(
            Block(
                kind=b.get("kind"),
                duration_minutes=b.get("duration_minutes"),
                max_capacity=b.get("max_capacity"),
                joinable=b.get("joinable"),
            )
            for b in data.get("blocks") or []
        )
        return cls(
            blocks=blocks,
            default_max_capacity=defaults.get("max_capacity"),
            default_joinable=defaults.get("joinable"),
        )


def rule_template(duration_minutes: int, max_capacity: int | None = None) -> ScheduleTemplate:
    """Implicit single-lesson template used by availability rules."""
    return ScheduleTemplate(
        blocks=(Block(kind="lesson", duration_minutes=duration_minutes),),
        default_max_capacity=max_capacity,
        default_joinable=True,
    )


@dataclass(frozen=True)
class ScheduleSpec:
    """Everything needed to preview or apply a schedule batch."""
    valid_from: date
    valid_to: date
    days_of_week: tuple[int, ...]
    base_time_start: str
    template: ScheduleTemplate
    location: str
    timezone: str
    title: str | None = None
    policy: str = "skip"
    overwrite_day: bool = False
    force: bool = False
    options: dict = field(default_factory=dict)

    @property
    def single_day(self) -> bool:
        return self.valid_from == self.valid_to

    @property
    def overwrites_day(self) -> bool:
        """overwrite_day only takes effect on a single-day range."""
        return self.overwrite_day and self.single_day

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def base_time(self) -> time:
        return parse_time(self.base_time_start)

    @property
    def total_days(self) -> int:
        return (self.valid_to - self.valid_from).days + 1


def build_schedule_spec(
    *,
    valid_from: date,
    valid_to: date,
    days_of_week,
    base_time_start: str,
    template: ScheduleTemplate,
    location: str | None = None,
    timezone: str | None = None,
    title: str | None = None,
    policy: str | None = None,
    overwrite_day: bool = False,
    force: bool = False,
    config: SchedulingConfig | None = None,
) -> ScheduleSpec:
    """Fill defaults and validate. Raises ScheduleValidationError."""
    config = config or get_scheduling_config()
    policy = policy or "skip"
    options = {"policy": policy}
    if overwrite_day:
        options["overwrite_day"] = True

    spec = ScheduleSpec(
        valid_from=valid_from,
        valid_to=valid_to,
        days_of_week=tuple(sorted(set(days_of_week or ()))),
        base_time_start=base_time_start,
        template=template,
        location=location or config.default_location,
        timezone=timezone or config.default_timezone,
        title=title,
        policy=policy,
        overwrite_day=overwrite_day,
        force=force,
        options=options,
    )
    validate_schedule_spec(spec)
    return spec


def validate_schedule_spec(spec: ScheduleSpec) -> None:
    if spec.valid_from > spec.valid_to:
        raise ScheduleValidationError("valid_from must not be after valid_to")

    for dow in spec.days_of_week:
        if not isinstance(dow, int) or not 0 <= dow <= 6:
            raise ScheduleValidationError(f"days_of_week out of range: {dow!r}")
    if not spec.days_of_week and not spec.overwrites_day:
        raise ScheduleValidationError("days_of_week must not be empty")

    parse_time(spec.base_time_start)

    try:
        ZoneInfo(spec.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ScheduleValidationError(f"Unknown timezone: {spec.timezone}") from None

    if spec.policy not in POLICIES:
        raise ScheduleValidationError(f"Unknown policy: {spec.policy}")

    # An empty template is only meaningful as "clear this day"
    if not spec.template.blocks and spec.overwrites_day:
        return
    validate_template(spec.template)


def validate_template(template: ScheduleTemplate) -> None:
    if not template.blocks:
        raise ScheduleValidationError("Template must contain at least one block")

    for index, block in enumerate(template.blocks):
        if block.kind not in BLOCK_KINDS:
            raise ScheduleValidationError(f"Block {index}: unknown kind {block.kind!r}")
        if not isinstance(block.duration_minutes, int) or block.duration_minutes <= 0:
            raise ScheduleValidationError(
                f"Block {index}: duration_minutes must be a positive integer"
            )
        if block.max_capacity is not None and block.max_capacity < 1:
            raise ScheduleValidationError(f"Block {index}: max_capacity must be positive")

    if template.lesson_blocks == 0:
        raise ScheduleValidationError("Template must contain at least one lesson block")
    if template.default_max_capacity is not None and template.default_max_capacity < 1:
        raise ScheduleValidationError("defaults.max_capacity must be positive")


def parse_time(value: str) -> time:
    try:
        minutes = time_str_to_minutes(value)
    except (ValueError, AttributeError):
        raise ScheduleValidationError(f"Invalid time: {value!r}") from None
    return time(minutes // 60, minutes % 60)
