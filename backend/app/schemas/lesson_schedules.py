# backend/app/schemas/lesson_schedules.py
"""
Pydantic schemas for schedule preview/apply.

Range checks (weekdays, durations, policy) are done by the engine so they
surface as 400 with a readable message.
"""

import json
from datetime import date, datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator

from ..services.lessons.template import Block, ScheduleSpec, ScheduleTemplate, build_schedule_spec


class ScheduleBlock(BaseModel):
    kind: Literal["lesson", "break"]
    duration_minutes: int
    max_capacity: Optional[int] = None
    joinable: Optional[bool] = None


class ScheduleDefaults(BaseModel):
    max_capacity: Optional[int] = None
    joinable: Optional[bool] = None


class ScheduleTemplateIn(BaseModel):
    blocks: list[ScheduleBlock] = []
    defaults: ScheduleDefaults = Field(default_factory=ScheduleDefaults)

    def to_template(self) -> ScheduleTemplate:
        return ScheduleTemplate(
            blocks=tuple(
                Block(
                    kind=b.kind,
                    duration_minutes=b.duration_minutes,
                    max_capacity=b.max_capacity,
                    joinable=b.joinable,
                )
                for b in self.blocks
            ),
            default_max_capacity=self.defaults.max_capacity,
            default_joinable=self.defaults.joinable,
        )


class ScheduleOptions(BaseModel):
    policy: Literal["skip", "protect", "replace"] = "skip"
    overwrite_day: bool = False


class ScheduleCheckRequest(BaseModel):
    valid_from: date
    valid_to: date
    days_of_week: list[int]
    base_time_start: str = Field(description="Local time HH:MM")
    location: Optional[str] = None
    timezone: Optional[str] = None
    template: ScheduleTemplateIn = Field(default_factory=ScheduleTemplateIn)
    options: ScheduleOptions = Field(default_factory=ScheduleOptions)

    def to_spec(self, title: Optional[str] = None, force: bool = False) -> ScheduleSpec:
        """Raises ScheduleValidationError."""
        return build_schedule_spec(
            valid_from=self.valid_from,
            valid_to=self.valid_to,
            days_of_week=self.days_of_week,
            base_time_start=self.base_time_start,
            template=self.template.to_template(),
            location=self.location,
            timezone=self.timezone,
            title=title,
            policy=self.options.policy,
            overwrite_day=self.options.overwrite_day,
            force=force,
        )


class ScheduleApplyRequest(ScheduleCheckRequest):
    title: Optional[str] = None
    force: bool = Field(False, description="Allow replacing conflicting slots without bookings")

    def to_spec(self, title: Optional[str] = None, force: bool = False) -> ScheduleSpec:
        return super().to_spec(title=self.title, force=self.force)


class ScheduleApplyResponse(BaseModel):
    batch_id: int
    created_count: int
    skipped_count: int
    replaced_count: int
    failed_count: int = 0
    cleared_count: int = 0
    message: Optional[str] = None


class SchedulePreview(BaseModel):
    total_days: int
    matching_days: int
    closed_days: int
    total_lesson_blocks: int
    total_slots: int


class ExistingSlotRef(BaseModel):
    id: int
    start_at: datetime
    end_at: datetime
    location: str


class SlotConflict(BaseModel):
    date: date
    proposed_start_at: datetime
    proposed_end_at: datetime
    existing_slot: ExistingSlotRef


class ScheduleConflictResponse(BaseModel):
    preview: SchedulePreview
    slot_conflicts: list[SlotConflict]
    affected_bookings_count: int
    can_proceed: bool


class ScheduleBatchRead(BaseModel):
    id: int
    title: Optional[str] = None
    valid_from: date
    valid_to: date
    days_of_week: list[int]
    base_time_start: str
    location: str
    timezone: str
    template: dict
    options: Optional[dict] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("days_of_week", "template", "options", mode="before")
    @classmethod
    def decode_json(cls, v):
        """JSON text columns → Python values."""
        if isinstance(v, str):
            return json.loads(v)
        return v
