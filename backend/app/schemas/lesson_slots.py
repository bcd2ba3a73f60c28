# backend/app/schemas/lesson_slots.py

from datetime import date, datetime, timezone
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator, model_validator


class LessonSlotRead(BaseModel):
    id: int
    start_at: datetime
    end_at: datetime
    max_capacity: int
    location: str
    status: str
    joinable: bool
    locked_by_booking_id: Optional[int] = None
    created_from_rule_id: Optional[int] = None
    created_from_batch_id: Optional[int] = None

    model_config = {"from_attributes": True}


class LessonSlotCreate(BaseModel):
    start_at: datetime
    end_at: datetime
    max_capacity: int = Field(4, ge=1)
    location: Optional[str] = None
    status: Literal["open", "full", "cancelled", "closed"] = "open"

    model_config = {"from_attributes": True}

    @field_validator("start_at", "end_at")
    @classmethod
    def to_naive_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    @model_validator(mode="after")
    def check_interval(self):
        if self.start_at >= self.end_at:
            raise ValueError("start_at must be before end_at")
        return self


class LessonSlotStatusUpdate(BaseModel):
    """Administrative override; "open" re-derives open/full from bookings."""
    status: Literal["open", "cancelled", "closed"]


class PublicLessonSlot(BaseModel):
    id: int
    start_at: datetime
    end_at: datetime
    max_capacity: int
    location: str
    status: str
    participants_count: int
    joinable: bool
    allow_fill_policy: Optional[bool] = None
    duration_minutes: int
    user_booked: Optional[bool] = None


class AdminLessonSlot(LessonSlotRead):
    booking_count: int
    participants_count: int
    duration_minutes: int


class GenerateSlotsRequest(BaseModel):
    date_from: date = Field(alias="from")
    date_to: date = Field(alias="to")

    model_config = {"populate_by_name": True}


class GenerateSlotsResponse(BaseModel):
    created_count: int
    skipped_count: int
    failed_count: int = 0
    created: list[LessonSlotRead]


class ReconcileRequest(BaseModel):
    slot_ids: Optional[list[int]] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None


class ReconcileResponse(BaseModel):
    checked: int
    slots: list[LessonSlotRead]
