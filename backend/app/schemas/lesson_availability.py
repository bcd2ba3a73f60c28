# backend/app/schemas/lesson_availability.py

import json
from datetime import date, datetime
from typing import Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from pydantic import BaseModel, Field, field_validator

from ..services.lessons.config import time_str_to_minutes


class AvailabilityRuleCreate(BaseModel):
    days_of_week: list[int]
    time_start: str
    time_end: str
    duration_minutes: int = Field(gt=0)
    location: Optional[str] = None
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None
    active: bool = True

    @field_validator("days_of_week")
    @classmethod
    def check_days(cls, v: list[int]) -> list[int]:
        if any(d < 0 or d > 6 for d in v):
            raise ValueError("days_of_week values must be 0..6 (0 = Sunday)")
        return sorted(set(v))


class AvailabilityRuleRead(BaseModel):
    id: int
    days_of_week: list[int]
    time_start: str
    time_end: str
    duration_minutes: int
    location: str
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None
    active: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("days_of_week", mode="before")
    @classmethod
    def decode_days(cls, v):
        if isinstance(v, str):
            return json.loads(v)
        return v


class AvailabilityOverrideCreate(BaseModel):
    date: date
    kind: Literal["closed", "open"] = "closed"
    time_start: Optional[str] = None
    time_end: Optional[str] = None
    reason: Optional[str] = None
    location: Optional[str] = None

    model_config = {"from_attributes": True}


class AvailabilityOverrideRead(BaseModel):
    id: int
    date: date
    kind: str
    time_start: Optional[str] = None
    time_end: Optional[str] = None
    reason: Optional[str] = None
    location: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookingProtectionRequest(BaseModel):
    rule_id: Optional[int] = None
    batch_id: Optional[int] = None
    slot_ids: list[int] = Field(default_factory=list)
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    days_of_week: list[int] = Field(default_factory=list)
    time_start: Optional[str] = None
    time_end: Optional[str] = None
    location: Optional[str] = None
    timezone: Optional[str] = None

    @field_validator("time_start", "time_end")
    @classmethod
    def check_time(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            time_str_to_minutes(v)
        return v

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown time zone: {v!r}")
        return v


class ProtectionSummary(BaseModel):
    total_affected_bookings: int
    protected_bookings: int
    modifiable_bookings: int
    total_affected_participants: int
    can_proceed_safely: bool
    requires_notification: bool


class BookingProtectionResponse(BaseModel):
    protection_summary: ProtectionSummary
    protected_bookings: list[dict]
    modifiable_bookings: list[dict]
    bookings_by_date: dict[str, list[dict]]
    recommendations: list[str]
