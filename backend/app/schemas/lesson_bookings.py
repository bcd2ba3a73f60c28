# backend/app/schemas/lesson_bookings.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from .lesson_slots import LessonSlotRead


class LessonBookingCreate(BaseModel):
    slot_id: int
    group_size: int = Field(1, ge=1)
    allow_fill: bool = True
    observations: Optional[str] = None
    participants: list[str] = Field(default_factory=list, description="Additional names")


class LessonBookingRead(BaseModel):
    id: int
    slot_id: int
    user_id: int
    group_size: int
    allow_fill: bool
    status: str
    observations: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookLessonResponse(BaseModel):
    booking_id: int
    slot: Optional[LessonSlotRead] = None


class CancelBookingResponse(BaseModel):
    message: str
    booking_id: int
    slot: Optional[LessonSlotRead] = None


class ParticipantRead(BaseModel):
    id: int
    name: str
    is_primary: bool

    model_config = {"from_attributes": True}


class BookingUserRead(BaseModel):
    id: int
    name: str
    surname: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    model_config = {"from_attributes": True}


class SlotBookingRead(BaseModel):
    id: int
    user: Optional[BookingUserRead] = None
    group_size: int
    allow_fill: bool
    status: str
    created_at: Optional[datetime] = None
    participants: list[ParticipantRead] = []

    model_config = {"from_attributes": True}


class SlotBookingsResponse(BaseModel):
    bookings: list[SlotBookingRead]
    participants_count: int


class UserBookingItem(BaseModel):
    booking_id: int
    status: str
    group_size: int
    created_at: Optional[datetime] = None
    slot: LessonSlotRead
