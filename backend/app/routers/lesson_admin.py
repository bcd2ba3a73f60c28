# backend/app/routers/lesson_admin.py
"""
Lessons admin API. Every endpoint requires an admin caller.

Schedules:  GET /schedules, POST /schedules/check-conflicts, POST /schedules/apply
Rules:      GET/POST /rules, POST /generate
Overrides:  GET/POST /overrides, DELETE /overrides/{id}
Slots:      GET/POST /slots, PATCH /slots/{id}, GET /slots/{id}/bookings,
            POST /slots/reconcile
Bookings:   DELETE /bookings/{id}, POST /booking-protection
"""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session, selectinload

from ..auth import CallerContext, require_admin
from ..database import get_db
from ..models.generated import (
    LessonAvailabilityOverrides as DBOverrides,
    LessonAvailabilityRules as DBRules,
    LessonBookings as DBBookings,
    LessonSlotBatches as DBBatches,
    LessonSlots as DBSlots,
)
from ..schemas.lesson_availability import (
    AvailabilityOverrideCreate,
    AvailabilityOverrideRead,
    AvailabilityRuleCreate,
    AvailabilityRuleRead,
    BookingProtectionRequest,
    BookingProtectionResponse,
)
from ..schemas.lesson_bookings import CancelBookingResponse, SlotBookingRead, SlotBookingsResponse
from ..schemas.lesson_schedules import (
    ScheduleApplyRequest,
    ScheduleApplyResponse,
    ScheduleBatchRead,
    ScheduleCheckRequest,
    ScheduleConflictResponse,
)
from ..schemas.lesson_slots import (
    AdminLessonSlot,
    GenerateSlotsRequest,
    GenerateSlotsResponse,
    LessonSlotCreate,
    LessonSlotRead,
    LessonSlotStatusUpdate,
    ReconcileRequest,
    ReconcileResponse,
)
from ..services.lessons import (
    ProtectionFilter,
    SqlSlotStore,
    apply_schedule,
    check_booking_protection,
    check_schedule_conflicts,
    generate_from_rules,
    get_scheduling_config,
    reconcile_slot,
)
from ..services.lessons.exceptions import ScheduleValidationError
from ..services.lessons.intervals import minutes_between
from ..services.lessons.projection import active_bookings
from ..services.lessons.template import parse_time
from .lessons import _cancel, slots_in_range

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/lessons/admin",
    tags=["lessons-admin"],
    dependencies=[Depends(require_admin)],
)


# ── Schedules ────────────────────────────────────────────────────────────


@router.get("/schedules", response_model=list[ScheduleBatchRead])
def list_schedules(db: Session = Depends(get_db)):
    return db.query(DBBatches).order_by(DBBatches.created_at.desc(), DBBatches.id.desc()).all()


@router.post("/schedules/check-conflicts", response_model=ScheduleConflictResponse)
def check_conflicts(data: ScheduleCheckRequest, db: Session = Depends(get_db)):
    try:
        spec = data.to_spec()
    except ScheduleValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return check_schedule_conflicts(SqlSlotStore(db), spec)


@router.post("/schedules/apply", response_model=ScheduleApplyResponse)
def apply(data: ScheduleApplyRequest, db: Session = Depends(get_db)):
    try:
        spec = data.to_spec()
    except ScheduleValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return apply_schedule(SqlSlotStore(db), spec)


# ── Rules ────────────────────────────────────────────────────────────────


@router.get("/rules", response_model=list[AvailabilityRuleRead])
def list_rules(db: Session = Depends(get_db)):
    return db.query(DBRules).order_by(DBRules.created_at.desc(), DBRules.id.desc()).all()


@router.post("/rules", response_model=AvailabilityRuleRead, status_code=status.HTTP_201_CREATED)
def create_rule(data: AvailabilityRuleCreate, db: Session = Depends(get_db)):
    try:
        start, end = parse_time(data.time_start), parse_time(data.time_end)
    except ScheduleValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if start >= end:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="time_start must be before time_end")

    payload = data.model_dump()
    payload["days_of_week"] = json.dumps(data.days_of_week)
    payload["active"] = int(data.active)
    payload["location"] = data.location or get_scheduling_config().default_location

    obj = DBRules(**payload)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@router.post("/generate", response_model=GenerateSlotsResponse)
def generate(data: GenerateSlotsRequest, db: Session = Depends(get_db)):
    if data.date_from > data.date_to:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid date range")
    return generate_from_rules(SqlSlotStore(db), data.date_from, data.date_to)


# ── Overrides ────────────────────────────────────────────────────────────


@router.get("/overrides", response_model=list[AvailabilityOverrideRead])
def list_overrides(db: Session = Depends(get_db)):
    return db.query(DBOverrides).order_by(DBOverrides.date, DBOverrides.id).all()


@router.post("/overrides", response_model=AvailabilityOverrideRead, status_code=status.HTTP_201_CREATED)
def create_override(data: AvailabilityOverrideCreate, db: Session = Depends(get_db)):
    obj = DBOverrides(**data.model_dump())
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@router.delete("/overrides/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_override(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBOverrides, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    db.delete(obj)
    db.commit()


# ── Slots ────────────────────────────────────────────────────────────────


@router.get("/slots", response_model=list[AdminLessonSlot])
def list_slots(
    date_from: str | None = Query(None, alias="from"),
    date_to: str | None = Query(None, alias="to"),
    db: Session = Depends(get_db),
):
    slots = (
        slots_in_range(db, date_from, date_to)
        .options(selectinload(DBSlots.lesson_bookings))
        .all()
    )
    result = []
    for slot in slots:
        active = active_bookings(slot.lesson_bookings)
        result.append(AdminLessonSlot(
            **LessonSlotRead.model_validate(slot).model_dump(),
            booking_count=len(active),
            participants_count=sum(b.group_size or 0 for b in active),
            duration_minutes=minutes_between(slot.start_at, slot.end_at),
        ))
    return result


@router.post("/slots", response_model=LessonSlotRead, status_code=status.HTTP_201_CREATED)
def create_slot(data: LessonSlotCreate, db: Session = Depends(get_db)):
    payload = data.model_dump()
    payload["location"] = data.location or get_scheduling_config().default_location
    obj = DBSlots(**payload)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@router.patch("/slots/{id}", response_model=LessonSlotRead)
def update_slot_status(id: int, data: LessonSlotStatusUpdate, db: Session = Depends(get_db)):
    store = SqlSlotStore(db)
    slot = store.update_slot(id, status=data.status)
    if not slot:
        raise HTTPException(status_code=404, detail="Not found")
    logger.info(f"Slot {id} status set to {data.status} by admin")
    if data.status == "open":
        # Re-derive open/full from the current bookings
        slot = reconcile_slot(store, id)
    return slot


@router.get("/slots/{id}/bookings", response_model=SlotBookingsResponse)
def list_slot_bookings(id: int, db: Session = Depends(get_db)):
    bookings = (
        db.query(DBBookings)
        .options(selectinload(DBBookings.participants), selectinload(DBBookings.user))
        .filter(DBBookings.slot_id == id)
        .order_by(DBBookings.created_at, DBBookings.id)
        .all()
    )
    return SlotBookingsResponse(
        bookings=[SlotBookingRead.model_validate(b) for b in bookings],
        participants_count=sum(b.group_size or 0 for b in active_bookings(bookings)),
    )


@router.post("/slots/reconcile", response_model=ReconcileResponse)
def reconcile_slots(data: ReconcileRequest, db: Session = Depends(get_db)):
    if data.slot_ids:
        ids = list(data.slot_ids)
    else:
        query = slots_in_range(
            db,
            data.date_from.isoformat() if data.date_from else None,
            data.date_to.isoformat() if data.date_to else None,
        )
        ids = [slot.id for slot in query.all()]

    store = SqlSlotStore(db)
    slots = [s for s in (reconcile_slot(store, slot_id) for slot_id in ids) if s is not None]
    return ReconcileResponse(
        checked=len(ids),
        slots=[LessonSlotRead.model_validate(s) for s in slots],
    )


# ── Bookings ─────────────────────────────────────────────────────────────


@router.delete("/bookings/{id}", response_model=CancelBookingResponse)
def cancel_any_booking(
    id: int,
    caller: CallerContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return _cancel(db, id, caller)


@router.post("/booking-protection", response_model=BookingProtectionResponse)
def booking_protection(data: BookingProtectionRequest, db: Session = Depends(get_db)):
    return check_booking_protection(db, ProtectionFilter(**data.model_dump()))
