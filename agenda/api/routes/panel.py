"""Owner panel: schedule maintenance, manual bookings and booking status."""
from datetime import date
from typing import Annotated, Literal, Optional, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from agenda.api.deps import bind_owner, get_engine
from agenda.engine import BookingEngine
from agenda.schemas.booking_schema import Booking, BookingRequest, StatusUpdate
from agenda.schemas.schedule_schema import DateRangeBlock, RecurringBlock, ScheduleConfig, WeeklyOverride

router = APIRouter(dependencies=[Depends(bind_owner)])


class ConfigBody(BaseModel):
    opening_time: str = "08:00"
    closing_time: str = "18:00"
    slot_duration_minutes: int = Field(default=30, ge=5, le=240)
    buffer_minutes: int = Field(default=0, ge=0, le=60)
    lead_days: int = Field(default=0, ge=0, le=60)
    horizon_days: int = Field(default=30, ge=1, le=365)


class WeeklyRowBody(BaseModel):
    weekday: int = Field(..., ge=1, le=6)
    active: bool = False
    start_time: str = "08:00"
    end_time: str = "18:00"


class WeeklyBody(BaseModel):
    days: list[WeeklyRowBody]


class RecurringBlockBody(BaseModel):
    kind: Literal["RECURRING"]
    weekday: int = Field(..., ge=0, le=6)
    start_time: str
    end_time: str


class DateRangeBlockBody(BaseModel):
    kind: Literal["DATE_RANGE"]
    start_date: date
    end_date: date
    start_time: Optional[str] = None
    end_time: Optional[str] = None


BlockBody = Annotated[Union[RecurringBlockBody, DateRangeBlockBody], Field(discriminator="kind")]


@router.put("/{owner_id}/config", response_model=ScheduleConfig)
def put_config(owner_id: str, body: ConfigBody, engine: BookingEngine = Depends(get_engine)):
    return engine.admin.upsert_config(ScheduleConfig(owner_id=owner_id, **body.model_dump()))


@router.put("/{owner_id}/weekly", response_model=list[WeeklyOverride])
def put_weekly(owner_id: str, body: WeeklyBody, engine: BookingEngine = Depends(get_engine)):
    overrides = [WeeklyOverride(owner_id=owner_id, **row.model_dump()) for row in body.days]
    return engine.admin.replace_weekly(owner_id, overrides)


@router.get("/{owner_id}/blocks")
def list_blocks(owner_id: str, engine: BookingEngine = Depends(get_engine)):
    return [b.model_dump(mode="json") for b in engine.admin.list_blocks(owner_id)]


@router.post("/{owner_id}/blocks", status_code=201)
def create_block(owner_id: str, body: BlockBody, engine: BookingEngine = Depends(get_engine)):
    if isinstance(body, RecurringBlockBody):
        block = RecurringBlock(owner_id=owner_id, **body.model_dump())
    else:
        block = DateRangeBlock(owner_id=owner_id, **body.model_dump())
    return engine.admin.add_block(block).model_dump(mode="json")


@router.delete("/{owner_id}/blocks/{block_id}", status_code=204)
def delete_block(owner_id: str, block_id: str, engine: BookingEngine = Depends(get_engine)):
    engine.admin.delete_block(owner_id, block_id)


@router.post("/{owner_id}/bookings", status_code=201, response_model=Booking)
def create_manual_booking(owner_id: str, body: BookingRequest, engine: BookingEngine = Depends(get_engine)):
    """Booking entered by the owner; same rules as the public page, no idempotency."""
    return engine.bookings.create_manual_booking(owner_id, body)


@router.patch("/{owner_id}/bookings/{booking_id}/status", response_model=Booking)
def update_status(owner_id: str, booking_id: str, body: StatusUpdate, engine: BookingEngine = Depends(get_engine)):
    return engine.bookings.set_status(owner_id, booking_id, body.status)


@router.post("/{owner_id}/bookings/{booking_id}/check-in", response_model=Booking)
def check_in(owner_id: str, booking_id: str, engine: BookingEngine = Depends(get_engine)):
    return engine.bookings.check_in(owner_id, booking_id)


@router.post("/{owner_id}/bookings/{booking_id}/no-show", response_model=Booking)
def mark_no_show(owner_id: str, booking_id: str, engine: BookingEngine = Depends(get_engine)):
    return engine.bookings.mark_no_show(owner_id, booking_id)
