"""Public booking page: availability queries and booking requests."""
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import JSONResponse

from agenda.api.deps import bind_owner, get_engine
from agenda.engine import BookingEngine
from agenda.errors import ValidationError
from agenda.schemas.availability_schema import MonthAvailability, PublicScheduleSummary
from agenda.schemas.booking_schema import BookingRequest
from agenda.utils import month_bounds, parse_date

router = APIRouter(dependencies=[Depends(bind_owner)])

DEFAULT_DAYS_AHEAD = 90


def _require_date(value: Optional[str], name: str):
    day = parse_date(value or "")
    if day is None:
        raise ValidationError(f"Query parameter '{name}' must be YYYY-MM-DD.")
    return day


def _month_range(year: Optional[int], month: Optional[int]):
    if year is None or month is None or not 1 <= month <= 12:
        raise ValidationError("Invalid year or month.")
    try:
        return month_bounds(year, month)
    except ValueError:
        raise ValidationError("Invalid year or month.") from None


@router.get("/{owner_id}/days")
def get_days(
    owner_id: str,
    date_from: Optional[str] = Query(default=None, alias="from"),
    date_to: Optional[str] = Query(default=None, alias="to"),
    year: Optional[int] = None,
    month: Optional[int] = None,
    engine: BookingEngine = Depends(get_engine),
):
    """Bookable dates in a month (year + month) or an explicit from/to range."""
    if year is not None or month is not None:
        start, end = _month_range(year, month)
    else:
        today = engine.clock.today()
        start = _require_date(date_from, "from") if date_from else today
        end = _require_date(date_to, "to") if date_to else today + timedelta(days=DEFAULT_DAYS_AHEAD)
    days = engine.get_available_days(owner_id, start, end)
    return {"days": [d.isoformat() for d in days]}


@router.get("/{owner_id}/month", response_model=MonthAvailability)
def get_month(
    owner_id: str,
    year: Optional[int] = None,
    month: Optional[int] = None,
    engine: BookingEngine = Depends(get_engine),
):
    today = engine.clock.today()
    return engine.get_month_availability(
        owner_id,
        year if year is not None else today.year,
        month if month is not None else today.month,
    )


@router.get("/{owner_id}/slots")
def get_slots(
    owner_id: str,
    date: Optional[str] = None,
    engine: BookingEngine = Depends(get_engine),
):
    day = _require_date(date, "date")
    engine.availability.ensure_bookable(owner_id, day)
    slots = engine.get_available_slots(owner_id, day)
    return {"date": day.isoformat(), "slots": [s.model_dump() for s in slots]}


@router.get("/{owner_id}/config", response_model=PublicScheduleSummary)
def get_public_config(owner_id: str, engine: BookingEngine = Depends(get_engine)):
    return engine.availability.public_summary(owner_id)


@router.post("/{owner_id}/bookings", status_code=201)
def create_booking(
    owner_id: str,
    body: BookingRequest,
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
    engine: BookingEngine = Depends(get_engine),
):
    """
    Request a booking from the public page. Sending the same Idempotency-Key
    again within a minute returns the first response unchanged.
    """
    key = idempotency_key.strip() if idempotency_key else None
    record = engine.create_public_booking(owner_id, body, key or None)
    return JSONResponse(status_code=record.status_code, content=record.body)
