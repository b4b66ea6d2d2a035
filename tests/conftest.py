"""Shared test fixtures and helpers."""

from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

import pytest

from agenda.cache import InMemoryCacheStore
from agenda.engine import BookingEngine
from agenda.schemas.booking_schema import Booking, BookingRequest, BookingStatus
from agenda.schemas.schedule_schema import ScheduleConfig
from agenda.stores.memory import MemoryStore

LOCAL_TZ = ZoneInfo("America/Sao_Paulo")
OWNER = "owner-1"
# Wednesday. With lead_days=0 the first bookable date is 2024-01-11.
TODAY = date(2024, 1, 10)


class FrozenClock:
    """Clock pinned to a fixed instant that tests move forward by hand."""

    def __init__(self, now: Optional[datetime] = None) -> None:
        self._now = now or datetime(2024, 1, 10, 10, 0, tzinfo=LOCAL_TZ)

    def now(self) -> datetime:
        return self._now

    def today(self) -> date:
        return self._now.date()

    def advance(self, seconds: float = 0, days: int = 0) -> None:
        self._now += timedelta(seconds=seconds, days=days)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def cache(clock):
    return InMemoryCacheStore(clock)


@pytest.fixture
def engine(store, cache, clock):
    return BookingEngine(store=store, cache=cache, clock=clock)


@pytest.fixture
def configured_engine(engine):
    engine.admin.upsert_config(make_config())
    return engine


def make_config(owner_id: str = OWNER, **overrides) -> ScheduleConfig:
    """Helper to create a ScheduleConfig with 08:00-18:00, 30 min slots, no buffer."""
    fields = {
        "owner_id": owner_id,
        "opening_time": "08:00",
        "closing_time": "18:00",
        "slot_duration_minutes": 30,
        "buffer_minutes": 0,
        "lead_days": 0,
        "horizon_days": 30,
    }
    fields.update(overrides)
    return ScheduleConfig(**fields)


def make_request(
    day: str = "2024-01-15",
    start_time: str = "09:00",
    name: str = "Maria Silva",
    phone: str = "(11) 98765-4321",
    note: Optional[str] = None,
) -> BookingRequest:
    """Helper to create a public BookingRequest."""
    return BookingRequest(
        date=day,
        start_time=start_time,
        customer_name=name,
        customer_phone=phone,
        note=note,
    )


def make_booking(
    booking_id: str = "bk-1",
    owner_id: str = OWNER,
    day: date = date(2024, 1, 15),
    start_time: str = "09:00",
    end_time: str = "09:30",
    status: BookingStatus = BookingStatus.CONFIRMED,
) -> Booking:
    """Helper to create a stored Booking."""
    return Booking(
        id=booking_id,
        owner_id=owner_id,
        customer_name="Joao Souza",
        customer_phone="11912345678",
        date=day,
        start_time=start_time,
        end_time=end_time,
        status=status,
        created_at=datetime(2024, 1, 9, 12, 0, tzinfo=LOCAL_TZ),
    )
