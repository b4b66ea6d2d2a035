"""Slot and month availability models."""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class DayStatus(str, Enum):
    AVAILABLE = "DISPONIVEL"
    UNAVAILABLE = "INDISPONIVEL"


class UnavailableReason(str, Enum):
    OUT_OF_LEAD_TIME = "OUT_OF_LEAD_TIME"
    OUT_OF_HORIZON = "OUT_OF_HORIZON"


class TimeSlot(BaseModel):
    """A free slot, formatted as HH:mm."""

    model_config = ConfigDict(frozen=True)

    start: str
    end: str


class DayAvailability(BaseModel):
    """Status of one calendar day in the month view."""

    model_config = ConfigDict(frozen=True)

    date: date
    status: DayStatus
    reason: Optional[UnavailableReason] = None
    has_blocks: Optional[bool] = None


class MonthAvailability(BaseModel):
    """Per-day status for a whole month. Cached as-is by the aggregator."""

    model_config = ConfigDict(frozen=True)

    year: int
    month: int
    days: list[DayAvailability]


class PublicScheduleSummary(BaseModel):
    """Minimal schedule facts shown on the public booking page."""

    slot_duration_minutes: int = 30
    buffer_minutes: int = 0
    lead_days: int = 0
    horizon_days: int = 30
