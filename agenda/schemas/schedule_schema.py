"""Schedule configuration, weekly overrides and blocks."""

from datetime import date
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from agenda.utils import format_time, parse_time


def _normalize_time(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    minutes = parse_time(value)
    if minutes is None:
        raise ValueError(f"Invalid time {value!r}, use HH:mm")
    return format_time(minutes)


class ScheduleConfig(BaseModel):
    """Per-owner business hours and booking rules. One record per owner."""

    owner_id: str
    opening_time: str = "08:00"
    closing_time: str = "18:00"
    slot_duration_minutes: int = Field(default=30, ge=5, le=240)
    buffer_minutes: int = Field(default=0, ge=0, le=60)
    lead_days: int = Field(default=0, ge=0, le=60)
    horizon_days: int = Field(default=30, ge=1, le=365)

    @field_validator("opening_time", "closing_time")
    @classmethod
    def check_times(cls, value: Optional[str]) -> Optional[str]:
        return _normalize_time(value)


class WeeklyOverride(BaseModel):
    """Opening window for one weekday (1 = Monday .. 6 = Saturday)."""

    owner_id: str
    weekday: int = Field(ge=1, le=6)
    active: bool = False
    start_time: str = "08:00"
    end_time: str = "18:00"

    @field_validator("start_time", "end_time")
    @classmethod
    def check_times(cls, value: Optional[str]) -> Optional[str]:
        return _normalize_time(value)


class RecurringBlock(BaseModel):
    """Closed interval repeated every week on one weekday (0 = Sunday)."""

    kind: Literal["RECURRING"] = "RECURRING"
    id: str = ""
    owner_id: str
    weekday: int = Field(ge=0, le=6)
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time")
    @classmethod
    def check_times(cls, value: Optional[str]) -> Optional[str]:
        return _normalize_time(value)


class DateRangeBlock(BaseModel):
    """Closed span of calendar days, optionally restricted to a time range.

    Without start/end times the block covers the entire days in range.
    """

    kind: Literal["DATE_RANGE"] = "DATE_RANGE"
    id: str = ""
    owner_id: str
    start_date: date
    end_date: date
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def check_times(cls, value: Optional[str]) -> Optional[str]:
        return _normalize_time(value)

    @property
    def is_whole_day(self) -> bool:
        return self.start_time is None and self.end_time is None

    @property
    def is_timed(self) -> bool:
        return self.start_time is not None and self.end_time is not None

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


Block = Annotated[Union[RecurringBlock, DateRangeBlock], Field(discriminator="kind")]
