"""
Opening-window resolution and the lead/horizon bookable range.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from agenda.errors import OutOfWindowError
from agenda.schemas.availability_schema import UnavailableReason
from agenda.schemas.schedule_schema import ScheduleConfig, WeeklyOverride
from agenda.utils import parse_time


def _valid_range(start: str, end: str) -> Optional[tuple[int, int]]:
    start_min = parse_time(start)
    end_min = parse_time(end)
    if start_min is None or end_min is None or start_min >= end_min:
        return None
    return start_min, end_min


def resolve_window(
    config: Optional[ScheduleConfig],
    overrides: list[WeeklyOverride],
    weekday: int,
) -> Optional[tuple[int, int]]:
    """Effective opening window for a weekday (0 = Sunday), in minutes.

    An active override with start < end wins; otherwise the schedule's
    business hours apply if they form a valid range. None means the day is
    closed.
    """
    override = next((o for o in overrides if o.weekday == weekday), None)
    if override is not None and override.active:
        window = _valid_range(override.start_time, override.end_time)
        if window is not None:
            return window
    if config is None:
        return None
    return _valid_range(config.opening_time, config.closing_time)


@dataclass(frozen=True)
class BookingWindow:
    """Inclusive range of bookable dates."""

    min_date: date
    max_date: date
    lead_days: int

    def reason_for(self, day: date) -> Optional[UnavailableReason]:
        if day < self.min_date:
            return UnavailableReason.OUT_OF_LEAD_TIME
        if day > self.max_date:
            return UnavailableReason.OUT_OF_HORIZON
        return None

    def contains(self, day: date) -> bool:
        return self.reason_for(day) is None

    def ensure_contains(self, day: date) -> None:
        """Raise OutOfWindowError when day is not bookable."""
        reason = self.reason_for(day)
        if reason is not None:
            raise OutOfWindowError(reason.value, self.lead_days)


def booking_window(today: date, lead_days: int, horizon_days: int) -> BookingWindow:
    """First bookable date is today + lead + 1: N full days must pass first.

    With lead_days=2 on 2024-01-10 the first bookable date is 2024-01-13.
    """
    return BookingWindow(
        min_date=today + timedelta(days=lead_days + 1),
        max_date=today + timedelta(days=horizon_days),
        lead_days=lead_days,
    )
