"""
Availability queries: free slots for a day, bookable days in a range and the
per-day status of a month.

Every query loads one snapshot of the owner's schedule (config, weekly
overrides, blocks and active bookings for the range) and then runs the pure
scheduling functions over it. The month view is memoized per
(owner, year, month) in the injected CacheStore and evicted for the whole
owner on any mutation.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from agenda.cache import CacheStore, owner_scope
from agenda.clock import Clock
from agenda.config import settings
from agenda.errors import ValidationError
from agenda.scheduling.conflicts import day_has_blocks, free_slots, is_whole_day_blocked, unblocked_slots
from agenda.scheduling.slots import RawSlot, generate_slots
from agenda.scheduling.window import BookingWindow, booking_window, resolve_window
from agenda.schemas.availability_schema import (
    DayAvailability,
    DayStatus,
    MonthAvailability,
    PublicScheduleSummary,
    TimeSlot,
)
from agenda.schemas.booking_schema import Booking
from agenda.schemas.schedule_schema import DateRangeBlock, RecurringBlock, ScheduleConfig, WeeklyOverride
from agenda.stores.base import BlockStore, BookingStore, ConfigStore, OverrideStore
from agenda.utils import format_time, iter_days, month_bounds, weekday_of

logger = logging.getLogger(__name__)

MONTH_CACHE_PREFIX = "agenda:month:"


def month_cache_prefix(owner_id: str) -> str:
    return f"{MONTH_CACHE_PREFIX}{owner_scope(owner_id)}"


def month_cache_key(owner_id: str, year: int, month: int) -> str:
    return f"{month_cache_prefix(owner_id)}{year}-{month}"


@dataclass
class ScheduleSnapshot:
    """Everything needed to evaluate the days in [start, end] for one owner."""

    config: ScheduleConfig
    window: BookingWindow
    overrides: list[WeeklyOverride]
    recurring: list[RecurringBlock]
    ranges: list[DateRangeBlock]
    bookings_by_date: dict[date, list[Booking]] = field(default_factory=dict)

    def raw_slots(self, day: date) -> Optional[list[RawSlot]]:
        """Slots of the day's opening window, or None when the day is closed."""
        opening = resolve_window(self.config, self.overrides, weekday_of(day))
        if opening is None:
            return None
        return generate_slots(
            opening[0],
            opening[1],
            self.config.slot_duration_minutes,
            self.config.buffer_minutes,
        )

    def free_slots(self, day: date) -> list[RawSlot]:
        if not self.window.contains(day):
            return []
        raw = self.raw_slots(day)
        if not raw:
            return []
        return free_slots(
            raw,
            day,
            weekday_of(day),
            self.recurring,
            self.ranges,
            self.bookings_by_date.get(day, []),
        )


class AvailabilityService:
    """Read side of the engine."""

    def __init__(
        self,
        configs: ConfigStore,
        overrides: OverrideStore,
        blocks: BlockStore,
        bookings: BookingStore,
        cache: CacheStore,
        clock: Clock,
        month_ttl_seconds: float = settings.engine.month_cache_ttl_seconds,
    ) -> None:
        self._configs = configs
        self._overrides = overrides
        self._blocks = blocks
        self._bookings = bookings
        self._cache = cache
        self._clock = clock
        self._month_ttl = month_ttl_seconds

    # ------------------------------------------------------------------ #
    # Snapshot loading
    # ------------------------------------------------------------------ #

    def booking_window(self, config: ScheduleConfig) -> BookingWindow:
        return booking_window(self._clock.today(), config.lead_days, config.horizon_days)

    def load_snapshot(self, owner_id: str, start: date, end: date) -> Optional[ScheduleSnapshot]:
        """Read the owner's schedule for [start, end]. None when not configured."""
        config = self._configs.get_config(owner_id)
        if config is None:
            return None
        by_date: dict[date, list[Booking]] = defaultdict(list)
        for booking in self._bookings.list_active(owner_id, start, end):
            by_date[booking.date].append(booking)
        return ScheduleSnapshot(
            config=config,
            window=self.booking_window(config),
            overrides=self._overrides.list_for_owner(owner_id),
            recurring=self._blocks.list_recurring(owner_id),
            ranges=self._blocks.list_date_range(owner_id, start, end),
            bookings_by_date=dict(by_date),
        )

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def get_available_slots(self, owner_id: str, day: date) -> list[TimeSlot]:
        """Free slots on day, ascending. Always computed fresh, never cached."""
        snapshot = self.load_snapshot(owner_id, day, day)
        if snapshot is None:
            return []
        return [TimeSlot(start=format_time(s.start), end=format_time(s.end)) for s in snapshot.free_slots(day)]

    def ensure_bookable(self, owner_id: str, day: date) -> None:
        """Raise OutOfWindowError when the owner is configured and day is outside the window."""
        config = self._configs.get_config(owner_id)
        if config is not None:
            self.booking_window(config).ensure_contains(day)

    def get_available_days(self, owner_id: str, start: date, end: date) -> list[date]:
        """Dates in [start, end] with at least one free slot."""
        config = self._configs.get_config(owner_id)
        if config is None:
            return []
        window = self.booking_window(config)
        start = max(start, window.min_date)
        end = min(end, window.max_date)
        if start > end:
            return []
        snapshot = self.load_snapshot(owner_id, start, end)
        if snapshot is None:
            return []
        return [day for day in iter_days(start, end) if snapshot.free_slots(day)]

    def get_total_slots(self, owner_id: str, day: date) -> int:
        """Slots on day after blocks but before bookings; 0 outside the window."""
        snapshot = self.load_snapshot(owner_id, day, day)
        if snapshot is None or not snapshot.window.contains(day):
            return 0
        raw = snapshot.raw_slots(day)
        if not raw:
            return 0
        return len(unblocked_slots(raw, day, weekday_of(day), snapshot.recurring, snapshot.ranges))

    def get_month_availability(self, owner_id: str, year: int, month: int) -> MonthAvailability:
        """Per-day DISPONIVEL/INDISPONIVEL for a month, served from cache when live."""
        if not 1 <= month <= 12:
            raise ValidationError("Invalid year or month.")
        try:
            first, last = month_bounds(year, month)
        except ValueError:
            raise ValidationError("Invalid year or month.") from None

        key = month_cache_key(owner_id, year, month)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Month cache hit for %s", key)
            return cached

        snapshot = self.load_snapshot(owner_id, first, last)
        if snapshot is None:
            return MonthAvailability(year=year, month=month, days=[])

        days = [self._day_status(snapshot, day) for day in iter_days(first, last)]
        result = MonthAvailability(year=year, month=month, days=days)
        self._cache.set(key, result, self._month_ttl)
        logger.debug("Month availability computed for %s", key)
        return result

    def _day_status(self, snapshot: ScheduleSnapshot, day: date) -> DayAvailability:
        reason = snapshot.window.reason_for(day)
        if reason is not None:
            return DayAvailability(date=day, status=DayStatus.UNAVAILABLE, reason=reason)
        if is_whole_day_blocked(day, snapshot.ranges):
            return DayAvailability(date=day, status=DayStatus.UNAVAILABLE, has_blocks=True)

        raw = snapshot.raw_slots(day)
        if raw is None:
            return DayAvailability(date=day, status=DayStatus.UNAVAILABLE)

        weekday = weekday_of(day)
        open_count = len(unblocked_slots(raw, day, weekday, snapshot.recurring, snapshot.ranges))
        booked = len(snapshot.bookings_by_date.get(day, []))
        # Counts, not slot identities: a block added over existing bookings
        # can leave the day available with nothing left to enumerate.
        status = DayStatus.AVAILABLE if open_count > booked else DayStatus.UNAVAILABLE
        return DayAvailability(
            date=day,
            status=status,
            has_blocks=day_has_blocks(day, weekday, snapshot.recurring, snapshot.ranges),
        )

    def public_summary(self, owner_id: str) -> PublicScheduleSummary:
        config = self._configs.get_config(owner_id)
        if config is None:
            return PublicScheduleSummary()
        return PublicScheduleSummary(
            slot_duration_minutes=config.slot_duration_minutes,
            buffer_minutes=config.buffer_minutes,
            lead_days=config.lead_days,
            horizon_days=config.horizon_days,
        )

    # ------------------------------------------------------------------ #
    # Invalidation
    # ------------------------------------------------------------------ #

    def invalidate_owner_cache(self, owner_id: str) -> None:
        """Evict every cached month for owner. Failures are logged, never raised."""
        try:
            removed = self._cache.invalidate_prefix(month_cache_prefix(owner_id))
            logger.debug("Month cache invalidated for owner %s (%d entries)", owner_id, removed)
        except Exception:
            logger.exception("Month cache invalidation failed for owner %s", owner_id)
