"""
Collaborator interfaces the engine reads from and writes to.

Any backing store works as long as ``BookingStore.create_if_absent`` is
atomic: the check for an active booking at (owner, date, start) and the
insert must happen in one transaction, and the store must refuse a second
active booking for the same slot even if two callers race.
"""

from datetime import date
from typing import Any, Optional, Protocol, Union

from agenda.schemas.booking_schema import Booking
from agenda.schemas.schedule_schema import DateRangeBlock, RecurringBlock, ScheduleConfig, WeeklyOverride

AnyBlock = Union[RecurringBlock, DateRangeBlock]


class ConfigStore(Protocol):
    def get_config(self, owner_id: str) -> Optional[ScheduleConfig]: ...

    def upsert_config(self, config: ScheduleConfig) -> ScheduleConfig: ...


class OverrideStore(Protocol):
    def list_for_owner(self, owner_id: str) -> list[WeeklyOverride]: ...

    def replace_overrides(self, owner_id: str, overrides: list[WeeklyOverride]) -> list[WeeklyOverride]:
        """Upsert one row per weekday given; weekdays not given are left alone."""
        ...


class BlockStore(Protocol):
    def list_recurring(self, owner_id: str) -> list[RecurringBlock]: ...

    def list_date_range(self, owner_id: str, start: date, end: date) -> list[DateRangeBlock]:
        """Date-range blocks whose span intersects [start, end]."""
        ...

    def list_blocks(self, owner_id: str) -> list[AnyBlock]: ...

    def add_block(self, block: AnyBlock) -> AnyBlock: ...

    def delete_block(self, owner_id: str, block_id: str) -> bool: ...


class BookingStore(Protocol):
    def list_active(self, owner_id: str, start: date, end: date) -> list[Booking]:
        """Pending and Confirmed bookings dated within [start, end]."""
        ...

    def get_booking(self, owner_id: str, booking_id: str) -> Optional[Booking]: ...

    def create_if_absent(self, booking: Booking) -> Booking:
        """Insert unless an active booking holds (owner, date, start).

        Raises:
            ConcurrentBookingConflict: the slot is already held.
        """
        ...

    def update_booking(self, owner_id: str, booking_id: str, changes: dict[str, Any]) -> Booking:
        """Apply field changes.

        Raises:
            NotFoundError: unknown booking.
            ConcurrentBookingConflict: re-activation would double-book the slot.
        """
        ...
