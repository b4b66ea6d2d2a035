"""
Thread-safe in-memory store.

Implements every collaborator interface behind one re-entrant lock, which
makes ``create_if_absent`` atomic for a single process. Used by tests, the
demo server and single-instance deployments without a database.
"""

import logging
import threading
import uuid
from datetime import date
from typing import Any, Optional

from agenda.errors import ConcurrentBookingConflict, NotFoundError
from agenda.schemas.booking_schema import Booking
from agenda.schemas.schedule_schema import DateRangeBlock, RecurringBlock, ScheduleConfig, WeeklyOverride
from agenda.stores.base import AnyBlock

logger = logging.getLogger(__name__)


class MemoryStore:
    """ConfigStore, OverrideStore, BlockStore and BookingStore in one object."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._configs: dict[str, ScheduleConfig] = {}
        self._overrides: dict[tuple[str, int], WeeklyOverride] = {}
        self._blocks: dict[str, AnyBlock] = {}
        self._bookings: dict[str, Booking] = {}

    # ------------------------------------------------------------------ #
    # ConfigStore
    # ------------------------------------------------------------------ #

    def get_config(self, owner_id: str) -> Optional[ScheduleConfig]:
        with self._lock:
            config = self._configs.get(owner_id)
            return config.model_copy() if config else None

    def upsert_config(self, config: ScheduleConfig) -> ScheduleConfig:
        with self._lock:
            self._configs[config.owner_id] = config.model_copy()
        return config

    # ------------------------------------------------------------------ #
    # OverrideStore
    # ------------------------------------------------------------------ #

    def list_for_owner(self, owner_id: str) -> list[WeeklyOverride]:
        with self._lock:
            rows = [o.model_copy() for (owner, _), o in self._overrides.items() if owner == owner_id]
        return sorted(rows, key=lambda o: o.weekday)

    def replace_overrides(self, owner_id: str, overrides: list[WeeklyOverride]) -> list[WeeklyOverride]:
        with self._lock:
            for override in overrides:
                self._overrides[(owner_id, override.weekday)] = override.model_copy(
                    update={"owner_id": owner_id}
                )
        return self.list_for_owner(owner_id)

    # ------------------------------------------------------------------ #
    # BlockStore
    # ------------------------------------------------------------------ #

    def list_recurring(self, owner_id: str) -> list[RecurringBlock]:
        with self._lock:
            return [
                b.model_copy()
                for b in self._blocks.values()
                if b.owner_id == owner_id and isinstance(b, RecurringBlock)
            ]

    def list_date_range(self, owner_id: str, start: date, end: date) -> list[DateRangeBlock]:
        with self._lock:
            return [
                b.model_copy()
                for b in self._blocks.values()
                if b.owner_id == owner_id
                and isinstance(b, DateRangeBlock)
                and b.start_date <= end
                and b.end_date >= start
            ]

    def list_blocks(self, owner_id: str) -> list[AnyBlock]:
        with self._lock:
            return [b.model_copy() for b in self._blocks.values() if b.owner_id == owner_id]

    def add_block(self, block: AnyBlock) -> AnyBlock:
        stored = block.model_copy(update={"id": block.id or uuid.uuid4().hex})
        with self._lock:
            self._blocks[stored.id] = stored
        return stored.model_copy()

    def delete_block(self, owner_id: str, block_id: str) -> bool:
        with self._lock:
            block = self._blocks.get(block_id)
            if block is None or block.owner_id != owner_id:
                return False
            del self._blocks[block_id]
            return True

    # ------------------------------------------------------------------ #
    # BookingStore
    # ------------------------------------------------------------------ #

    def list_active(self, owner_id: str, start: date, end: date) -> list[Booking]:
        with self._lock:
            rows = [
                b.model_copy()
                for b in self._bookings.values()
                if b.owner_id == owner_id and b.is_active and start <= b.date <= end
            ]
        return sorted(rows, key=lambda b: (b.date, b.start_time))

    def get_booking(self, owner_id: str, booking_id: str) -> Optional[Booking]:
        with self._lock:
            booking = self._bookings.get(booking_id)
            if booking is None or booking.owner_id != owner_id:
                return None
            return booking.model_copy()

    def _slot_holder(self, booking: Booking) -> Optional[Booking]:
        for other in self._bookings.values():
            if (
                other.id != booking.id
                and other.owner_id == booking.owner_id
                and other.date == booking.date
                and other.start_time == booking.start_time
                and other.is_active
            ):
                return other
        return None

    def create_if_absent(self, booking: Booking) -> Booking:
        with self._lock:
            holder = self._slot_holder(booking)
            if holder is not None:
                logger.debug("Slot %s %s already held by %s", booking.date, booking.start_time, holder.id)
                raise ConcurrentBookingConflict()
            self._bookings[booking.id] = booking.model_copy()
        return booking

    def update_booking(self, owner_id: str, booking_id: str, changes: dict[str, Any]) -> Booking:
        with self._lock:
            current = self._bookings.get(booking_id)
            if current is None or current.owner_id != owner_id:
                raise NotFoundError(f"Booking {booking_id} not found.")
            updated = current.model_copy(update=changes)
            if updated.is_active and self._slot_holder(updated) is not None:
                raise ConcurrentBookingConflict()
            self._bookings[booking_id] = updated
            return updated.model_copy()

    def count_bookings(self, owner_id: str) -> int:
        with self._lock:
            return sum(1 for b in self._bookings.values() if b.owner_id == owner_id)

    def reset(self) -> None:
        """Clear all data. Used by test fixtures for isolation."""
        with self._lock:
            self._configs.clear()
            self._overrides.clear()
            self._blocks.clear()
            self._bookings.clear()
