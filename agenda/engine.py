"""
BookingEngine: wires stores, cache, clock and services into one object.

The HTTP layer and the CLI only talk to this facade. Pass a combined store
(MemoryStore or SqlStore) or individual collaborators; anything omitted
falls back to an in-memory default.
"""

import logging
from datetime import date
from typing import Optional

from agenda.cache import CacheStore, InMemoryCacheStore
from agenda.clock import Clock, SystemClock
from agenda.config import AppConfig, settings
from agenda.db import init_db, is_memory_url, make_engine, make_session_factory
from agenda.schemas.availability_schema import MonthAvailability, TimeSlot
from agenda.schemas.booking_schema import Booking, BookingRequest
from agenda.services.availability import AvailabilityService
from agenda.services.booking import BookingService
from agenda.services.idempotency import IdempotencyGuard, IdempotencyRecord
from agenda.services.schedule_admin import ScheduleAdmin
from agenda.stores.memory import MemoryStore
from agenda.stores.sql import SqlStore

logger = logging.getLogger(__name__)


class BookingEngine:
    def __init__(
        self,
        store=None,
        cache: Optional[CacheStore] = None,
        clock: Optional[Clock] = None,
        config: AppConfig = settings,
    ) -> None:
        self.config = config
        self.clock = clock or SystemClock(config.engine.timezone)
        self.store = store if store is not None else MemoryStore()
        self.cache = cache if cache is not None else InMemoryCacheStore(self.clock)

        self.availability = AvailabilityService(
            configs=self.store,
            overrides=self.store,
            blocks=self.store,
            bookings=self.store,
            cache=self.cache,
            clock=self.clock,
            month_ttl_seconds=config.engine.month_cache_ttl_seconds,
        )
        self.idempotency = IdempotencyGuard(
            self.cache, self.clock, ttl_seconds=config.engine.idempotency_ttl_seconds
        )
        self.bookings = BookingService(
            availability=self.availability,
            configs=self.store,
            bookings=self.store,
            idempotency=self.idempotency,
            clock=self.clock,
            limits=config.engine,
        )
        self.admin = ScheduleAdmin(
            availability=self.availability,
            configs=self.store,
            overrides=self.store,
            blocks=self.store,
        )

    @classmethod
    def from_database(cls, url: Optional[str] = None, config: AppConfig = settings, **kwargs) -> "BookingEngine":
        """Engine over a SQLAlchemy store; creates missing tables."""
        url = url or config.database.url
        db_engine = make_engine(url, config.database.echo)
        init_db(db_engine)
        logger.info("Using SQL store at %s", db_engine.url.render_as_string(hide_password=True))
        store = SqlStore(make_session_factory(db_engine), serialize_writes=is_memory_url(url))
        return cls(store=store, config=config, **kwargs)

    # Public operations

    def get_available_days(self, owner_id: str, start: date, end: date) -> list[date]:
        return self.availability.get_available_days(owner_id, start, end)

    def get_month_availability(self, owner_id: str, year: int, month: int) -> MonthAvailability:
        return self.availability.get_month_availability(owner_id, year, month)

    def get_available_slots(self, owner_id: str, day: date) -> list[TimeSlot]:
        return self.availability.get_available_slots(owner_id, day)

    def get_total_slots(self, owner_id: str, day: date) -> int:
        return self.availability.get_total_slots(owner_id, day)

    def create_booking(self, owner_id: str, request: BookingRequest) -> Booking:
        return self.bookings.create_booking(owner_id, request)

    def create_public_booking(
        self, owner_id: str, request: BookingRequest, idempotency_key: Optional[str] = None
    ) -> IdempotencyRecord:
        return self.bookings.create_public_booking(owner_id, request, idempotency_key)

    def invalidate_owner_cache(self, owner_id: str) -> None:
        self.availability.invalidate_owner_cache(owner_id)
