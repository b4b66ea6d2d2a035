"""
SQLAlchemy-backed store.

The partial unique index ``uq_bookings_active_slot`` is the authoritative
double-booking guard: ``create_if_absent`` checks for a holder and inserts in
one transaction, and a racing insert that slips past the check is rejected
by the index and surfaced as ConcurrentBookingConflict.
"""
import logging
import threading
import uuid
from contextlib import nullcontext
from datetime import date
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from agenda.db.models import BlockRow, BookingRow, ScheduleConfigRow, WeeklyOverrideRow
from agenda.errors import ConcurrentBookingConflict, NotFoundError
from agenda.schemas.booking_schema import ACTIVE_STATUSES, Booking, BookingStatus
from agenda.schemas.schedule_schema import DateRangeBlock, RecurringBlock, ScheduleConfig, WeeklyOverride
from agenda.stores.base import AnyBlock

logger = logging.getLogger(__name__)

_ACTIVE = [s.value for s in ACTIVE_STATUSES]


def _config_from_row(row: ScheduleConfigRow) -> ScheduleConfig:
    return ScheduleConfig(
        owner_id=row.owner_id,
        opening_time=row.opening_time,
        closing_time=row.closing_time,
        slot_duration_minutes=row.slot_duration_minutes,
        buffer_minutes=row.buffer_minutes,
        lead_days=row.lead_days,
        horizon_days=row.horizon_days,
    )


def _override_from_row(row: WeeklyOverrideRow) -> WeeklyOverride:
    return WeeklyOverride(
        owner_id=row.owner_id,
        weekday=row.weekday,
        active=row.active,
        start_time=row.start_time,
        end_time=row.end_time,
    )


def _block_from_row(row: BlockRow) -> AnyBlock:
    if row.kind == "RECURRING":
        return RecurringBlock(
            id=row.id,
            owner_id=row.owner_id,
            weekday=row.weekday,
            start_time=row.start_time,
            end_time=row.end_time,
        )
    return DateRangeBlock(
        id=row.id,
        owner_id=row.owner_id,
        start_date=date.fromisoformat(row.start_date),
        end_date=date.fromisoformat(row.end_date),
        start_time=row.start_time,
        end_time=row.end_time,
    )


def _booking_from_row(row: BookingRow) -> Booking:
    return Booking(
        id=row.id,
        owner_id=row.owner_id,
        customer_name=row.customer_name,
        customer_phone=row.customer_phone,
        note=row.note,
        date=date.fromisoformat(row.date),
        start_time=row.start_time,
        end_time=row.end_time,
        status=BookingStatus(row.status),
        created_at=row.created_at,
        checked_in_at=row.checked_in_at,
        no_show=bool(row.no_show),
    )


def _active_holder(db: Session, owner_id: str, day: str, start_time: str, exclude_id: Optional[str] = None):
    query = db.query(BookingRow).filter(
        BookingRow.owner_id == owner_id,
        BookingRow.date == day,
        BookingRow.start_time == start_time,
        BookingRow.status.in_(_ACTIVE),
    )
    if exclude_id is not None:
        query = query.filter(BookingRow.id != exclude_id)
    return query.with_for_update().first()


class SqlStore:
    """ConfigStore, OverrideStore, BlockStore and BookingStore over one session factory."""

    def __init__(self, session_factory: sessionmaker, serialize_writes: bool = False) -> None:
        self._session_factory = session_factory
        # Needed when every session shares one connection (in-memory SQLite).
        self._write_lock = threading.Lock() if serialize_writes else nullcontext()

    # ------------------------------------------------------------------ #
    # ConfigStore
    # ------------------------------------------------------------------ #

    def get_config(self, owner_id: str) -> Optional[ScheduleConfig]:
        with self._session_factory() as db:
            row = db.get(ScheduleConfigRow, owner_id)
            return _config_from_row(row) if row else None

    def upsert_config(self, config: ScheduleConfig) -> ScheduleConfig:
        with self._session_factory() as db:
            row = db.get(ScheduleConfigRow, config.owner_id)
            if row is None:
                row = ScheduleConfigRow(owner_id=config.owner_id)
                db.add(row)
            row.opening_time = config.opening_time
            row.closing_time = config.closing_time
            row.slot_duration_minutes = config.slot_duration_minutes
            row.buffer_minutes = config.buffer_minutes
            row.lead_days = config.lead_days
            row.horizon_days = config.horizon_days
            db.commit()
        return config

    # ------------------------------------------------------------------ #
    # OverrideStore
    # ------------------------------------------------------------------ #

    def list_for_owner(self, owner_id: str) -> list[WeeklyOverride]:
        with self._session_factory() as db:
            rows = (
                db.query(WeeklyOverrideRow)
                .filter(WeeklyOverrideRow.owner_id == owner_id)
                .order_by(WeeklyOverrideRow.weekday)
                .all()
            )
            return [_override_from_row(r) for r in rows]

    def replace_overrides(self, owner_id: str, overrides: list[WeeklyOverride]) -> list[WeeklyOverride]:
        with self._session_factory() as db:
            for override in overrides:
                row = (
                    db.query(WeeklyOverrideRow)
                    .filter(
                        WeeklyOverrideRow.owner_id == owner_id,
                        WeeklyOverrideRow.weekday == override.weekday,
                    )
                    .first()
                )
                if row is None:
                    row = WeeklyOverrideRow(owner_id=owner_id, weekday=override.weekday)
                    db.add(row)
                row.active = override.active
                row.start_time = override.start_time
                row.end_time = override.end_time
            db.commit()
        return self.list_for_owner(owner_id)

    # ------------------------------------------------------------------ #
    # BlockStore
    # ------------------------------------------------------------------ #

    def list_recurring(self, owner_id: str) -> list[RecurringBlock]:
        with self._session_factory() as db:
            rows = (
                db.query(BlockRow)
                .filter(BlockRow.owner_id == owner_id, BlockRow.kind == "RECURRING")
                .all()
            )
            return [_block_from_row(r) for r in rows]

    def list_date_range(self, owner_id: str, start: date, end: date) -> list[DateRangeBlock]:
        with self._session_factory() as db:
            rows = (
                db.query(BlockRow)
                .filter(
                    BlockRow.owner_id == owner_id,
                    BlockRow.kind == "DATE_RANGE",
                    BlockRow.start_date <= end.isoformat(),
                    BlockRow.end_date >= start.isoformat(),
                )
                .all()
            )
            return [_block_from_row(r) for r in rows]

    def list_blocks(self, owner_id: str) -> list[AnyBlock]:
        with self._session_factory() as db:
            rows = (
                db.query(BlockRow)
                .filter(BlockRow.owner_id == owner_id)
                .order_by(BlockRow.created_at.desc())
                .all()
            )
            return [_block_from_row(r) for r in rows]

    def add_block(self, block: AnyBlock) -> AnyBlock:
        block_id = block.id or uuid.uuid4().hex
        row = BlockRow(
            id=block_id,
            owner_id=block.owner_id,
            kind=block.kind,
            start_time=block.start_time,
            end_time=block.end_time,
        )
        if isinstance(block, RecurringBlock):
            row.weekday = block.weekday
        else:
            row.start_date = block.start_date.isoformat()
            row.end_date = block.end_date.isoformat()
        with self._session_factory() as db:
            db.add(row)
            db.commit()
        return block.model_copy(update={"id": block_id})

    def delete_block(self, owner_id: str, block_id: str) -> bool:
        with self._session_factory() as db:
            row = db.get(BlockRow, block_id)
            if row is None or row.owner_id != owner_id:
                return False
            db.delete(row)
            db.commit()
            return True

    # ------------------------------------------------------------------ #
    # BookingStore
    # ------------------------------------------------------------------ #

    def list_active(self, owner_id: str, start: date, end: date) -> list[Booking]:
        with self._session_factory() as db:
            rows = (
                db.query(BookingRow)
                .filter(
                    BookingRow.owner_id == owner_id,
                    BookingRow.date >= start.isoformat(),
                    BookingRow.date <= end.isoformat(),
                    BookingRow.status.in_(_ACTIVE),
                )
                .order_by(BookingRow.date, BookingRow.start_time)
                .all()
            )
            return [_booking_from_row(r) for r in rows]

    def get_booking(self, owner_id: str, booking_id: str) -> Optional[Booking]:
        with self._session_factory() as db:
            row = db.get(BookingRow, booking_id)
            if row is None or row.owner_id != owner_id:
                return None
            return _booking_from_row(row)

    def create_if_absent(self, booking: Booking) -> Booking:
        with self._write_lock, self._session_factory() as db:
            try:
                if _active_holder(db, booking.owner_id, booking.date.isoformat(), booking.start_time):
                    raise ConcurrentBookingConflict()
                db.add(
                    BookingRow(
                        id=booking.id,
                        owner_id=booking.owner_id,
                        customer_name=booking.customer_name,
                        customer_phone=booking.customer_phone,
                        note=booking.note,
                        date=booking.date.isoformat(),
                        start_time=booking.start_time,
                        end_time=booking.end_time,
                        status=booking.status.value,
                        created_at=booking.created_at,
                        checked_in_at=booking.checked_in_at,
                        no_show=booking.no_show,
                    )
                )
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.debug("Unique index rejected booking %s at %s %s", booking.id, booking.date, booking.start_time)
                raise ConcurrentBookingConflict() from None
        return booking

    def update_booking(self, owner_id: str, booking_id: str, changes: dict[str, Any]) -> Booking:
        with self._write_lock, self._session_factory() as db:
            row = db.get(BookingRow, booking_id)
            if row is None or row.owner_id != owner_id:
                raise NotFoundError(f"Booking {booking_id} not found.")
            for key, value in changes.items():
                if isinstance(value, BookingStatus):
                    value = value.value
                elif isinstance(value, date) and key == "date":
                    value = value.isoformat()
                setattr(row, key, value)
            try:
                if row.status in _ACTIVE and _active_holder(db, owner_id, row.date, row.start_time, exclude_id=row.id):
                    raise ConcurrentBookingConflict()
                db.commit()
            except IntegrityError:
                db.rollback()
                raise ConcurrentBookingConflict() from None
            return _booking_from_row(row)
