"""
Tables backing the SQL store. Dates are stored as YYYY-MM-DD and times as
HH:mm strings, the same wire format the engine validates at the boundary.
"""
from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text, UniqueConstraint, text
from sqlalchemy.sql import func

from agenda.db.base import Base

ACTIVE_STATUS_SQL = "status IN ('PENDING', 'CONFIRMED')"


class ScheduleConfigRow(Base):
    __tablename__ = "schedule_configs"

    owner_id = Column(String(64), primary_key=True)
    opening_time = Column(String(5), nullable=False)
    closing_time = Column(String(5), nullable=False)
    slot_duration_minutes = Column(Integer, nullable=False)
    buffer_minutes = Column(Integer, nullable=False, default=0)
    lead_days = Column(Integer, nullable=False, default=0)
    horizon_days = Column(Integer, nullable=False, default=30)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class WeeklyOverrideRow(Base):
    __tablename__ = "weekly_overrides"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(String(64), nullable=False, index=True)
    weekday = Column(Integer, nullable=False)  # 1 = Monday .. 6 = Saturday
    active = Column(Boolean, nullable=False, default=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)

    __table_args__ = (UniqueConstraint("owner_id", "weekday", name="uq_weekly_overrides_owner_weekday"),)


class BlockRow(Base):
    __tablename__ = "blocks"

    id = Column(String(32), primary_key=True)
    owner_id = Column(String(64), nullable=False, index=True)
    kind = Column(String(16), nullable=False)  # RECURRING | DATE_RANGE
    weekday = Column(Integer, nullable=True)  # 0 = Sunday, recurring only
    start_date = Column(String(10), nullable=True)
    end_date = Column(String(10), nullable=True)
    start_time = Column(String(5), nullable=True)
    end_time = Column(String(5), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class BookingRow(Base):
    __tablename__ = "bookings"

    id = Column(String(32), primary_key=True)
    owner_id = Column(String(64), nullable=False)
    customer_name = Column(String(200), nullable=False)
    customer_phone = Column(String(32), nullable=False)
    note = Column(Text, nullable=True)
    date = Column(String(10), nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    status = Column(String(16), nullable=False)  # PENDING | CONFIRMED | CANCELLED
    created_at = Column(DateTime(timezone=True), nullable=False)
    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    no_show = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_bookings_owner_date", "owner_id", "date"),
        # At most one Pending/Confirmed booking per (owner, date, start).
        Index(
            "uq_bookings_active_slot",
            "owner_id",
            "date",
            "start_time",
            unique=True,
            sqlite_where=text(ACTIVE_STATUS_SQL),
            postgresql_where=text(ACTIVE_STATUS_SQL),
        ),
    )
