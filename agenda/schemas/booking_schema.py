"""Booking data models."""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class BookingStatus(str, Enum):
    """Lifecycle status of a booking. Pending and Confirmed occupy a slot."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


ACTIVE_STATUSES: frozenset[BookingStatus] = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED}
)


class BookingRequest(BaseModel):
    """Raw booking request as received at the boundary; validated by the service."""
    date: str
    start_time: str
    customer_name: str
    customer_phone: str
    note: Optional[str] = None


class Booking(BaseModel):
    """Stored booking."""
    id: str
    owner_id: str
    customer_name: str
    customer_phone: str
    note: Optional[str] = None
    date: date
    start_time: str
    end_time: str
    status: BookingStatus = BookingStatus.PENDING
    created_at: datetime
    checked_in_at: Optional[datetime] = None
    no_show: bool = False

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


class BookingSummary(BaseModel):
    """Public view of a booking returned in receipts."""
    id: str
    date: date
    start: str
    end: str
    status: BookingStatus


class BookingResponse(BaseModel):
    """Body returned to the public booking page after a successful request."""
    ok: bool = True
    booking_id: str
    status: BookingStatus
    message: str
    booking: BookingSummary
    whatsapp_url: Optional[str] = None


class StatusUpdate(BaseModel):
    """Owner-driven status change."""
    status: BookingStatus
