"""
Booking creation and owner-driven status changes.

Validation runs in a fixed order (name, phone, note, date, time, schedule,
lead/horizon window, free slot) so callers always see the first problem.
The free-slot check is recomputed from the store and only gives a fast
rejection; the store's check-then-insert transaction is what guarantees a
slot cannot be claimed twice.
"""

import uuid
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional
from urllib.parse import quote

from agenda.clock import Clock
from agenda.config import EngineConfig, settings
from agenda.errors import (
    ConcurrentBookingConflict,
    NotConfiguredError,
    NotFoundError,
    SlotUnavailableError,
    ValidationError,
)
from agenda.logging_context import get_request_logger
from agenda.schemas.booking_schema import (
    Booking,
    BookingRequest,
    BookingResponse,
    BookingStatus,
    BookingSummary,
)
from agenda.services.availability import AvailabilityService
from agenda.services.idempotency import IdempotencyGuard, IdempotencyRecord
from agenda.stores.base import BookingStore, ConfigStore
from agenda.utils import format_time, normalize_phone, parse_date, parse_time, strip_tags

logger = get_request_logger(__name__)

MIN_NAME_LENGTH = 2
STATUS_CREATED = 201
MSG_BOOKING_REQUESTED = "Booking requested successfully!"


@dataclass(frozen=True)
class CleanRequest:
    """A booking request that passed boundary validation."""

    customer_name: str
    customer_phone: str
    note: Optional[str]
    day: date
    start_minutes: int


def clean_request(request: BookingRequest, limits: EngineConfig = settings.engine) -> CleanRequest:
    """Validate and normalise a raw request.

    Raises:
        ValidationError: on the first malformed field.
    """
    name = (request.customer_name or "").strip()[: limits.max_name_length]
    if len(name) < MIN_NAME_LENGTH:
        raise ValidationError(f"Name is required (at least {MIN_NAME_LENGTH} characters).")

    phone = normalize_phone(request.customer_phone)
    if len(phone) < limits.min_phone_digits:
        raise ValidationError(f"Phone is required (at least {limits.min_phone_digits} digits).")

    raw_note = (request.note or "").strip()
    if len(raw_note) > limits.max_note_length:
        raise ValidationError(f"Note must be at most {limits.max_note_length} characters.")
    note = strip_tags(raw_note).strip() or None

    day = parse_date(request.date)
    if day is None:
        raise ValidationError("Invalid date. Use YYYY-MM-DD.")

    start = parse_time(request.start_time)
    if start is None:
        raise ValidationError("Invalid time. Use HH:mm.")

    return CleanRequest(name, phone, note, day, start)


class BookingService:
    """Write side of the engine for bookings."""

    def __init__(
        self,
        availability: AvailabilityService,
        configs: ConfigStore,
        bookings: BookingStore,
        idempotency: IdempotencyGuard,
        clock: Clock,
        limits: EngineConfig = settings.engine,
    ) -> None:
        self._availability = availability
        self._configs = configs
        self._bookings = bookings
        self._idempotency = idempotency
        self._clock = clock
        self._limits = limits

    # ------------------------------------------------------------------ #
    # Creation
    # ------------------------------------------------------------------ #

    def create_booking(self, owner_id: str, request: BookingRequest) -> Booking:
        """Validate and atomically create a Pending booking.

        Raises:
            ValidationError, NotConfiguredError, OutOfWindowError,
            SlotUnavailableError, ConcurrentBookingConflict.
        """
        clean = clean_request(request, self._limits)

        config = self._configs.get_config(owner_id)
        if config is None:
            raise NotConfiguredError()

        self._availability.booking_window(config).ensure_contains(clean.day)

        start_label = format_time(clean.start_minutes)
        free = self._availability.get_available_slots(owner_id, clean.day)
        if not any(slot.start == start_label for slot in free):
            logger.info("Slot %s %s unavailable for owner %s", clean.day, start_label, owner_id)
            raise SlotUnavailableError()

        booking = Booking(
            id=uuid.uuid4().hex,
            owner_id=owner_id,
            customer_name=clean.customer_name,
            customer_phone=clean.customer_phone,
            note=clean.note,
            date=clean.day,
            start_time=start_label,
            end_time=format_time(clean.start_minutes + config.slot_duration_minutes),
            status=BookingStatus.PENDING,
            created_at=self._clock.now(),
        )
        try:
            self._bookings.create_if_absent(booking)
        except ConcurrentBookingConflict:
            logger.warning(
                "Booking race lost for owner %s at %s %s", owner_id, clean.day, start_label
            )
            raise

        self._availability.invalidate_owner_cache(owner_id)
        logger.info("Booking created: %s for owner %s on %s at %s", booking.id, owner_id, booking.date, start_label)
        return booking

    def create_manual_booking(self, owner_id: str, request: BookingRequest) -> Booking:
        """Internal panel booking: same rules as the public page, no idempotency."""
        return self.create_booking(owner_id, request)

    def create_public_booking(
        self,
        owner_id: str,
        request: BookingRequest,
        idempotency_key: Optional[str] = None,
    ) -> IdempotencyRecord:
        """Create a booking for the public page and return the HTTP-ready receipt.

        A repeated idempotency key within its TTL returns the first receipt
        without touching the store.
        """

        def _book() -> tuple[int, dict[str, Any]]:
            booking = self.create_booking(owner_id, request)
            return STATUS_CREATED, self.build_response(booking).model_dump(mode="json")

        record, _ = self._idempotency.run(owner_id, idempotency_key, _book)
        return record

    def build_response(self, booking: Booking) -> BookingResponse:
        message = (
            f"Hello {booking.customer_name}, your booking was requested for "
            f"{booking.date.isoformat()} at {booking.start_time}. Please wait for confirmation."
        )
        whatsapp_url = (
            f"https://wa.me/{self._limits.whatsapp_country_code}{booking.customer_phone}"
            f"?text={quote(message)}"
        )
        return BookingResponse(
            booking_id=booking.id,
            status=booking.status,
            message=MSG_BOOKING_REQUESTED,
            booking=BookingSummary(
                id=booking.id,
                date=booking.date,
                start=booking.start_time,
                end=booking.end_time,
                status=booking.status,
            ),
            whatsapp_url=whatsapp_url,
        )

    # ------------------------------------------------------------------ #
    # Owner-driven transitions
    # ------------------------------------------------------------------ #

    def _apply(self, owner_id: str, booking_id: str, changes: dict[str, Any]) -> Booking:
        try:
            updated = self._bookings.update_booking(owner_id, booking_id, changes)
        except ConcurrentBookingConflict:
            logger.warning("Re-activating booking %s would double-book its slot", booking_id)
            raise
        self._availability.invalidate_owner_cache(owner_id)
        return updated

    def get_booking(self, owner_id: str, booking_id: str) -> Booking:
        booking = self._bookings.get_booking(owner_id, booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found.")
        return booking

    def set_status(self, owner_id: str, booking_id: str, status: BookingStatus) -> Booking:
        updated = self._apply(owner_id, booking_id, {"status": status})
        logger.info("Booking %s set to %s", booking_id, status.value)
        return updated

    def check_in(self, owner_id: str, booking_id: str) -> Booking:
        return self._apply(owner_id, booking_id, {"checked_in_at": self._clock.now(), "no_show": False})

    def mark_no_show(self, owner_id: str, booking_id: str) -> Booking:
        return self._apply(owner_id, booking_id, {"no_show": True, "checked_in_at": None})
