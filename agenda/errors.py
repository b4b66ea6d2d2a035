"""
Expected, recoverable outcomes of availability and booking requests.

Each error carries the HTTP status it maps to and a short machine code so
routes stay thin. Anything that is not a BookingEngineError is an internal
fault and is reported to callers as a generic failure.
"""

from __future__ import annotations

from typing import Any, Optional

# ---------------------------------------------------------------------------
# User-facing messages
# ---------------------------------------------------------------------------

MSG_NOT_CONFIGURED = "Schedule is not available."
MSG_SLOT_UNAVAILABLE = "This time slot is no longer available."
MSG_OUT_OF_HORIZON = "Date is beyond the booking limit."
MSG_INTERNAL_ERROR = "Internal server error"

STATUS_BAD_REQUEST = 400
STATUS_NOT_FOUND = 404
STATUS_CONFLICT = 409
STATUS_INTERNAL_ERROR = 500


class BookingEngineError(Exception):
    """Base class for every structured error returned to callers."""

    status_code: int = STATUS_BAD_REQUEST
    code: str = "BOOKING_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "code": self.code, "statusCode": self.status_code}


class ValidationError(BookingEngineError):
    """Malformed name, phone, note, date or time."""

    code = "VALIDATION_ERROR"


class NotConfiguredError(BookingEngineError):
    """The owner has no ScheduleConfig yet."""

    code = "NOT_CONFIGURED"

    def __init__(self, message: str = MSG_NOT_CONFIGURED) -> None:
        super().__init__(message)


class OutOfWindowError(BookingEngineError):
    """Requested date is before the first or after the last bookable date."""

    code = "OUT_OF_WINDOW"

    def __init__(self, reason: str, lead_days: int, message: Optional[str] = None) -> None:
        if message is None:
            if reason == "OUT_OF_LEAD_TIME":
                message = f"Bookings require at least {lead_days} days of notice."
            else:
                message = MSG_OUT_OF_HORIZON
        super().__init__(message)
        self.reason = reason
        self.lead_days = lead_days

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["reason"] = self.reason
        payload["leadDays"] = self.lead_days
        return payload


class SlotUnavailableError(BookingEngineError):
    """Requested start is blocked or already taken."""

    status_code = STATUS_CONFLICT
    code = "SLOT_UNAVAILABLE"

    def __init__(self, message: str = MSG_SLOT_UNAVAILABLE) -> None:
        super().__init__(message)


class ConcurrentBookingConflict(SlotUnavailableError):
    """Another booking claimed the same slot inside the store transaction.

    Callers see the same status and message as SlotUnavailableError; the
    distinct type only matters for diagnostics.
    """


class NotFoundError(BookingEngineError):
    """Booking or block does not exist for this owner."""

    status_code = STATUS_NOT_FOUND
    code = "NOT_FOUND"
