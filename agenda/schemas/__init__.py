from agenda.schemas.availability_schema import (
    DayAvailability,
    DayStatus,
    MonthAvailability,
    PublicScheduleSummary,
    TimeSlot,
    UnavailableReason,
)
from agenda.schemas.booking_schema import (
    ACTIVE_STATUSES,
    Booking,
    BookingRequest,
    BookingResponse,
    BookingStatus,
    BookingSummary,
    StatusUpdate,
)
from agenda.schemas.schedule_schema import (
    Block,
    DateRangeBlock,
    RecurringBlock,
    ScheduleConfig,
    WeeklyOverride,
)

__all__ = [
    "ACTIVE_STATUSES",
    "Block",
    "Booking",
    "BookingRequest",
    "BookingResponse",
    "BookingStatus",
    "BookingSummary",
    "DateRangeBlock",
    "DayAvailability",
    "DayStatus",
    "MonthAvailability",
    "PublicScheduleSummary",
    "RecurringBlock",
    "ScheduleConfig",
    "StatusUpdate",
    "TimeSlot",
    "UnavailableReason",
    "WeeklyOverride",
]
