from agenda.services.availability import AvailabilityService, month_cache_key, month_cache_prefix
from agenda.services.booking import BookingService, clean_request
from agenda.services.idempotency import IdempotencyGuard, IdempotencyRecord
from agenda.services.schedule_admin import ScheduleAdmin

__all__ = [
    "AvailabilityService",
    "BookingService",
    "IdempotencyGuard",
    "IdempotencyRecord",
    "ScheduleAdmin",
    "clean_request",
    "month_cache_key",
    "month_cache_prefix",
]
