from agenda.scheduling.conflicts import free_slots, overlaps, unblocked_slots
from agenda.scheduling.slots import RawSlot, generate_slots
from agenda.scheduling.window import BookingWindow, booking_window, resolve_window

__all__ = [
    "RawSlot",
    "generate_slots",
    "resolve_window",
    "BookingWindow",
    "booking_window",
    "free_slots",
    "unblocked_slots",
    "overlaps",
]
