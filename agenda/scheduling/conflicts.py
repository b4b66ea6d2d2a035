"""
Conflict filtering: drop slots that hit a block or an active booking.
"""

from datetime import date
from typing import Iterable

from agenda.scheduling.slots import RawSlot
from agenda.schemas.booking_schema import Booking
from agenda.schemas.schedule_schema import DateRangeBlock, RecurringBlock
from agenda.utils import parse_time


def overlaps(start: int, end: int, other_start: int, other_end: int) -> bool:
    """Half-open interval overlap test."""
    return start < other_end and end > other_start


def _block_range(start_time: str, end_time: str):
    start = parse_time(start_time)
    end = parse_time(end_time)
    # Blocks with start >= end are malformed and never collide.
    if start is None or end is None or start >= end:
        return None
    return start, end


def collides_recurring(slot: RawSlot, weekday: int, blocks: Iterable[RecurringBlock]) -> bool:
    for block in blocks:
        if block.weekday != weekday:
            continue
        bounds = _block_range(block.start_time, block.end_time)
        if bounds and overlaps(slot.start, slot.end, *bounds):
            return True
    return False


def is_whole_day_blocked(day: date, blocks: Iterable[DateRangeBlock]) -> bool:
    return any(b.is_whole_day and b.covers(day) for b in blocks)


def collides_date_range(slot: RawSlot, day: date, blocks: Iterable[DateRangeBlock]) -> bool:
    for block in blocks:
        if not block.is_timed or not block.covers(day):
            continue
        bounds = _block_range(block.start_time, block.end_time)
        if bounds and overlaps(slot.start, slot.end, *bounds):
            return True
    return False


def day_has_blocks(day: date, weekday: int, recurring: Iterable[RecurringBlock], ranges: Iterable[DateRangeBlock]) -> bool:
    """True when any block touches the day, for UI hinting."""
    return any(b.weekday == weekday for b in recurring) or any(b.covers(day) for b in ranges)


def unblocked_slots(
    slots: list[RawSlot],
    day: date,
    weekday: int,
    recurring: list[RecurringBlock],
    ranges: list[DateRangeBlock],
) -> list[RawSlot]:
    """Slots left after applying blocks only; bookings are not considered."""
    if is_whole_day_blocked(day, ranges):
        return []
    return [
        s for s in slots
        if not collides_recurring(s, weekday, recurring)
        and not collides_date_range(s, day, ranges)
    ]


def free_slots(
    slots: list[RawSlot],
    day: date,
    weekday: int,
    recurring: list[RecurringBlock],
    ranges: list[DateRangeBlock],
    bookings: list[Booking],
) -> list[RawSlot]:
    """Slots not blocked and not held by a Pending/Confirmed booking on day.

    Bookings are slot-aligned, so a booking occupies exactly the slot that
    starts at its start minute.
    """
    if is_whole_day_blocked(day, ranges):
        return []
    occupied = {parse_time(b.start_time) for b in bookings if b.is_active and b.date == day}
    result = []
    for slot in slots:
        if slot.start in occupied:
            continue
        if collides_recurring(slot, weekday, recurring):
            continue
        if collides_date_range(slot, day, ranges):
            continue
        result.append(slot)
    return sorted(result, key=lambda s: s.start)
