"""
Raw slot generation.

Pure and deterministic: every input is explicit, times are minutes since
midnight and slots are half-open intervals [start, end).
"""

from dataclasses import dataclass

from agenda.utils import format_time


@dataclass(frozen=True)
class RawSlot:
    start: int
    end: int

    @property
    def label(self) -> str:
        return format_time(self.start)


def generate_slots(window_start: int, window_end: int, duration: int, buffer: int) -> list[RawSlot]:
    """Lay slots of ``duration`` minutes from window_start, ``buffer`` minutes apart.

    A slot is emitted while it still ends at or before window_end, so a
    window shorter than one slot yields nothing.
    """
    if duration < 1:
        raise ValueError(f"duration must be >= 1 minute, got {duration}")
    if buffer < 0:
        raise ValueError(f"buffer must be >= 0 minutes, got {buffer}")

    slots: list[RawSlot] = []
    cursor = window_start
    while cursor + duration <= window_end:
        slots.append(RawSlot(cursor, cursor + duration))
        cursor += duration + buffer
    return slots
