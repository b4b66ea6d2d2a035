"""
Time source for the engine.

Services never call ``datetime.now()`` directly; they receive a Clock so
lead-time rules and cache expiry can be driven deterministically in tests.
"""

from datetime import date, datetime
from typing import Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    def now(self) -> datetime:
        """Current instant as an aware datetime in the local zone."""
        ...

    def today(self) -> date:
        """Current civil date in the local zone."""
        ...


class SystemClock:
    """Wall clock pinned to a single fixed local zone."""

    def __init__(self, tz_name: str) -> None:
        self.tz = ZoneInfo(tz_name)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()
