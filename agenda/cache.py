"""
Key/value cache with per-entry TTL and prefix invalidation.

The month availability aggregator and the idempotency guard both sit on a
CacheStore. The in-process implementation below is enough for a single
instance; a multi-instance deployment swaps in a shared store with the same
interface.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from agenda.clock import Clock

logger = logging.getLogger(__name__)


def owner_scope(owner_id: str) -> str:
    """Key segment for one owner, length-prefixed so ids containing ':' stay distinct.

    >>> owner_scope("a:b")
    '3:a:b:'
    """
    return f"{len(owner_id)}:{owner_id}:"


class CacheStore(Protocol):
    def get(self, key: str) -> Optional[Any]:
        """Return the live value for key, or None on miss or expiry."""
        ...

    def set(self, key: str, value: Any, ttl_seconds: float) -> None: ...

    def delete(self, key: str) -> None: ...

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every entry whose key starts with prefix. Returns the count."""
        ...

    def purge_expired(self) -> int: ...


@dataclass
class _Entry:
    value: Any
    expires_at: float


class InMemoryCacheStore:
    """Lock-protected dict cache. Expiry is measured with the injected clock."""

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def _now(self) -> float:
        return self._clock.now().timestamp()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._now() > entry.expires_at:
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        with self._lock:
            self._entries[key] = _Entry(value=value, expires_at=self._now() + ttl_seconds)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [k for k in self._entries if k.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
        if doomed:
            logger.debug("Invalidated %d cache entries under '%s'", len(doomed), prefix)
        return len(doomed)

    def purge_expired(self) -> int:
        now = self._now()
        with self._lock:
            doomed = [k for k, e in self._entries.items() if now > e.expires_at]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
