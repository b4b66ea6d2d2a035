"""
Idempotency guard for the public booking endpoint.

A client may send the same request twice (a retry after a timeout, a double
tap). When it supplies a token, the first successful response is recorded
under (owner, token) and replayed verbatim for the next 60 seconds instead
of running the booking again. Two different customers racing for one slot
are not this module's concern; the store transaction settles that.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from agenda.cache import CacheStore, owner_scope
from agenda.clock import Clock
from agenda.config import settings

logger = logging.getLogger(__name__)

IDEMPOTENCY_PREFIX = "agenda:idem:"


@dataclass(frozen=True)
class IdempotencyRecord:
    status_code: int
    body: dict[str, Any]
    created_at: float


class IdempotencyGuard:
    def __init__(
        self,
        cache: CacheStore,
        clock: Clock,
        ttl_seconds: float = settings.engine.idempotency_ttl_seconds,
    ) -> None:
        self._cache = cache
        self._clock = clock
        self._ttl = ttl_seconds

    @staticmethod
    def key(owner_id: str, token: str) -> str:
        return f"{IDEMPOTENCY_PREFIX}{owner_scope(owner_id)}{token}"

    def lookup(self, owner_id: str, token: str) -> Optional[IdempotencyRecord]:
        """Return the live record for (owner, token), purging stale ones first."""
        self._cache.purge_expired()
        record = self._cache.get(self.key(owner_id, token))
        if record is None:
            return None
        if self._clock.now().timestamp() - record.created_at > self._ttl:
            self._cache.delete(self.key(owner_id, token))
            return None
        return record

    def remember(self, owner_id: str, token: str, status_code: int, body: dict[str, Any]) -> IdempotencyRecord:
        record = IdempotencyRecord(
            status_code=status_code,
            body=body,
            created_at=self._clock.now().timestamp(),
        )
        self._cache.set(self.key(owner_id, token), record, self._ttl)
        return record

    def run(
        self,
        owner_id: str,
        token: Optional[str],
        action: Callable[[], tuple[int, dict[str, Any]]],
    ) -> tuple[IdempotencyRecord, bool]:
        """Execute action once per live token.

        Returns (record, replayed). Errors raised by action propagate and
        nothing is recorded, so a failed attempt can be retried.
        """
        if token:
            cached = self.lookup(owner_id, token)
            if cached is not None:
                logger.info("Replaying idempotent response for owner %s", owner_id)
                return cached, True

        status_code, body = action()
        if token:
            return self.remember(owner_id, token, status_code, body), False
        return IdempotencyRecord(status_code, body, self._clock.now().timestamp()), False
