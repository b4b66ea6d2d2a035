"""Request and owner context for log records.

Every record emitted while a request is being served carries the request
id (from ``X-Request-ID`` or generated) and the schedule owner the request
targets, so one booking attempt can be followed from the HTTP layer through
validation, the store transaction and cache invalidation.

Usage:
    from agenda.logging_context import get_request_logger, request_context

    logger = get_request_logger(__name__)
    with request_context("REQ-abc123", owner_id="owner-1"):
        logger.info("Booking created")  # [REQ-abc123 owner-1] Booking created
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

NO_REQUEST = "-"

_request_id: ContextVar[str] = ContextVar("request_id", default=NO_REQUEST)
_owner_id: ContextVar[str] = ContextVar("owner_id", default=NO_REQUEST)

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s [%(request_id)s %(owner_id)s]: %(message)s"


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)


def get_request_id() -> str:
    return _request_id.get()


def set_owner_id(owner_id: str) -> None:
    _owner_id.set(owner_id)


def get_owner_id() -> str:
    return _owner_id.get()


@contextmanager
def request_context(request_id: str, owner_id: Optional[str] = None) -> Iterator[None]:
    """Bind ids for the duration of the block and restore the previous ones."""
    request_token = _request_id.set(request_id)
    owner_token = _owner_id.set(owner_id) if owner_id is not None else None
    try:
        yield
    finally:
        if owner_token is not None:
            _owner_id.reset(owner_token)
        _request_id.reset(request_token)


class RequestContextFilter(logging.Filter):
    """Adds ``request_id`` and ``owner_id`` to every record it sees."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()  # type: ignore[attr-defined]
        record.owner_id = _owner_id.get()  # type: ignore[attr-defined]
        return True


def install_context_filter(logger: Optional[logging.Logger] = None) -> None:
    """Attach the filter to every handler of logger (root by default).

    Handler-level filters also cover records from third-party loggers, which
    LOG_FORMAT needs since it references the context fields.
    """
    target = logger or logging.getLogger()
    for handler in target.handlers:
        if not any(isinstance(f, RequestContextFilter) for f in handler.filters):
            handler.addFilter(RequestContextFilter())


def get_request_logger(name: str) -> logging.Logger:
    """Return a module logger whose records always carry the context fields."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, RequestContextFilter) for f in logger.filters):
        logger.addFilter(RequestContextFilter())
    return logger
