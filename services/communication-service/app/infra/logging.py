# services/communication-service/app/infra/logging.py
from __future__ import annotations

import logging
from contextvars import ContextVar, Token
from typing import Optional

NO_CORRELATION_ID = "-"

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default=NO_CORRELATION_ID)

# third-party loggers that are chatty at INFO
_QUIET = ("aio_pika", "aiormq", "httpx", "httpcore", "azure", "uvicorn.access")


def bind_correlation_id(value: Optional[str]) -> Token:
    """Tag every log line of the current request (task) with `value`."""
    return _correlation_id.set(value or NO_CORRELATION_ID)


def reset_correlation_id(token: Token) -> None:
    _correlation_id.reset(token)


def current_correlation_id() -> Optional[str]:
    value = _correlation_id.get()
    return None if value == NO_CORRELATION_ID else value


class CorrelationIdFilter(logging.Filter):
    """Adds `record.correlation_id` so handlers can format `cid=...`."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = _correlation_id.get()
        return True


def setup_logging(service_name: str = "communication-service", level: str = "INFO") -> None:
    """
    `asctime | level | logger | svc=<service> | cid=<correlation id> | message`
    on the root handler. Safe to call more than once.
    """
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO
    logging.basicConfig(
        level=resolved,
        format=(
            "%(asctime)s | %(levelname)s | %(name)s | "
            f"svc={service_name} | cid=%(correlation_id)s | %(message)s"
        ),
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, CorrelationIdFilter) for f in handler.filters):
            handler.addFilter(CorrelationIdFilter())

    for name in _QUIET:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(resolved)
