"""Structured JSON logging with per-request context."""

import logging
import sys
from contextvars import ContextVar, Token
from typing import Any

from pythonjsonlogger import jsonlogger

from storefront.core.config import settings

# One mutable dict per request; tasks spawned for the request share it
_log_context: ContextVar[dict[str, Any] | None] = ContextVar("storefront_log_context", default=None)


def bind_log_context(**fields: Any) -> Token:
    """Start a fresh logging context for the current request."""
    return _log_context.set(dict(fields))


def reset_log_context(token: Token) -> None:
    _log_context.reset(token)


def update_log_context(**fields: Any) -> None:
    """Add fields to the current request's context. No-op outside a request."""
    context = _log_context.get()
    if context is not None:
        context.update(fields)


def get_log_context() -> dict[str, Any]:
    return dict(_log_context.get() or {})


class LogContextFilter(logging.Filter):
    """Stamp request context fields onto every record emitted during a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in (_log_context.get() or {}).items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class StorefrontJsonFormatter(jsonlogger.JsonFormatter):
    """JSON lines with a fixed envelope: timestamp, level, logger, location, message."""

    def add_fields(self, log_record: dict[str, Any], record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["location"] = f"{record.module}.{record.funcName}"

        log_record.pop("asctime", None)


def setup_logging(level: str | None = None) -> None:
    """Route all logging through one stdout JSON handler."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        StorefrontJsonFormatter("%(timestamp)s %(level)s %(logger)s %(message)s", datefmt="%Y-%m-%dT%H:%M:%S")
    )
    handler.addFilter(LogContextFilter())
    root_logger.addHandler(handler)

    # Provider calls and SQL are logged by us at stage granularity
    for noisy in ("uvicorn.access", "httpx", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
