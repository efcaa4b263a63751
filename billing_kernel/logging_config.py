"""
Structured JSON logging for the billing engines.

Every record is written as one JSON object per line:

    {"ts": "...", "level": "INFO", "logger": "billing_kernel.engines.invoice",
     "message": "invoice_composition_completed", "invoice_id": "inv-9",
     "total": "24.41", "duration_ms": 0.31}

Fields come from three places, in this order of precedence:
    1. the fixed envelope (ts, level, logger, message)
    2. request-scoped fields bound through LogContext
    3. the ``extra={...}`` mapping passed at the call site

Exceptions logged with ``exc_info`` add ``exc_type``, ``exc_message``, the
error ``code`` of billing errors, and each structured attribute of the
exception as ``exc_<name>``.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, TextIO
from uuid import UUID

_ROOT = "billing_kernel"


# ---------------------------------------------------------------------------
# Request-scoped fields
# ---------------------------------------------------------------------------

_context: ContextVar[dict[str, str]] = ContextVar("billing_log_context", default={})


class LogContext:
    """
    Fields attached to every record logged in the current context.

    Backed by a single ContextVar, so values follow threads and asyncio
    tasks. The stored mapping is replaced, never mutated.
    """

    FIELDS = frozenset({"correlation_id", "invoice_id", "patient_id", "actor_id"})

    @classmethod
    def _check(cls, names: Any) -> None:
        unknown = set(names) - cls.FIELDS
        if unknown:
            raise TypeError(f"Unknown log context fields: {', '.join(sorted(unknown))}")

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Update the given fields. None values leave a field unchanged."""
        cls._check(fields)
        updates = {k: str(v) for k, v in fields.items() if v is not None}
        if updates:
            _context.set({**_context.get(), **updates})

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set({})

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a ``with`` block, then restore."""
        cls._check(fields)
        updates = {k: str(v) for k, v in fields.items() if v is not None}
        token = _context.set({**_context.get(), **updates})
        try:
            yield cls
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------

# Attributes every LogRecord carries; anything else on a record came from extra=.
_RESERVED = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (Decimal, UUID)):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    return repr(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_"):
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """Render a LogRecord as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for name, value in vars(record).items():
            if name not in _RESERVED:
                payload.setdefault(name, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger named ``billing_kernel.<name>``."""
    return logging.getLogger(f"{_ROOT}.{name}")


_setup_lock = threading.Lock()
_handler: logging.Handler | None = None


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``billing_kernel`` logger.

    ``level`` may be a number or a level name such as ``BillingPolicy.log_level``.
    Only the first call has an effect until ``reset_logging()``.
    """
    global _handler
    with _setup_lock:
        if _handler is not None:
            return
        _handler = handler or logging.StreamHandler(stream or sys.stderr)
        _handler.setFormatter(StructuredFormatter())

        root = logging.getLogger(_ROOT)
        root.setLevel(level.upper() if isinstance(level, str) else level)
        root.propagate = False
        root.addHandler(_handler)


def reset_logging() -> None:
    """Detach the handler configure_logging installed and restore the defaults. Used by tests."""
    global _handler
    with _setup_lock:
        root = logging.getLogger(_ROOT)
        if _handler is not None:
            root.removeHandler(_handler)
        _handler = None
        root.setLevel(logging.WARNING)
        root.propagate = True
