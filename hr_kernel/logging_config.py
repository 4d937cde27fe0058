"""
Structured JSON logging for the HR kernel and everything layered on it.

Every record is one JSON object per line.  Request-scoped fields
(correlation id, request type, entity, acting employee, batch job) live in
``LogContext`` and are stamped onto every record emitted while they are
set, so an approval decision can be followed across the gate, the engine
and the outbox without threading ids through every call.

Usage::

    logger = get_logger("modules.leave")
    with LogContext.bind(request_type="VAC", entity_id=request.id):
        logger.info("leave_balance_deducted", extra={"days": str(days)})
"""

__all__ = [
    "CONTEXT_FIELDS",
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
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping
from uuid import UUID

_LOGGER_PREFIX = "hr_kernel"

CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "request_type",
    "entity_id",
    "actor_no",
    "job_id",
)

_EMPTY: Mapping[str, str] = MappingProxyType({})
_context: ContextVar[Mapping[str, str]] = ContextVar("hr_log_context", default=_EMPTY)


def _merged(fields: dict[str, Any]) -> Mapping[str, str]:
    current = dict(_context.get())
    for name, value in fields.items():
        if name in CONTEXT_FIELDS and value is not None:
            current[name] = str(value.value if isinstance(value, Enum) else value)
    return MappingProxyType(current)


class LogContext:
    """
    Request-scoped log fields, one immutable mapping per context.

    Values are stored as strings; ``None`` leaves a field untouched and
    names outside ``CONTEXT_FIELDS`` are ignored.
    """

    @staticmethod
    def set(**fields: Any) -> None:
        _context.set(_merged(fields))

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set(_EMPTY)

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """Set fields for the duration of a ``with`` block."""
        token = _context.set(_merged(fields))
        try:
            yield
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# JSON formatting
# ---------------------------------------------------------------------------

_RESERVED_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # HrKernelError subclasses carry their context as plain attributes.
    for name, value in vars(exc).items():
        if name.startswith("_") or name in ("args", "code", "message"):
            continue
        fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: base fields, context, extras, exception."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context.get(),
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and key not in payload
        )
        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_to_json)


def get_logger(name: str) -> logging.Logger:
    """Logger named ``hr_kernel.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


# ---------------------------------------------------------------------------
# Handler installation
# ---------------------------------------------------------------------------

_install_lock = threading.Lock()
_installed_handler: logging.Handler | None = None


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Install the JSON handler on the ``hr_kernel`` logger.

    Only the first call has an effect until ``reset_logging()``.
    """
    global _installed_handler
    with _install_lock:
        if _installed_handler is not None:
            return
        target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        target.setFormatter(StructuredFormatter())
        root = logging.getLogger(_LOGGER_PREFIX)
        root.setLevel(level)
        root.propagate = False
        root.addHandler(target)
        _installed_handler = target


def reset_logging() -> None:
    """Remove every handler from the ``hr_kernel`` logger.  Tests only."""
    global _installed_handler
    with _install_lock:
        _installed_handler = None
        root = logging.getLogger(_LOGGER_PREFIX)
        root.handlers.clear()
        root.setLevel(logging.WARNING)
