"""
``@traced_engine`` -- one HR_ENGINE_TRACE log record per engine call.

The record names the engine and its version, fingerprints the arguments
that decide the outcome, and summarizes the resulting approval state.
Two calls with the same fingerprint against the same chain configuration
must land on the same state, so differing outcomes under one fingerprint
in the logs point at non-determinism (or a chain change).

    @traced_engine("approval_workflow", "1.0", ("request_type", "employee_no"))
    def initialize_approval(self, request_type, employee_no, ...):
        ...

The decorator only observes: arguments and the return value pass through
untouched, and an exception propagates without a trace record.
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import json
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

from hr_kernel.logging_config import get_logger

logger = get_logger("engines.tracer")


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return _plain(value.value)
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


def compute_input_fingerprint(fields: tuple[str, ...], arguments: dict[str, Any]) -> str:
    """
    16 hex chars of SHA-256 over the named arguments.

    Missing arguments count as null; an enum and its value fingerprint
    alike.
    """
    canonical = json.dumps(
        {name: _plain(arguments.get(name)) for name in fields},
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def _outcome(result: Any) -> dict[str, Any] | None:
    status = getattr(result, "trans_status", None)
    if status is None:
        return None
    return {
        "trans_status": _plain(status),
        "next_level": getattr(result, "next_level", None),
        "next_approver": getattr(result, "next_approver", None),
    }


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            # Bind first so positional and keyword calls fingerprint alike.
            arguments = signature.bind_partial(*args, **kwargs).arguments
            started = time.monotonic()
            result = func(*args, **kwargs)
            logger.info(
                "HR_ENGINE_TRACE",
                extra={
                    "trace_type": "HR_ENGINE_TRACE",
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "function": func.__qualname__,
                    "input_fingerprint": compute_input_fingerprint(fingerprint_fields, arguments),
                    "outcome": _outcome(result),
                    "duration_ms": round((time.monotonic() - started) * 1000, 2),
                },
            )
            return result

        return wrapper

    return decorator
