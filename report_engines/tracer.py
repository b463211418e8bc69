"""
report_engines.tracer -- REPORT_ENGINE_TRACE records for engine entry points.

``@traced_engine`` logs one record per call with the engine name and
version, a fingerprint of the selected arguments, the wall duration and
whether the call returned or raised.  Nothing about the call itself is
changed: arguments, results and exceptions pass through untouched.

The fingerprint is the first 16 hex characters of a SHA-256 over a JSON
rendering of the arguments.  Mapping keys are sorted, sequences keep their
order and Decimals keep their exact text (``1.0`` and ``1.00`` differ).
An argument that was not passed fingerprints the same as ``None``.
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import json
import time
from collections.abc import Callable, Mapping
from dataclasses import asdict, is_dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from report_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")

TRACE_MESSAGE = "REPORT_ENGINE_TRACE"


def _plain(value: Any) -> Any:
    """Reduce ``value`` to JSON-native types with a stable shape."""
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, Enum):
        return _plain(value.value)
    if isinstance(value, (Decimal, float)):
        return str(value)
    if isinstance(value, Mapping):
        return {str(key): _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if is_dataclass(value) and not isinstance(value, type):
        return _plain(asdict(value))
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    selected = [[name, _plain(arguments.get(name))] for name in fingerprint_fields]
    canonical = json.dumps(selected, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Wrap an engine entry point so each call emits REPORT_ENGINE_TRACE.

    ``fingerprint_fields`` names parameters of the wrapped function; they are
    matched whether the caller passes them positionally or by keyword.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        def fingerprint(args: tuple, kwargs: dict) -> str:
            if not fingerprint_fields:
                return ""
            try:
                arguments = signature.bind_partial(*args, **kwargs).arguments
            except TypeError:
                arguments = kwargs
            return compute_input_fingerprint(fingerprint_fields, arguments)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            input_fingerprint = fingerprint(args, kwargs)
            started = time.monotonic()
            succeeded = False
            try:
                result = func(*args, **kwargs)
                succeeded = True
                return result
            finally:
                _logger.info(
                    TRACE_MESSAGE,
                    extra={
                        "trace_type": TRACE_MESSAGE,
                        "engine_name": engine_name,
                        "engine_version": engine_version,
                        "function": func.__qualname__,
                        "input_fingerprint": input_fingerprint,
                        "duration_ms": round((time.monotonic() - started) * 1000, 2),
                        "outcome": "ok" if succeeded else "error",
                    },
                )

        return wrapper

    return decorator
