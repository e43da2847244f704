"""
planner_engines.tracer -- PLANNER_ENGINE_TRACE records for engine entry points.

Responsibility:
    ``@traced_engine`` wraps a pure calculator and, after each call, logs
    which engine ran (name and version), a fingerprint of the inputs that
    determine its result, and how long it took.  Two runs with the same
    fingerprint over the same engine version must produce the same output,
    which is what makes the trace useful when comparing projections.

Architecture position:
    Engines -- support for the pure calculation layer.  Emits a DEBUG log
    record and nothing else; inputs and results pass through untouched.

Invariants enforced:
    - The fingerprint depends only on the named keyword arguments, rendered
      canonically (mapping keys sorted, enums by value, Decimals by their
      string form), hashed with SHA-256 and cut to 16 hex characters.
    - Positional arguments never contribute to the fingerprint.

Failure modes:
    - A fingerprint field the caller did not pass is rendered as "null".
    - Exceptions from the wrapped engine propagate; no trace is written.
"""

from __future__ import annotations

import functools
import hashlib
import logging
import time
from collections.abc import Callable, Mapping
from decimal import Decimal
from enum import Enum
from typing import Any

_logger = logging.getLogger("planner_kernel.engines.tracer")

TRACE_MESSAGE = "PLANNER_ENGINE_TRACE"


def _render(value: Any) -> str:
    """Deterministic text form of an engine input."""
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (str, int, float, Decimal)):
        return str(value)
    if isinstance(value, Mapping):
        pairs = sorted((str(k), _render(v)) for k, v in value.items())
        return "{" + ",".join(f"{k}:{v}" for k, v in pairs) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_render(v) for v in value) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: Mapping[str, Any],
) -> str:
    """16-hex-char SHA-256 prefix over ``field=value`` pairs in field order."""
    canonical = "|".join(f"{name}={_render(kwargs.get(name))}" for name in fingerprint_fields)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """
    Decorate an engine entry point.

    Args:
        engine_name: e.g. "cash_engine", "rent".
        engine_version: bumped whenever the engine's results change for the
            same inputs.
        fingerprint_fields: keyword arguments that determine the result.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = (
                compute_input_fingerprint(fingerprint_fields, kwargs)
                if fingerprint_fields
                else ""
            )
            started = time.perf_counter()
            result = func(*args, **kwargs)
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

            _logger.debug(
                TRACE_MESSAGE,
                extra={
                    "trace_type": TRACE_MESSAGE,
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": fingerprint,
                    "duration_ms": elapsed_ms,
                    "function": func.__qualname__,
                },
            )
            return result

        return wrapper

    return decorator
