"""
production_engines.tracer -- PRODUCTION_ENGINE_TRACE records for pure engines.

Responsibility:
    ``@traced_engine`` wraps an engine method and, after it returns, logs
    which engine ran, a fingerprint of the inputs that determine its answer,
    a few fields of the answer itself, and how long it took.  Two traces
    with the same fingerprint must carry the same result fields; a mismatch
    means an engine stopped being a pure function of its inputs.

Architecture position:
    Engines -- infrastructure support for the pure calculation layer.
    Emits a log record only.

Invariants enforced:
    - Arguments are bound against the wrapped signature, so positional and
      keyword calls fingerprint identically and defaults are included.
    - Canonical forms are order-insensitive for mappings and normalize
      Decimals, so ``Decimal("10")`` and ``Decimal("10.000")`` hash alike.
    - Fingerprints are SHA-256, truncated to 16 hex characters.
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import logging
import time
from collections.abc import Callable, Mapping
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

# Child of the production_kernel logger so the kernel's JSON handler applies.
_logger = logging.getLogger("production_kernel.engines.tracer")


def _canonicalize(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, datetime):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        return type(value).__name__ + _canonicalize(fields)
    if isinstance(value, Mapping):
        items = sorted((str(k), _canonicalize(v)) for k, v in value.items())
        return "{" + ",".join(f"{k}:{v}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """Hash the named arguments; absent names hash as null."""
    canonical = "|".join(
        f"{name}={_canonicalize(arguments.get(name))}" for name in fingerprint_fields
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
    result_fields: tuple[str, ...] = (),
) -> Callable:
    """
    Decorator that emits PRODUCTION_ENGINE_TRACE for pure engine invocations.

    Args:
        engine_name: Engine identifier (e.g., "feasibility").
        engine_version: Bumped whenever the engine's arithmetic changes.
        fingerprint_fields: Parameter names whose values determine the result.
        result_fields: Attributes of the returned object copied into the trace.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            bound = signature.bind(*args, **kwargs)
            bound.apply_defaults()
            fingerprint = compute_input_fingerprint(fingerprint_fields, bound.arguments)

            started = time.monotonic()
            result = func(*args, **kwargs)
            duration_ms = round((time.monotonic() - started) * 1000, 2)

            extra: dict[str, Any] = {
                "trace_type": "PRODUCTION_ENGINE_TRACE",
                "engine_name": engine_name,
                "engine_version": engine_version,
                "input_fingerprint": fingerprint,
                "duration_ms": duration_ms,
                "function": func.__qualname__,
            }
            for name in result_fields:
                extra[f"result_{name}"] = getattr(result, name, None)
            _logger.info("PRODUCTION_ENGINE_TRACE", extra=extra)
            return result

        return wrapper

    return decorator
