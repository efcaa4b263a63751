"""
Engine invocation tracing.

``@traced_engine`` wraps a pure engine entry point and logs exactly one
``BILLING_ENGINE_TRACE`` record per call:

    engine_name, engine_version   which engine and which revision of its formula
    input_fingerprint             16 hex chars of SHA-256 over selected arguments
    duration_ms                   wall time of the call
    outcome                       "ok", or "error" when the call raised

The fingerprint covers only the named arguments, each passed through its
canonicalizer when one is given. Engines use that to hash by priced content
(a line item dict and the equivalent LineItem hash alike), so a stored invoice
can be matched back to the computation that produced it. A one-shot iterator
named in ``fingerprint_fields`` is read into a tuple once and that tuple is
what the engine receives. Results are returned untouched and exceptions are
re-raised unchanged.

Usage:
    @traced_engine("invoice", "1.0", fingerprint_fields=("line_items", "tax_rate_percent"),
                   canonicalizers={"line_items": line_item_fingerprint})
    def compose_invoice(line_items, *, tax_rate_percent=0, ...):
        ...
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import json
import time
from collections.abc import Callable, Iterator, Mapping
from typing import Any, TypeVar

from billing_kernel.logging_config import get_logger

logger = get_logger("engines.tracer")

F = TypeVar("F", bound=Callable[..., Any])

TRACE_MESSAGE = "BILLING_ENGINE_TRACE"


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """
    Fingerprint the named entries of ``arguments``.

    Absent names hash the same as None. Mapping keys are sorted, and values
    JSON cannot encode directly are hashed by their ``str()``.
    """
    selected = {name: arguments.get(name) for name in fingerprint_fields}
    canonical = json.dumps(selected, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
    canonicalizers: Mapping[str, Callable[[Any], Any]] | None = None,
) -> Callable[[F], F]:
    canonicalizers = dict(canonicalizers or {})

    def decorator(func: F) -> F:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fingerprint = ""
            outcome = "error"
            started = time.perf_counter()
            try:
                if fingerprint_fields:
                    bound = signature.bind_partial(*args, **kwargs)
                    for name in fingerprint_fields:
                        if isinstance(bound.arguments.get(name), Iterator):
                            bound.arguments[name] = tuple(bound.arguments[name])
                    args, kwargs = bound.args, bound.kwargs
                    selected = {
                        name: canonicalizers[name](value) if name in canonicalizers else value
                        for name, value in bound.arguments.items()
                        if name in fingerprint_fields
                    }
                    fingerprint = compute_input_fingerprint(fingerprint_fields, selected)
                result = func(*args, **kwargs)
                outcome = "ok"
                return result
            finally:
                logger.info(TRACE_MESSAGE, extra={
                    "trace_type": TRACE_MESSAGE,
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": fingerprint,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 3),
                    "outcome": outcome,
                    "function": func.__qualname__,
                })

        return wrapper  # type: ignore[return-value]

    return decorator
