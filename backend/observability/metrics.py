"""
Timing helpers for observability.

Responsibilities:
- Measure durations using monotonic time
- Emit one METRIC_TIMER event per measurement via observability.logger
- Never aggregate

Event timestamps (ts_ms) use wall-clock time; durations use
time.monotonic_ns().
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterator

from observability.logger import log_event, now_ms


def elapsed_ms(start_ns: int) -> int:
    """Milliseconds elapsed since a time.monotonic_ns() reading."""
    return (time.monotonic_ns() - start_ns) // 1_000_000


def emit_timer(
    name: str,
    value_ms: int,
    *,
    level: str = "INFO",
    details: dict[str, Any] | None = None,
) -> None:
    """Emit a single METRIC_TIMER event."""
    log_event({
        "ts_ms": now_ms(),
        "event_type": "METRIC_TIMER",
        "level": level,
        "metric": name,
        "value_ms": value_ms,
        "details": details or {},
    })


@contextmanager
def timed(
    name: str,
    *,
    level: str = "INFO",
    details: dict[str, Any] | None = None,
) -> Iterator[dict[str, Any]]:
    """
    Context manager for measuring durations safely.

    Guarantees:
    - Metric is emitted exactly once
    - Exceptions inside the block do NOT suppress timing

    The yielded dict is merged into the event details, so the block can
    attach results it only knows at the end:

        with timed("chunk_decompress", details={"block": 3}) as extra:
            data = decompressor.decompress(chunk)
            extra["out_bytes"] = len(data)
    """
    extra: dict[str, Any] = {}
    start_ns = time.monotonic_ns()
    try:
        yield extra
    finally:
        emit_timer(
            name,
            elapsed_ms(start_ns),
            level=level,
            details={**(details or {}), **extra},
        )
