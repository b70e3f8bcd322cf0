"""
JSONL event logger.

- Write one JSON object per line
- Output to stdout
- No buffering, no batching
- Events below the configured level are dropped
- No side effects beyond logging
"""

from __future__ import annotations

import json
import sys
import time
from typing import Any, Mapping, Callable

from constants import DEFAULT_LOG_LEVEL, LOG_LEVELS


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

_print: Callable[[str], None] = _stdout_print

_min_level: int = LOG_LEVELS.index(DEFAULT_LOG_LEVEL)


def set_log_level(level: str) -> None:
    """
    Set the minimum level of emitted events.

    Raises:
        ValueError for an unknown level name.
    """
    global _min_level  # pylint: disable=global-statement
    name = level.upper()
    if name not in LOG_LEVELS:
        raise ValueError(f"Unknown log level {level!r}; expected one of {LOG_LEVELS}")
    _min_level = LOG_LEVELS.index(name)


def now_ms() -> int:
    """Wall-clock timestamp in milliseconds."""
    return time.time_ns() // 1_000_000


def log_event(event: Mapping[str, Any]) -> None:
    """
    Write a single JSONL event to stdout.

    The caller supplies a fully-formed event dict. A missing "level"
    is treated as INFO.

    This function:
    - Serializes to JSON
    - Writes exactly one line
    - Flushes immediately (no buffering)
    - Never raises
    """
    level = str(event.get("level", "INFO")).upper()
    if level in LOG_LEVELS and LOG_LEVELS.index(level) < _min_level:
        return

    try:
        line = json.dumps(event, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        # Logging must never crash the player
        fallback: dict[str, Any] = {
            "ts_ms": event.get("ts_ms"),
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)


def log(event_type: str, *, level: str = "INFO", **fields: Any) -> None:
    """
    Convenience wrapper: stamp ts_ms/event_type/level and log.

        log("PLAYBACK_STARTED", frames=1200, step_ms=25)
    """
    log_event({
        "ts_ms": now_ms(),
        "event_type": event_type,
        "level": level,
        **fields,
    })
