"""
Stream gating signal.

Rules:
- Written only by the liveness monitor.
- Read by the playback runtime and scheduler.
- No behavior, no helper methods, no side effects.
"""

from __future__ import annotations

from enum import Enum


class StreamState(str, Enum):
    """
    Whether frames may be sent to the controller.

    The process starts PAUSED; the first successful probe moves it to
    RUNNING.
    """

    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
