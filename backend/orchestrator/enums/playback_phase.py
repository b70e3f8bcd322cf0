"""
Playback scheduler phases.

Transitions (owned by the scheduler):
    IDLE -> RUNNING -> LOOPING | FINISHED | HALTED
    LOOPING -> LOOPING | HALTED
"""

from __future__ import annotations

from enum import Enum


class PlaybackPhase(str, Enum):
    """
    Lifecycle of a single playback attempt.
    """

    IDLE = "IDLE"
    RUNNING = "RUNNING"
    LOOPING = "LOOPING"
    FINISHED = "FINISHED"
    HALTED = "HALTED"
