"""
Player configuration.

Responsibilities:
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No playback logic
- No protocol constants
- No runtime mutation

The CLI loads a .env file first, then applies command-line overrides
with dataclasses.replace().
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from constants import (
    DDP_DEFAULT_PORT,
    DEFAULT_LOG_LEVEL,
    PROBE_FAILURE_THRESHOLD,
    PROBE_INTERVAL_S,
)


_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUE_VALUES


@dataclass(frozen=True)
class PlayerConfig:
    """
    Immutable player configuration.

    Constructed once at process startup and passed down to the runtime.
    """

    # ------------------------------------------------------------------
    # Sequence
    # ------------------------------------------------------------------

    sequence_path: str | None
    loop_enabled: bool

    # ------------------------------------------------------------------
    # Destination controller
    # ------------------------------------------------------------------

    host: str | None
    port: int

    # ------------------------------------------------------------------
    # Liveness
    # ------------------------------------------------------------------

    probe_interval_s: float
    probe_failure_threshold: int

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    log_level: str

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """
        Check that the config can drive a player.

        Raises:
            ValueError describing the first problem found.
        """
        if not self.sequence_path:
            raise ValueError("A sequence file path is required (--file or FSEQ_PATH)")
        if not self.host:
            raise ValueError("A controller host is required (--host or WLED_HOST)")
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid DDP port: {self.port}")
        if self.probe_interval_s <= 0:
            raise ValueError("probe_interval_s must be > 0")
        if self.probe_failure_threshold < 1:
            raise ValueError("probe_failure_threshold must be >= 1")

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> PlayerConfig:
        """
        Load configuration from environment variables.

        Raises:
            ValueError if a numeric variable cannot be parsed.
        """
        return PlayerConfig(
            sequence_path=os.environ.get("FSEQ_PATH"),
            loop_enabled=_env_bool("LOOP_ENABLED", True),

            host=os.environ.get("WLED_HOST"),
            port=int(os.environ.get("DDP_PORT", DDP_DEFAULT_PORT)),

            probe_interval_s=float(os.environ.get("PROBE_INTERVAL_S", PROBE_INTERVAL_S)),
            probe_failure_threshold=int(
                os.environ.get("PROBE_FAILURE_THRESHOLD", PROBE_FAILURE_THRESHOLD)
            ),

            log_level=os.environ.get("LOG_LEVEL", DEFAULT_LOG_LEVEL),
        )
