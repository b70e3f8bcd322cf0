"""
Controller liveness monitor.

Responsibilities:
- Probe the controller immediately, then once per probe interval
- Resume the stream (PAUSED -> RUNNING) on any successful probe
- Pause the stream after N consecutive failed probes while RUNNING

Non-responsibilities:
- NO playback control beyond writing StreamState
- NO transport

Hysteresis rules:
- Success resets the failure counter to 0.
- Failures only count while the stream is RUNNING; while PAUSED they
  are ignored (the counter is not touched).
- A probe that cannot run at all counts as a failure.
"""

from __future__ import annotations

import asyncio

from adapters.probe.base import LivenessProbe, ProbeExecutionError
from constants import PROBE_FAILURE_THRESHOLD, PROBE_INTERVAL_S
from observability.logger import log
from orchestrator.enums.liveness import Liveness
from orchestrator.enums.stream_state import StreamState
from orchestrator.state_cell import StreamStateCell


class LivenessMonitor:
    """
    Sole writer of the StreamStateCell.

    check_once() performs one probe and applies the hysteresis rules;
    run() repeats it forever.
    """

    def __init__(
        self,
        *,
        probe: LivenessProbe,
        state: StreamStateCell,
        host: str,
        interval_s: float = PROBE_INTERVAL_S,
        failure_threshold: int = PROBE_FAILURE_THRESHOLD,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")

        self._probe = probe
        self._state = state
        self._host = host
        self._interval_s = interval_s
        self._failure_threshold = failure_threshold

        self.consecutive_failures = 0
        self.liveness = Liveness.UNKNOWN

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """
        Probe forever. Never returns on its own; cancel the task to stop.
        """
        log(
            "MONITOR_STARTED",
            host=self._host,
            interval_s=self._interval_s,
            failure_threshold=self._failure_threshold,
        )
        while True:
            await self.check_once()
            await asyncio.sleep(self._interval_s)

    async def check_once(self) -> bool:
        """
        Run one probe and apply the transition rules.

        Returns the probe result (False for probe execution errors).
        """
        try:
            is_up = await self._probe.probe(self._host)
        except ProbeExecutionError as e:
            log("PROBE_EXECUTION_ERROR", level="ERROR", host=self._host, error=str(e))
            is_up = False

        if is_up:
            self._on_success()
        else:
            self._on_failure()
        return is_up

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _on_success(self) -> None:
        if self.consecutive_failures > 0:
            log(
                "MONITOR_FAILURES_CLEARED",
                host=self._host,
                cleared=self.consecutive_failures,
            )
            self.consecutive_failures = 0

        self.liveness = Liveness.UP

        if self._state.get() is not StreamState.RUNNING:
            log("MONITOR_START_SIGNAL", host=self._host)
            self._state.set(StreamState.RUNNING)

    def _on_failure(self) -> None:
        # Quietly keep polling while already paused
        if self._state.get() is not StreamState.RUNNING:
            return

        self.consecutive_failures += 1
        log(
            "MONITOR_DEVICE_DOWN",
            level="WARNING",
            host=self._host,
            failures=self.consecutive_failures,
            threshold=self._failure_threshold,
        )

        if self.consecutive_failures >= self._failure_threshold:
            self.liveness = Liveness.DOWN
            log(
                "MONITOR_STOP_SIGNAL",
                level="ERROR",
                host=self._host,
                failures=self.consecutive_failures,
            )
            self._state.set(StreamState.PAUSED)
