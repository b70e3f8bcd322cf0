"""
Runtime execution shell for the player.

Responsibilities:
- Load and parse the sequence file once
- Start the liveness monitor as a background task
- Wait for RUNNING, open the sink, run one playback attempt as a task
- Race the attempt's natural end against a PAUSED transition
- On PAUSED, wait for the attempt to actually stop before waiting again

Non-responsibilities:
- NO frame decoding (sequence/)
- NO pause/resume decisions (orchestrator/monitor.py)
- NO wire encoding (adapters/sink/)

Guarantees:
- At most one playback attempt exists at any time
- Decode and connection failures end the attempt, never the process
- Header errors abort startup before any task is started
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from adapters.probe.base import LivenessProbe
from adapters.probe.ping import PingProbe
from adapters.sink.base import ConnectionSetupError, FrameSink
from adapters.sink.ddp import DDPFrameSink
from config import PlayerConfig
from constants import PLAYBACK_RETRY_DELAY_S
from observability.logger import log
from orchestrator.enums.playback_phase import PlaybackPhase
from orchestrator.enums.stream_state import StreamState
from orchestrator.monitor import LivenessMonitor
from orchestrator.scheduler import PlaybackOutcome, PlaybackScheduler
from orchestrator.state_cell import StateWatcher, StreamStateCell
from sequence.decoder import SequenceFile
from sequence.errors import SequenceError


# ---------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------

SinkFactory = Callable[[str, int], Awaitable[FrameSink]]


class MonitorStoppedError(RuntimeError):
    """Raised when the liveness monitor task ends, which it never should."""


# ---------------------------------------------------------------------
# Player runtime
# ---------------------------------------------------------------------

class PlayerRuntime:
    """
    Wait / play / halt loop for a single destination.

    Lifecycle:
    1. Wait until StreamState is RUNNING
    2. Open the frame sink
    3. Run a PlaybackScheduler task; race it against PAUSED
    4a. Scheduler FINISHED (loop disabled): return its outcome
    4b. PAUSED or failure: wait for the task to end, go back to 1
    """

    def __init__(
        self,
        *,
        config: PlayerConfig,
        sequence: SequenceFile,
        state: StreamStateCell,
        open_sink: SinkFactory = DDPFrameSink.open,
        retry_delay_s: float = PLAYBACK_RETRY_DELAY_S,
    ) -> None:
        self._config = config
        self._sequence = sequence
        self._state = state
        self._open_sink = open_sink
        self._retry_delay_s = retry_delay_s

        self.attempts = 0
        self.active_scheduler: Optional[PlaybackScheduler] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self) -> PlaybackOutcome:
        """
        Play until a non-looping sequence finishes.

        With looping enabled this only returns through cancellation.
        """
        watcher = self._state.subscribe()

        while True:
            if watcher.borrow_and_update() is not StreamState.RUNNING:
                log("PLAYER_WAITING_FOR_START")
                await watcher.wait_for(StreamState.RUNNING)

            log("PLAYER_START_RECEIVED", host=self._config.host, port=self._config.port)

            try:
                outcome = await self.run_attempt(watcher)
            except ConnectionSetupError as e:
                log("PLAYER_CONNECTION_FAILED", level="ERROR", error=str(e))
                await asyncio.sleep(self._retry_delay_s)
                continue
            except SequenceError as e:
                log(
                    "PLAYBACK_FAILED",
                    level="ERROR",
                    error_type=type(e).__name__,
                    error=str(e),
                )
                await asyncio.sleep(self._retry_delay_s)
                continue

            if outcome.phase is PlaybackPhase.FINISHED:
                log(
                    "PLAYER_FINISHED",
                    frames_sent=outcome.frames_sent,
                    loops_completed=outcome.loops_completed,
                )
                return outcome

    async def run_attempt(self, watcher: StateWatcher) -> PlaybackOutcome:
        """
        One playback attempt: open sink, play, close sink.

        Raises:
            ConnectionSetupError if the sink cannot be opened
            SequenceError if a frame fails to decode
        """
        sink = await self._open_sink(self._config.host or "", self._config.port)
        self.attempts += 1

        scheduler = PlaybackScheduler(
            sequence=self._sequence,
            sink=sink,
            state=self._state,
            loop_enabled=self._config.loop_enabled,
        )
        self.active_scheduler = scheduler
        task = asyncio.create_task(scheduler.run(), name=f"playback-{self.attempts}")

        try:
            while True:
                changed = asyncio.create_task(watcher.changed())
                try:
                    done, _ = await asyncio.wait(
                        {task, changed},
                        return_when=asyncio.FIRST_COMPLETED,
                    )
                finally:
                    if not changed.done():
                        changed.cancel()

                if task in done:
                    outcome = task.result()
                    log(
                        "PLAYBACK_ENDED",
                        phase=outcome.phase.value,
                        frames_sent=outcome.frames_sent,
                        send_errors=outcome.send_errors,
                    )
                    return outcome

                if watcher.borrow() is StreamState.PAUSED:
                    log("PLAYER_STOP_REQUESTED")
                    outcome = await task
                    log(
                        "PLAYBACK_TERMINATED_BY_MONITOR",
                        phase=outcome.phase.value,
                        frames_sent=outcome.frames_sent,
                        last_frame=outcome.last_frame_index,
                    )
                    return outcome
        finally:
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
            self.active_scheduler = None
            sink.close()


# ---------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------

async def play_sequence(
    config: PlayerConfig,
    *,
    probe: Optional[LivenessProbe] = None,
    open_sink: SinkFactory = DDPFrameSink.open,
    retry_delay_s: float = PLAYBACK_RETRY_DELAY_S,
) -> PlaybackOutcome:
    """
    Load the sequence, start monitoring and play.

    Raises:
        OSError if the sequence file cannot be read
        MalformedHeader if its header is invalid
        MonitorStoppedError if the monitor task dies
    """
    log(
        "PLAYER_STARTING",
        sequence_path=config.sequence_path,
        host=config.host,
        port=config.port,
        loop_enabled=config.loop_enabled,
    )

    sequence = SequenceFile.load(config.sequence_path or "")
    sequence.log_header()

    state = StreamStateCell()
    monitor = LivenessMonitor(
        probe=probe or PingProbe(),
        state=state,
        host=config.host or "",
        interval_s=config.probe_interval_s,
        failure_threshold=config.probe_failure_threshold,
    )
    runtime = PlayerRuntime(
        config=config,
        sequence=sequence,
        state=state,
        open_sink=open_sink,
        retry_delay_s=retry_delay_s,
    )

    monitor_task = asyncio.create_task(monitor.run(), name="liveness-monitor")
    player_task = asyncio.create_task(runtime.run(), name="player")

    try:
        done, _ = await asyncio.wait(
            {monitor_task, player_task},
            return_when=asyncio.FIRST_COMPLETED,
        )
        if player_task in done:
            return player_task.result()

        error = monitor_task.exception()
        raise MonitorStoppedError(f"Liveness monitor stopped unexpectedly: {error!r}")
    finally:
        for task in (player_task, monitor_task):
            if not task.done():
                task.cancel()
        await asyncio.gather(player_task, monitor_task, return_exceptions=True)
