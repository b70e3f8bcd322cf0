"""
Fixed-cadence playback of a sequence file to a frame sink.

Responsibilities:
- Walk frame indices, decode each frame, push it to the sink
- Sleep frame_step_time_ms between sends (fixed delay, no compensation)
- Loop or finish at the end of the sequence
- Halt at the next frame boundary once the stream is PAUSED

Non-responsibilities:
- NO decisions about pausing (the monitor owns StreamState)
- NO transport setup (the runtime opens and closes the sink)
- NO retries of failed decodes

Decode errors end the attempt and propagate to the caller. Send errors
are logged and the frame is skipped.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass

from adapters.sink.base import FrameSendError, FrameSink
from constants import step_time_to_seconds
from observability.logger import log
from observability.metrics import elapsed_ms, emit_timer
from orchestrator.enums.playback_phase import PlaybackPhase
from orchestrator.enums.stream_state import StreamState
from orchestrator.state_cell import StateWatcher, StreamStateCell
from sequence.decoder import SequenceFile


@dataclass
class PlaybackCursor:
    """
    Position of one playback attempt.

    Owned exclusively by a PlaybackScheduler; frame_index is reset to 0
    at the start of every loop pass.
    """
    frame_index: int = 0
    loops_completed: int = 0


@dataclass(frozen=True)
class PlaybackOutcome:
    """
    How a playback attempt ended (FINISHED or HALTED).
    """
    phase: PlaybackPhase
    frames_sent: int
    send_errors: int
    loops_completed: int
    last_frame_index: int


class PlaybackScheduler:
    """
    One playback attempt.

    Lifecycle:
    1. Constructed in IDLE with a fresh cursor
    2. run() moves to RUNNING and starts sending
    3. End of sequence: LOOPING (loop enabled) or FINISHED
    4. StreamState PAUSED observed at a frame boundary: HALTED

    A scheduler is single-use; the runtime builds a new one per attempt.
    """

    def __init__(
        self,
        *,
        sequence: SequenceFile,
        sink: FrameSink,
        state: StreamStateCell,
        loop_enabled: bool,
    ) -> None:
        self._sequence = sequence
        self._sink = sink
        self._state = state
        self._loop_enabled = loop_enabled

        self.cursor = PlaybackCursor()
        self.phase = PlaybackPhase.IDLE
        self.frames_sent = 0
        self.send_errors = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self) -> PlaybackOutcome:
        """
        Play until finished or halted.

        Raises:
            SequenceError for any frame decode failure (fatal for this attempt).
        """
        if self.phase is not PlaybackPhase.IDLE:
            raise RuntimeError(f"PlaybackScheduler already used (phase={self.phase.value})")

        frame_count = self._sequence.frame_count
        step_s = step_time_to_seconds(self._sequence.step_time_ms)
        watcher = self._state.subscribe()

        self.phase = PlaybackPhase.RUNNING
        log(
            "PLAYBACK_STARTED",
            frames=frame_count,
            step_ms=self._sequence.step_time_ms,
            loop_enabled=self._loop_enabled,
        )

        pass_start_ns = time.monotonic_ns()

        while True:
            if self._paused():
                return self._halt()

            index = self.cursor.frame_index
            frame = await asyncio.to_thread(self._sequence.get_frame, index)

            try:
                await self._sink.send_frame(frame)
                self.frames_sent += 1
            except FrameSendError as e:
                self.send_errors += 1
                log(
                    "FRAME_SEND_ERROR",
                    level="ERROR",
                    frame=index,
                    error=str(e),
                )

            self.cursor.frame_index += 1

            if self.cursor.frame_index >= frame_count:
                self.cursor.loops_completed += 1
                emit_timer(
                    "sequence_pass",
                    elapsed_ms(pass_start_ns),
                    details={
                        "frames": frame_count,
                        "loops_completed": self.cursor.loops_completed,
                    },
                )
                log(
                    "SEQUENCE_COMPLETED",
                    loops_completed=self.cursor.loops_completed,
                )

                if not self._loop_enabled:
                    self.phase = PlaybackPhase.FINISHED
                    return self._outcome()

                self.cursor.frame_index = 0
                self.phase = PlaybackPhase.LOOPING
                pass_start_ns = time.monotonic_ns()

            if self._paused():
                return self._halt()

            if not await self._cadence_delay(watcher, step_s):
                return self._halt()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _paused(self) -> bool:
        return self._state.get() is StreamState.PAUSED

    async def _cadence_delay(self, watcher: StateWatcher, step_s: float) -> bool:
        """
        Sleep one frame step.

        Returns False as soon as the stream turns PAUSED; the remaining
        delay is abandoned.
        """
        if step_s <= 0:
            await asyncio.sleep(0)
            return not self._paused()

        loop = asyncio.get_running_loop()
        deadline = loop.time() + step_s
        watcher.borrow_and_update()

        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return not self._paused()
            try:
                state = await asyncio.wait_for(watcher.changed(), remaining)
            except asyncio.TimeoutError:
                return not self._paused()
            if state is StreamState.PAUSED:
                return False

    def _halt(self) -> PlaybackOutcome:
        self.phase = PlaybackPhase.HALTED
        log(
            "PLAYBACK_HALTED",
            frame=self.cursor.frame_index,
            loops_completed=self.cursor.loops_completed,
        )
        return self._outcome()

    def _outcome(self) -> PlaybackOutcome:
        return PlaybackOutcome(
            phase=self.phase,
            frames_sent=self.frames_sent,
            send_errors=self.send_errors,
            loops_completed=self.cursor.loops_completed,
            last_frame_index=self.cursor.frame_index,
        )
