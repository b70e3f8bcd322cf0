"""
Latest-value cell for the stream gating signal.

Responsibilities:
- Hold exactly one StreamState value (no history, no queue)
- Let one writer replace the value at any time
- Let any number of readers read synchronously or await a change

Non-responsibilities:
- NO decisions about when to pause or resume
- NO knowledge of probes or frames

Readers that need "has this changed since I last looked" semantics
subscribe and get their own StateWatcher.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from orchestrator.enums.stream_state import StreamState


class StreamStateCell:
    """
    Single-slot, latest-value cell with change notification.

    Concurrency:
    - All access happens on one event loop; set() never suspends.
    - Each change swaps in a fresh asyncio.Event so waiters registered
      before the change are released exactly once.
    """

    def __init__(self, initial: StreamState = StreamState.PAUSED) -> None:
        self._value = initial
        self._version = 0
        self._changed = asyncio.Event()

    # ------------------------------------------------------------------
    # Reader API
    # ------------------------------------------------------------------

    def get(self) -> StreamState:
        """Current value."""
        return self._value

    @property
    def version(self) -> int:
        """Number of changes applied so far."""
        return self._version

    def subscribe(self) -> StateWatcher:
        """Create a reader positioned at the current version."""
        return StateWatcher(self)

    async def wait_for_version_after(self, version: int) -> int:
        """
        Suspend until the cell's version exceeds `version`.

        Returns the version observed on wakeup.
        """
        while self._version <= version:
            await self._changed.wait()
        return self._version

    # ------------------------------------------------------------------
    # Writer API
    # ------------------------------------------------------------------

    def set(self, value: StreamState) -> bool:
        """
        Replace the value.

        Returns:
            True if the value changed (readers are notified)
            False if it was already `value`
        """
        if value is self._value:
            return False

        self._value = value
        self._version += 1

        changed, self._changed = self._changed, asyncio.Event()
        changed.set()
        return True


class StateWatcher:
    """
    Per-reader view of a StreamStateCell.

    Tracks the last version this reader has seen, mirroring a watch
    channel receiver.
    """

    def __init__(self, cell: StreamStateCell) -> None:
        self._cell = cell
        self._seen = cell.version

    def borrow(self) -> StreamState:
        """Current value; does not mark it as seen."""
        return self._cell.get()

    def borrow_and_update(self) -> StreamState:
        """Current value, marked as seen."""
        self._seen = self._cell.version
        return self._cell.get()

    def has_changed(self) -> bool:
        """True if the cell changed since this reader last looked."""
        return self._cell.version != self._seen

    async def changed(self) -> StreamState:
        """
        Suspend until the value changes after the last seen version.

        Returns immediately if a change is already pending.
        """
        self._seen = await self._cell.wait_for_version_after(self._seen)
        return self._cell.get()

    async def wait_for(
        self,
        value: StreamState,
        *,
        timeout: Optional[float] = None,
    ) -> bool:
        """
        Suspend until the cell holds `value`.

        Returns:
            True once the value is observed
            False if `timeout` seconds elapse first
        """
        async def _wait() -> None:
            while self.borrow_and_update() is not value:
                await self.changed()

        try:
            await asyncio.wait_for(_wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True
