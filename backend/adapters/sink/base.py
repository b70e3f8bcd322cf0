"""
Frame sink contract.

This module defines the *interface only*: no wire encoding, no sockets,
no retry policy.

Key invariants:
- One call delivers one frame (channel_count bytes) to one destination.
- Delivery is best-effort: a failed send raises FrameSendError and the
  caller moves on to the next frame.
- Sinks never touch playback state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class FrameSinkError(Exception):
    """Base class for frame sink errors."""


class ConnectionSetupError(FrameSinkError):
    """
    Raised when the destination cannot be resolved or the socket cannot be
    opened. Ends the current playback attempt.
    """


class FrameSendError(FrameSinkError):
    """
    Raised when a single frame could not be delivered.

    Transient; the scheduler logs it and continues with the next frame.
    """


class FrameSink(ABC):
    """
    Abstract destination for decoded frames.

    Implementations are responsible for:
    - Encoding the frame for their wire protocol
    - Sending it without blocking the event loop indefinitely
    - Releasing transport resources in close()
    """

    @abstractmethod
    async def send_frame(self, frame: bytes) -> None:
        """
        Deliver one frame.

        Raises:
            FrameSendError on a transient delivery failure.
        """
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """
        Release the transport. Must be idempotent.
        """
        raise NotImplementedError
