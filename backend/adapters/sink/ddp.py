"""
DDP frame sink for WLED controllers.

Role in the system:
- Receives one decoded frame per call from the playback scheduler.
- Splits it into DDP packets (protocol/ddp.py) and sends them over a
  connected, non-blocking UDP socket.

Architectural constraints:
- No retries: a failed send is reported as FrameSendError and dropped.
- No pacing: cadence is owned by the scheduler.
"""

from __future__ import annotations

import asyncio
import socket
from typing import Optional

from adapters.sink.base import ConnectionSetupError, FrameSendError, FrameSink
from observability.logger import log
from protocol.ddp import DDPProtocolError, encode_frame, next_sequence
from constants import DDP_SEQ_MIN


class DDPFrameSink(FrameSink):
    """
    UDP/DDP frame sink bound to one destination.

    Every packet of a frame carries the same 4-bit sequence number; the
    number advances once per frame.
    """

    def __init__(self, sock: socket.socket, destination: tuple[str, int]) -> None:
        self._sock: Optional[socket.socket] = sock
        self._destination = destination
        self._sequence = DDP_SEQ_MIN
        self.frames_sent = 0

    @classmethod
    async def open(cls, host: str, port: int) -> DDPFrameSink:
        """
        Resolve `host` and connect a UDP socket to it.

        Raises:
            ConnectionSetupError if resolution or socket setup fails.
        """
        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(host, port, type=socket.SOCK_DGRAM)
        except OSError as e:
            raise ConnectionSetupError(f"Cannot resolve DDP destination {host}:{port}: {e}") from e

        if not infos:
            raise ConnectionSetupError(f"No address found for DDP destination {host}:{port}")

        family, sock_type, proto, _, sockaddr = infos[0]
        try:
            sock = socket.socket(family, sock_type, proto)
        except OSError as e:
            raise ConnectionSetupError(f"Failed to create UDP socket: {e}") from e

        try:
            sock.setblocking(False)
            sock.connect(sockaddr)
        except OSError as e:
            sock.close()
            raise ConnectionSetupError(
                f"Failed to connect UDP socket to {host}:{port}: {e}"
            ) from e

        log(
            "DDP_SINK_OPENED",
            host=host,
            port=port,
            resolved=str(sockaddr[0]),
        )
        return cls(sock, (str(sockaddr[0]), port))

    @property
    def destination(self) -> tuple[str, int]:
        return self._destination

    async def send_frame(self, frame: bytes) -> None:
        if self._sock is None:
            raise FrameSendError("DDP sink is closed")

        try:
            packets = encode_frame(frame, sequence=self._sequence)
        except DDPProtocolError as e:
            raise FrameSendError(f"Cannot encode frame for DDP: {e}") from e

        try:
            for packet in packets:
                self._sock.send(packet)
        except OSError as e:
            raise FrameSendError(
                f"Failed to send DDP packet to {self._destination[0]}:{self._destination[1]}: {e}"
            ) from e
        finally:
            self._sequence = next_sequence(self._sequence)

        self.frames_sent += 1

    def close(self) -> None:
        if self._sock is None:
            return
        self._sock.close()
        self._sock = None
        log("DDP_SINK_CLOSED", frames_sent=self.frames_sent)
