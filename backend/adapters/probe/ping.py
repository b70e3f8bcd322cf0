"""
ICMP liveness probe using the system `ping` binary.

One echo request, one second reply timeout. The exit status of ping is
the answer; output is discarded.
"""

from __future__ import annotations

import asyncio
import sys

from adapters.probe.base import LivenessProbe, ProbeExecutionError
from observability.logger import log
from constants import PROBE_PROCESS_GRACE_S, PROBE_TIMEOUT_S


def ping_command(host: str, *, timeout_s: float = PROBE_TIMEOUT_S) -> list[str]:
    """
    Build the platform-specific single-packet ping command.
    """
    if sys.platform.startswith("win"):
        return ["ping", "-n", "1", "-w", str(int(timeout_s * 1000)), host]
    return ["ping", "-c", "1", "-W", str(max(1, int(timeout_s))), host]


class PingProbe(LivenessProbe):
    """
    Reachability check via `ping`.

    A ping process that outlives its own timeout plus a grace period is
    killed and reported as unreachable.
    """

    def __init__(self, *, timeout_s: float = PROBE_TIMEOUT_S) -> None:
        self._timeout_s = timeout_s

    async def probe(self, host: str) -> bool:
        cmd = ping_command(host, timeout_s=self._timeout_s)
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise ProbeExecutionError(
                f"Failed to execute system ping command (is 'ping' in PATH?): {e}"
            ) from e

        try:
            returncode = await asyncio.wait_for(
                proc.wait(),
                self._timeout_s + PROBE_PROCESS_GRACE_S,
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            log("PING_TIMEOUT", level="WARNING", host=host)
            return False

        return returncode == 0
