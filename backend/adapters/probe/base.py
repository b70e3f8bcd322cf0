"""
Liveness probe contract.

A probe answers one question: is the controller reachable right now?
Hysteresis, pausing and resuming are the monitor's job, not the probe's.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class ProbeExecutionError(Exception):
    """
    Raised when the probe itself could not run (missing binary, spawn
    failure). The monitor counts it as a failed probe.
    """


class LivenessProbe(ABC):
    """
    Abstract reachability check.
    """

    @abstractmethod
    async def probe(self, host: str) -> bool:
        """
        Check whether `host` is reachable.

        Contract:
        - Returns within a bounded time (about one second plus overhead).
        - Returns False when the host does not answer.
        - Raises ProbeExecutionError only when no check could be made.
        """
        raise NotImplementedError
