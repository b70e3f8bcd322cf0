"""
Controller reachability as seen by the liveness monitor.

Separate from and independent of StreamState: a controller can be DOWN
while the stream is already PAUSED.
"""
from enum import Enum

class Liveness(Enum):
    """
    Hysteresis-filtered reachability of the controller.
    """
    UNKNOWN = "UNKNOWN"     # No probe has completed yet
    UP = "UP"               # Last probe succeeded
    DOWN = "DOWN"           # Failure threshold reached while streaming
