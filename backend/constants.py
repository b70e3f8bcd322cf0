"""
CONSTANTS
---------
Single source of truth for all behavioral numbers in the player.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final, Tuple

# =============================================================================
# Sequence file header (FSEQ v2)
# =============================================================================

FSEQ_MIN_HEADER_BYTES: Final[int] = 32
FSEQ_MAGIC_VALUES: Final[Tuple[bytes, ...]] = (b"PSEQ", b"FSEQ")
FSEQ_SUPPORTED_MAJOR_VERSION: Final[int] = 2

# Fixed byte offsets inside the header
HDR_CHANNEL_DATA_OFFSET: Final[int] = 4      # u16 LE
HDR_MINOR_VERSION: Final[int] = 6            # u8
HDR_MAJOR_VERSION: Final[int] = 7            # u8
HDR_VARIABLE_DATA_OFFSET: Final[int] = 8     # u16 LE
HDR_CHANNEL_COUNT: Final[int] = 10           # u32 LE
HDR_FRAME_COUNT: Final[int] = 14             # u32 LE
HDR_STEP_TIME_MS: Final[int] = 18            # u8
HDR_COMPRESSION: Final[int] = 20             # low nibble type, high nibble ECBC bits 8-11
HDR_BLOCK_COUNT: Final[int] = 21             # u8
HDR_CHANNEL_RANGE_COUNT: Final[int] = 22     # u8
HDR_SEQUENCE_UID: Final[int] = 24            # u64 LE

# =============================================================================
# Compression block table
# =============================================================================

BLOCK_ENTRY_BYTES: Final[int] = 8            # u32 first_frame_byte_id + u32 size
BLOCK0_FRAME_SPAN: Final[int] = 10
BLOCK_FRAME_SPAN: Final[int] = 256

# =============================================================================
# Liveness monitoring
# =============================================================================

PROBE_INTERVAL_S: Final[float] = 30.0
PROBE_TIMEOUT_S: Final[float] = 1.0
# Extra time granted to the ping process before it is killed
PROBE_PROCESS_GRACE_S: Final[float] = 2.0
PROBE_FAILURE_THRESHOLD: Final[int] = 3

# =============================================================================
# Playback runtime
# =============================================================================

# Delay before re-arming after a failed playback attempt (decode or connect)
PLAYBACK_RETRY_DELAY_S: Final[float] = 5.0

# =============================================================================
# DDP transport
# =============================================================================

DDP_DEFAULT_PORT: Final[int] = 4048
DDP_HEADER_BYTES: Final[int] = 10
DDP_MAX_DATA_BYTES: Final[int] = 1440        # 480 RGB pixels per packet

DDP_FLAG_VERSION_1: Final[int] = 0x40
DDP_FLAG_PUSH: Final[int] = 0x01
DDP_DATA_TYPE_RGB8: Final[int] = 0x0B
DDP_ID_DISPLAY: Final[int] = 0x01

DDP_SEQ_MIN: Final[int] = 1
DDP_SEQ_MAX: Final[int] = 15                 # 4-bit sequence, 0 = unused

# =============================================================================
# Observability
# =============================================================================

LOG_LEVELS: Final[Tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")
DEFAULT_LOG_LEVEL: Final[str] = "INFO"


# =============================================================================
# Helper Functions
# =============================================================================

def step_time_to_seconds(step_time_ms: int) -> float:
    """
    Convert a frame step time in milliseconds to seconds.

    Non-positive input returns 0.0 (send as fast as possible).
    """
    if step_time_ms <= 0:
        return 0.0
    return step_time_ms / 1000.0
