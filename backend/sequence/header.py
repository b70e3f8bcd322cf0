# backend/sequence/header.py
"""
Fixed-layout FSEQ v2 header parsing.

Layout (little-endian):
    0   4 bytes  magic ("PSEQ")
    4   u16      channel data offset
    6   u8       minor version
    7   u8       major version
    8   u16      variable data offset (header size)
    10  u32      channel count (bytes per frame)
    14  u32      frame count
    18  u8       frame step time (ms)
    20  u8       low nibble: compression type
                 high nibble: bits 8-11 of the extended block count
    21  u8       compression block count (low 8 bits)
    22  u8       sparse channel range count
    24  u64      sequence uid

Usage example:

    header = parse_header(buffer)
    if header.compression_type == CompressionType.ZSTD:
        count = extended_block_count(buffer)

The structural read is a substitutable capability (HeaderReader). The
parser only enforces the minimum size and turns a non-OK status into
MalformedHeader.
"""

from __future__ import annotations

import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional

from constants import (
    FSEQ_MAGIC_VALUES,
    FSEQ_MIN_HEADER_BYTES,
    FSEQ_SUPPORTED_MAJOR_VERSION,
    HDR_BLOCK_COUNT,
    HDR_CHANNEL_COUNT,
    HDR_CHANNEL_DATA_OFFSET,
    HDR_CHANNEL_RANGE_COUNT,
    HDR_COMPRESSION,
    HDR_FRAME_COUNT,
    HDR_MAJOR_VERSION,
    HDR_MINOR_VERSION,
    HDR_SEQUENCE_UID,
    HDR_STEP_TIME_MS,
    HDR_VARIABLE_DATA_OFFSET,
)
from sequence.errors import MalformedHeader


# -------------------------
# Types
# -------------------------

class CompressionType(IntEnum):
    """
    Compression tags stored in the low nibble of header byte 20.
    """
    NONE = 0
    ZSTD = 1
    ZLIB = 2


class HeaderStatus(str, Enum):
    """
    Outcome of a structural header read.
    """
    OK = "OK"
    INVALID_BUFFER_SIZE = "INVALID_BUFFER_SIZE"
    INVALID_MAGIC = "INVALID_MAGIC"
    INVALID_VERSION = "INVALID_VERSION"
    INVALID_DATA_OFFSET = "INVALID_DATA_OFFSET"

    @property
    def message(self) -> str:
        """Human readable description of the status."""
        return _STATUS_MESSAGES[self]


_STATUS_MESSAGES: dict[HeaderStatus, str] = {
    HeaderStatus.OK: "ok",
    HeaderStatus.INVALID_BUFFER_SIZE: "buffer too small for a sequence header",
    HeaderStatus.INVALID_MAGIC: "missing PSEQ magic identifier",
    HeaderStatus.INVALID_VERSION: "unsupported major version",
    HeaderStatus.INVALID_DATA_OFFSET: "channel/variable data offsets do not fit the buffer",
}


@dataclass(frozen=True)
class SequenceHeader:
    """
    Parsed fixed header of a sequence file.

    compression_type:
        Raw low-nibble tag. Compare against CompressionType; tags the
        decoder does not know are kept as-is and rejected at decode time.

    compression_block_count:
        The 8-bit field at byte 21. The decoder uses the 12-bit extended
        count instead (see extended_block_count()).
    """
    channel_data_offset: int
    minor_version: int
    major_version: int
    variable_data_offset: int
    channel_count: int
    frame_count: int
    frame_step_time_ms: int
    compression_type: int
    compression_block_count: int
    channel_range_count: int
    sequence_uid: int

    @property
    def frame_size(self) -> int:
        """Bytes per frame (one byte per channel)."""
        return self.channel_count


@dataclass(frozen=True)
class HeaderReadResult:
    """
    Result of HeaderReader.read().

    header is None unless status is OK.
    """
    status: HeaderStatus
    header: Optional[SequenceHeader] = None

    @property
    def ok(self) -> bool:
        return self.status is HeaderStatus.OK


# -------------------------
# Low-level helpers
# -------------------------

def _read_u16_le(buf: bytes, offset: int) -> int:
    return struct.unpack_from("<H", buf, offset)[0]


def _read_u32_le(buf: bytes, offset: int) -> int:
    return struct.unpack_from("<I", buf, offset)[0]


def _read_u64_le(buf: bytes, offset: int) -> int:
    return struct.unpack_from("<Q", buf, offset)[0]


def extended_block_count(buffer: bytes) -> int:
    """
    Decode the 12-bit compression block count spanning bytes 20-21.

    The high nibble of byte 20 supplies bits 8-11, byte 21 bits 0-7:
        ((byte20 & 0xF0) << 4) | byte21

    Pure function; the caller guarantees the buffer holds a header.
    """
    high = buffer[HDR_COMPRESSION] & 0xF0
    low = buffer[HDR_BLOCK_COUNT]
    return (high << 4) | low


# -------------------------
# Header read capability
# -------------------------

class HeaderReader(ABC):
    """
    Structural header read capability.

    Implementations validate the fixed header and extract its fields.
    They never raise for malformed input; they report a status instead.
    """

    @abstractmethod
    def read(self, buffer: bytes) -> HeaderReadResult:
        """Validate and extract the header from the start of buffer."""
        raise NotImplementedError


class FseqHeaderReader(HeaderReader):
    """
    Pure-Python FSEQ v2 header reader.
    """

    def read(self, buffer: bytes) -> HeaderReadResult:
        if len(buffer) < FSEQ_MIN_HEADER_BYTES:
            return HeaderReadResult(HeaderStatus.INVALID_BUFFER_SIZE)

        if bytes(buffer[0:4]) not in FSEQ_MAGIC_VALUES:
            return HeaderReadResult(HeaderStatus.INVALID_MAGIC)

        major_version = buffer[HDR_MAJOR_VERSION]
        if major_version != FSEQ_SUPPORTED_MAJOR_VERSION:
            return HeaderReadResult(HeaderStatus.INVALID_VERSION)

        channel_data_offset = _read_u16_le(buffer, HDR_CHANNEL_DATA_OFFSET)
        variable_data_offset = _read_u16_le(buffer, HDR_VARIABLE_DATA_OFFSET)

        if (
            variable_data_offset < FSEQ_MIN_HEADER_BYTES
            or variable_data_offset > channel_data_offset
            or channel_data_offset > len(buffer)
        ):
            return HeaderReadResult(HeaderStatus.INVALID_DATA_OFFSET)

        header = SequenceHeader(
            channel_data_offset=channel_data_offset,
            minor_version=buffer[HDR_MINOR_VERSION],
            major_version=major_version,
            variable_data_offset=variable_data_offset,
            channel_count=_read_u32_le(buffer, HDR_CHANNEL_COUNT),
            frame_count=_read_u32_le(buffer, HDR_FRAME_COUNT),
            frame_step_time_ms=buffer[HDR_STEP_TIME_MS],
            compression_type=buffer[HDR_COMPRESSION] & 0x0F,
            compression_block_count=buffer[HDR_BLOCK_COUNT],
            channel_range_count=buffer[HDR_CHANNEL_RANGE_COUNT],
            sequence_uid=_read_u64_le(buffer, HDR_SEQUENCE_UID),
        )
        return HeaderReadResult(HeaderStatus.OK, header)


DEFAULT_HEADER_READER: HeaderReader = FseqHeaderReader()


# -------------------------
# Parser
# -------------------------

def parse_header(
    buffer: bytes,
    *,
    reader: HeaderReader = DEFAULT_HEADER_READER,
) -> SequenceHeader:
    """
    Parse the fixed header at the start of a sequence buffer.

    Raises:
        MalformedHeader if the buffer is shorter than the fixed header or
        the reader reports a non-OK status.
    """
    if len(buffer) < FSEQ_MIN_HEADER_BYTES:
        raise MalformedHeader(
            f"Sequence buffer is {len(buffer)} bytes; "
            f"a header needs at least {FSEQ_MIN_HEADER_BYTES}",
            status=HeaderStatus.INVALID_BUFFER_SIZE,
        )

    result = reader.read(buffer)
    if not result.ok or result.header is None:
        status = result.status
        message = getattr(status, "message", None)
        if message:
            raise MalformedHeader(
                f"Sequence header read error: {message} "
                f"({getattr(status, 'value', status)})",
                status=status,
            )
        raise MalformedHeader(
            f"Failed to parse sequence header with status: {status}",
            status=status,
        )

    return result.header
