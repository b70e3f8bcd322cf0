# backend/sequence/decoder.py
"""
Frame extraction from a parsed sequence buffer.

Responsibilities:
- Own the immutable sequence buffer and its header
- Return one frame (channel_count bytes) per index
- Dispatch on compression type: direct slice, or locate + decompress + slice

Non-responsibilities:
- No timing, no playback state, no transport

The buffer is never mutated, so get_frame() may be called from a worker
thread while other code reads header fields.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from observability.logger import log
from observability.metrics import timed
from sequence.blocks import BlockLocation, locate_block
from sequence.compression import Decompressor, ZstdDecompressor
from sequence.errors import FrameOutOfRange, TruncatedFile, UnsupportedLayout
from sequence.header import (
    DEFAULT_HEADER_READER,
    CompressionType,
    HeaderReader,
    SequenceHeader,
    extended_block_count,
    parse_header,
)
from constants import HDR_BLOCK_COUNT, HDR_COMPRESSION


class SequenceFile:
    """
    A parsed sequence file.

    Construct with SequenceFile.parse(buffer) or SequenceFile.load(path).

    Caching:
    - The most recently decompressed chunk is kept, keyed by block index.
      Consecutive frames of a block decompress it only once.
    """

    def __init__(
        self,
        buffer: bytes,
        header: SequenceHeader,
        *,
        decompressor: Optional[Decompressor] = None,
    ) -> None:
        self._buffer = bytes(buffer)
        self._header = header
        self._decompressor: Decompressor = decompressor or ZstdDecompressor()

        # (block_index, decompressed chunk)
        self._cached_block: Optional[tuple[int, bytes]] = None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def parse(
        cls,
        buffer: bytes,
        *,
        reader: HeaderReader = DEFAULT_HEADER_READER,
        decompressor: Optional[Decompressor] = None,
    ) -> SequenceFile:
        """
        Parse the header of buffer and wrap it.

        Raises:
            MalformedHeader
        """
        header = parse_header(buffer, reader=reader)
        return cls(buffer, header, decompressor=decompressor)

    @classmethod
    def load(cls, path: str | Path, **kwargs: Any) -> SequenceFile:
        """
        Read a sequence file from disk and parse it.

        Raises:
            OSError if the file cannot be read
            MalformedHeader
        """
        return cls.parse(Path(path).read_bytes(), **kwargs)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def header(self) -> SequenceHeader:
        return self._header

    @property
    def buffer(self) -> bytes:
        return self._buffer

    @property
    def frame_count(self) -> int:
        return self._header.frame_count

    @property
    def channel_count(self) -> int:
        return self._header.channel_count

    @property
    def step_time_ms(self) -> int:
        return self._header.frame_step_time_ms

    # ------------------------------------------------------------------
    # Frame extraction
    # ------------------------------------------------------------------

    def get_frame(self, index: int) -> bytes:
        """
        Return the pixel buffer of frame `index`.

        Raises:
            FrameOutOfRange     index < 0 or index >= frame_count
            TruncatedFile       frame bytes fall outside the buffer
            UnsupportedLayout   zlib, single-stream zstd, unknown tags
            DecompressionError  chunk failed to decompress
        """
        if index < 0 or index >= self._header.frame_count:
            raise FrameOutOfRange(
                f"Frame number {index} is out of bounds "
                f"(total frames: {self._header.frame_count})"
            )

        compression = self._header.compression_type

        if compression == CompressionType.NONE:
            return self._uncompressed_frame(index)

        if compression == CompressionType.ZSTD:
            return self._zstd_frame(index)

        if compression == CompressionType.ZLIB:
            raise UnsupportedLayout("zlib compressed sequences are not implemented")

        raise UnsupportedLayout(f"Unknown sequence compression type: {compression}")

    def _uncompressed_frame(self, index: int) -> bytes:
        frame_size = self._header.frame_size
        frame_start = self._header.channel_data_offset + index * frame_size
        frame_end = frame_start + frame_size

        if frame_end > len(self._buffer):
            raise TruncatedFile(
                f"Uncompressed frame boundaries ({frame_start}-{frame_end}) are "
                f"outside the buffer (size: {len(self._buffer)}); "
                "file is likely truncated"
            )

        return self._buffer[frame_start:frame_end]

    def _zstd_frame(self, index: int) -> bytes:
        location = locate_block(self._header, self._buffer, index)
        block = self._decompressed_block(location)

        frame_size = self._header.frame_size
        frame_start = location.frame_in_block * frame_size
        frame_end = frame_start + frame_size

        if frame_end > len(block):
            raise TruncatedFile(
                f"Decompressed block {location.block_index} ({len(block)} bytes) is too "
                f"small to contain frame {index} (needs bytes {frame_start}-{frame_end})"
            )

        return block[frame_start:frame_end]

    def _decompressed_block(self, location: BlockLocation) -> bytes:
        cached = self._cached_block
        if cached is not None and cached[0] == location.block_index:
            return cached[1]

        chunk = self._buffer[location.chunk_start:location.chunk_end]
        with timed(
            "chunk_decompress",
            level="DEBUG",
            details={
                "block_index": location.block_index,
                "compressed_bytes": len(chunk),
            },
        ) as extra:
            block = self._decompressor.decompress(chunk)
            extra["decompressed_bytes"] = len(block)

        self._cached_block = (location.block_index, block)
        return block

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def describe(self) -> dict[str, Any]:
        """
        Header summary for startup logs and --dump-header.
        """
        h = self._header
        try:
            compression_name = CompressionType(h.compression_type).name
        except ValueError:
            compression_name = "UNKNOWN"

        return {
            "channel_data_offset": h.channel_data_offset,
            "variable_data_offset": h.variable_data_offset,
            "version": f"{h.major_version}.{h.minor_version}",
            "frame_count": h.frame_count,
            "channel_count": h.channel_count,
            "step_time_ms": h.frame_step_time_ms,
            "raw_byte_20": f"0x{self._buffer[HDR_COMPRESSION]:02X}",
            "raw_byte_21": self._buffer[HDR_BLOCK_COUNT],
            "compression_type": h.compression_type,
            "compression_name": compression_name,
            "compression_block_count": h.compression_block_count,
            "extended_block_count": extended_block_count(self._buffer),
            "channel_range_count": h.channel_range_count,
            "sequence_uid": h.sequence_uid,
            "buffer_bytes": len(self._buffer),
        }

    def log_header(self) -> None:
        """Emit the header summary as a SEQUENCE_HEADER event."""
        log("SEQUENCE_HEADER", **self.describe())
