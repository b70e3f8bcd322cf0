# backend/sequence/blocks.py
"""
Compressed block indexing.

A block-compressed sequence stores frames in consecutive zstd chunks:
- block 0 holds the first 10 frames
- every later block holds 256 frames

The chunk table is block_count contiguous 8-byte entries
    4 bytes  first_frame_byte_id (u32, little-endian)
    4 bytes  size_bytes          (u32, little-endian)
ending exactly at the header's variable data offset. first_frame_byte_id
is relative to the channel data offset.

Usage example:

    location = locate_block(header, buffer, frame_index)
    chunk = buffer[location.chunk_start:location.chunk_end]
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from constants import BLOCK0_FRAME_SPAN, BLOCK_ENTRY_BYTES, BLOCK_FRAME_SPAN
from observability.logger import log
from sequence.errors import FrameOutOfRange, TruncatedFile, UnsupportedLayout
from sequence.header import SequenceHeader, extended_block_count


@dataclass(frozen=True)
class CompressionBlockEntry:
    """
    One entry of the compression block table.
    """
    first_frame_byte_id: int
    size_bytes: int


@dataclass(frozen=True)
class BlockLocation:
    """
    Where a frame lives inside a block-compressed buffer.

    chunk_start / chunk_end are absolute buffer offsets of the compressed
    chunk; frame_in_block is the frame's position inside the decompressed
    chunk.
    """
    block_index: int
    frame_in_block: int
    chunk_start: int
    chunk_end: int


def block_frame_span(block_index: int) -> int:
    """Number of frames stored in a block."""
    return BLOCK0_FRAME_SPAN if block_index == 0 else BLOCK_FRAME_SPAN


def find_block(frame_index: int, block_count: int) -> tuple[int, int]:
    """
    Walk cumulative block ranges to the block holding frame_index.

    Returns:
        (block_index, frame_in_block)

    Raises:
        FrameOutOfRange if the walk runs past block_count blocks.
    """
    if frame_index < 0:
        raise FrameOutOfRange(f"Frame number {frame_index} is negative")

    first_frame = 0
    block_index = 0
    while block_index < block_count:
        span = block_frame_span(block_index)
        if frame_index < first_frame + span:
            return block_index, frame_index - first_frame
        first_frame += span
        block_index += 1

    raise FrameOutOfRange(
        f"Frame number {frame_index} is outside the available blocks "
        f"({block_count} blocks cover {first_frame} frames)"
    )


def read_block_entry(
    buffer: bytes,
    header: SequenceHeader,
    block_count: int,
    block_index: int,
) -> CompressionBlockEntry:
    """
    Read one 8-byte entry from the table ending at variable_data_offset.

    Raises:
        TruncatedFile if the entry lies outside the buffer.
    """
    table_start = header.variable_data_offset - block_count * BLOCK_ENTRY_BYTES
    entry_start = table_start + block_index * BLOCK_ENTRY_BYTES

    if table_start < 0 or entry_start + BLOCK_ENTRY_BYTES > len(buffer):
        raise TruncatedFile(
            f"Buffer too small to read block metadata "
            f"(expected {BLOCK_ENTRY_BYTES} bytes at offset {entry_start}, "
            f"buffer is {len(buffer)} bytes)"
        )

    first_frame_byte_id, size_bytes = struct.unpack_from("<II", buffer, entry_start)
    return CompressionBlockEntry(
        first_frame_byte_id=first_frame_byte_id,
        size_bytes=size_bytes,
    )


def locate_block(
    header: SequenceHeader,
    buffer: bytes,
    frame_index: int,
) -> BlockLocation:
    """
    Map a frame index to its compressed chunk.

    Raises:
        UnsupportedLayout  block count 0 (single-stream compression)
        FrameOutOfRange    frame not covered by the block table
        TruncatedFile      table entry or chunk bounds outside the buffer
    """
    block_count = extended_block_count(buffer)
    if block_count == 0:
        raise UnsupportedLayout(
            "Compressed sequence with block count 0 is unsupported (single-stream zstd)"
        )

    block_index, frame_in_block = find_block(frame_index, block_count)
    entry = read_block_entry(buffer, header, block_count, block_index)

    chunk_start = header.channel_data_offset + entry.first_frame_byte_id

    # Some files in the wild carry a bogus first offset for block 0.
    # TODO: confirm against the xLights writer whether block 0's id is ever
    # meant to be absolute; drop this fallback if it is not.
    if chunk_start > len(buffer) and block_index == 0:
        log(
            "BLOCK0_OFFSET_FALLBACK",
            level="WARNING",
            bad_offset=chunk_start,
            forced_offset=header.channel_data_offset,
            buffer_bytes=len(buffer),
        )
        chunk_start = header.channel_data_offset

    chunk_end = chunk_start + entry.size_bytes

    if chunk_end > len(buffer):
        raise TruncatedFile(
            f"Compressed chunk boundaries ({chunk_start}-{chunk_end}) are outside "
            f"the buffer (size: {len(buffer)}); block metadata is inconsistent"
        )

    log(
        "BLOCK_LOCATED",
        level="DEBUG",
        frame=frame_index,
        block_index=block_index,
        frame_in_block=frame_in_block,
        block_count=block_count,
        chunk_start=chunk_start,
        chunk_end=chunk_end,
    )

    return BlockLocation(
        block_index=block_index,
        frame_in_block=frame_in_block,
        chunk_start=chunk_start,
        chunk_end=chunk_end,
    )
