# pylint: disable=missing-module-docstring,missing-function-docstring

import struct
from typing import Any

import pytest

import sequence.blocks as blocks_mod
from fseq_builders import build_header, zstd_sequence
from sequence.blocks import find_block, locate_block, read_block_entry
from sequence.errors import FrameOutOfRange, TruncatedFile, UnsupportedLayout
from sequence.header import SequenceHeader, parse_header


# ---------------------------------------------------------------------
# Block walk
# ---------------------------------------------------------------------

@pytest.mark.parametrize(
    "frame,expected",
    [
        (0, (0, 0)),
        (9, (0, 9)),
        (10, (1, 0)),
        (265, (1, 255)),
        (266, (2, 0)),
        (300, (2, 34)),
    ],
)
def test_block_boundaries(frame: int, expected: tuple[int, int]):
    assert find_block(frame, block_count=3) == expected


def test_walk_exhausts_block_count():
    # 2 blocks cover frames [0, 266)
    with pytest.raises(FrameOutOfRange):
        find_block(266, block_count=2)


def test_negative_frame_rejected():
    with pytest.raises(FrameOutOfRange):
        find_block(-1, block_count=2)


# ---------------------------------------------------------------------
# Table reads
# ---------------------------------------------------------------------

def test_locate_reads_table_ending_at_variable_offset():
    buf = zstd_sequence(20, 6)
    header = parse_header(buf)

    first = locate_block(header, buf, 3)
    second = locate_block(header, buf, 15)

    assert (first.block_index, first.frame_in_block) == (0, 3)
    assert (second.block_index, second.frame_in_block) == (1, 5)
    assert first.chunk_start == header.channel_data_offset
    assert second.chunk_start == first.chunk_end
    assert second.chunk_end == len(buf)


def test_entry_outside_buffer_is_truncated():
    header = SequenceHeader(
        channel_data_offset=32,
        minor_version=0,
        major_version=2,
        variable_data_offset=80,
        channel_count=3,
        frame_count=10,
        frame_step_time_ms=25,
        compression_type=1,
        compression_block_count=1,
        channel_range_count=0,
        sequence_uid=0,
    )
    buf = b"\x00" * 40

    with pytest.raises(TruncatedFile):
        read_block_entry(buf, header, block_count=1, block_index=0)


def test_table_start_before_buffer_is_truncated():
    header = parse_header(zstd_sequence(5, 3))
    buf = zstd_sequence(5, 3)

    with pytest.raises(TruncatedFile):
        # 10 entries do not fit before a variable data offset of 40
        read_block_entry(buf, header, block_count=10, block_index=0)


def test_block_count_zero_is_unsupported():
    header_bytes = build_header(
        channel_data_offset=32,
        variable_data_offset=32,
        channel_count=3,
        frame_count=4,
        compression=1,
        block_count=0,
    )
    buf = bytes(header_bytes) + b"\x00" * 12

    with pytest.raises(UnsupportedLayout):
        locate_block(parse_header(buf), buf, 0)


def test_chunk_past_buffer_is_truncated():
    buf = bytearray(zstd_sequence(20, 6))
    header = parse_header(bytes(buf))
    # Inflate block 1's size beyond the buffer
    entry = header.variable_data_offset - 8
    first_id, _ = struct.unpack_from("<II", buf, entry)
    struct.pack_into("<II", buf, entry, first_id, 10_000)

    with pytest.raises(TruncatedFile):
        locate_block(header, bytes(buf), 12)


# ---------------------------------------------------------------------
# Block 0 offset fallback
# ---------------------------------------------------------------------

def test_block0_bad_offset_falls_back_to_channel_data(monkeypatch: pytest.MonkeyPatch):
    emitted: list[dict[str, Any]] = []

    def fake_log(event_type: str, **fields: Any) -> None:
        emitted.append({"event_type": event_type, **fields})

    monkeypatch.setattr(blocks_mod, "log", fake_log)

    buf = zstd_sequence(20, 6, first_ids={0: 0x7FFF_0000})
    header = parse_header(buf)

    location = locate_block(header, buf, 4)

    assert location.block_index == 0
    assert location.chunk_start == header.channel_data_offset
    assert any(e["event_type"] == "BLOCK0_OFFSET_FALLBACK" for e in emitted)


def test_bad_offset_on_later_block_is_not_recovered():
    buf = zstd_sequence(20, 6, first_ids={1: 0x7FFF_0000})
    header = parse_header(buf)

    with pytest.raises(TruncatedFile):
        locate_block(header, buf, 12)
