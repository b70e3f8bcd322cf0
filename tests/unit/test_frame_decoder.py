# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from fseq_builders import build_header, make_frame, uncompressed_sequence, zstd_sequence
from sequence.compression import Decompressor, ZstdDecompressor
from sequence.decoder import SequenceFile
from sequence.errors import (
    DecompressionError,
    FrameOutOfRange,
    TruncatedFile,
    UnsupportedLayout,
)


class CountingDecompressor(Decompressor):
    def __init__(self) -> None:
        self.calls = 0
        self._inner = ZstdDecompressor()

    def decompress(self, chunk: bytes) -> bytes:
        self.calls += 1
        return self._inner.decompress(chunk)


class EmptyDecompressor(Decompressor):
    def decompress(self, chunk: bytes) -> bytes:
        return b""


# ---------------------------------------------------------------------
# Uncompressed layout
# ---------------------------------------------------------------------

def test_uncompressed_frames_are_direct_slices():
    buf = uncompressed_sequence(12, 9)
    seq = SequenceFile.parse(buf)

    for i in range(12):
        start = seq.header.channel_data_offset + i * 9
        frame = seq.get_frame(i)
        assert len(frame) == 9
        assert frame == buf[start:start + 9]
        assert frame == make_frame(i, 9)


def test_repeated_reads_are_identical():
    seq = SequenceFile.parse(uncompressed_sequence(5, 4))

    assert seq.get_frame(3) == seq.get_frame(3)


@pytest.mark.parametrize("index", [5, 6, 1_000, -1])
def test_index_out_of_range(index: int):
    seq = SequenceFile.parse(uncompressed_sequence(5, 4))

    with pytest.raises(FrameOutOfRange):
        seq.get_frame(index)


def test_truncated_uncompressed_data():
    buf = uncompressed_sequence(5, 4)[:-3]
    seq = SequenceFile.parse(buf)

    assert seq.get_frame(3) == make_frame(3, 4)
    with pytest.raises(TruncatedFile):
        seq.get_frame(4)


# ---------------------------------------------------------------------
# Unsupported layouts
# ---------------------------------------------------------------------

@pytest.mark.parametrize("compression", [2, 3, 15])
def test_zlib_and_unknown_tags_are_unsupported(compression: int):
    header = build_header(
        channel_data_offset=32,
        variable_data_offset=32,
        channel_count=3,
        frame_count=2,
        compression=compression,
        block_count=1,
    )
    seq = SequenceFile.parse(bytes(header) + b"\x00" * 6)

    with pytest.raises(UnsupportedLayout):
        seq.get_frame(0)


# ---------------------------------------------------------------------
# zstd block layout
# ---------------------------------------------------------------------

@pytest.mark.parametrize("index", [0, 9, 10, 11, 265, 266, 299])
def test_zstd_frames_across_blocks(index: int):
    seq = SequenceFile.parse(zstd_sequence(300, 12))

    assert seq.get_frame(index) == make_frame(index, 12)


def test_zstd_reuses_last_decompressed_block():
    decompressor = CountingDecompressor()
    seq = SequenceFile.parse(zstd_sequence(40, 6), decompressor=decompressor)

    for i in range(10, 40):
        seq.get_frame(i)
    assert decompressor.calls == 1

    seq.get_frame(0)
    seq.get_frame(10)
    assert decompressor.calls == 3


def test_zstd_redecode_is_stable():
    seq = SequenceFile.parse(zstd_sequence(30, 6))

    first = seq.get_frame(15)
    seq.get_frame(2)
    assert seq.get_frame(15) == first


def test_corrupt_chunk_raises_decompression_error():
    buf = bytearray(zstd_sequence(8, 6))
    header_len = 32 + 8
    buf[header_len:] = b"\xde\xad\xbe\xef" * ((len(buf) - header_len) // 4 + 1)
    buf = buf[: len(zstd_sequence(8, 6))]

    seq = SequenceFile.parse(bytes(buf))

    with pytest.raises(DecompressionError):
        seq.get_frame(0)


def test_short_decompressed_block_is_truncated():
    seq = SequenceFile.parse(zstd_sequence(8, 6), decompressor=EmptyDecompressor())

    with pytest.raises(TruncatedFile):
        seq.get_frame(1)


def test_frame_count_bounds_checked_before_block_walk():
    seq = SequenceFile.parse(zstd_sequence(8, 6))

    with pytest.raises(FrameOutOfRange):
        seq.get_frame(8)


# ---------------------------------------------------------------------
# Loading and diagnostics
# ---------------------------------------------------------------------

def test_load_reads_file(tmp_path):
    path = tmp_path / "show.fseq"
    path.write_bytes(uncompressed_sequence(3, 3))

    seq = SequenceFile.load(path)

    assert seq.frame_count == 3
    assert seq.get_frame(2) == make_frame(2, 3)


def test_describe_reports_block_counts():
    seq = SequenceFile.parse(zstd_sequence(300, 3, step_ms=40))

    info = seq.describe()

    assert info["frame_count"] == 300
    assert info["step_time_ms"] == 40
    assert info["compression_name"] == "ZSTD"
    assert info["extended_block_count"] == 3
    assert info["raw_byte_20"] == "0x01"
    assert info["version"] == "2.0"
