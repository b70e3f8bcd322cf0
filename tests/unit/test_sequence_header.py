# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from fseq_builders import build_header, uncompressed_sequence
from sequence.errors import MalformedHeader
from sequence.header import (
    CompressionType,
    HeaderReader,
    HeaderReadResult,
    HeaderStatus,
    extended_block_count,
    parse_header,
)


# ---------------------------------------------------------------------
# Size checks
# ---------------------------------------------------------------------

@pytest.mark.parametrize("size", [0, 1, 16, 31])
def test_short_buffer_is_malformed(size: int):
    with pytest.raises(MalformedHeader) as exc_info:
        parse_header(b"\x00" * size)

    assert exc_info.value.status is HeaderStatus.INVALID_BUFFER_SIZE


def test_short_buffer_never_reaches_reader():
    class ExplodingReader(HeaderReader):
        def read(self, buffer: bytes) -> HeaderReadResult:
            raise AssertionError("reader must not be called")

    with pytest.raises(MalformedHeader):
        parse_header(b"PSEQ", reader=ExplodingReader())


# ---------------------------------------------------------------------
# Reader status surfacing
# ---------------------------------------------------------------------

def test_bad_magic_reports_status():
    buf = bytearray(uncompressed_sequence(2, 3))
    buf[0:4] = b"NOPE"

    with pytest.raises(MalformedHeader) as exc_info:
        parse_header(bytes(buf))

    assert exc_info.value.status is HeaderStatus.INVALID_MAGIC
    assert "INVALID_MAGIC" in str(exc_info.value)


def test_unsupported_major_version():
    header = build_header(
        channel_data_offset=32,
        variable_data_offset=32,
        channel_count=3,
        frame_count=0,
        major=1,
    )

    with pytest.raises(MalformedHeader) as exc_info:
        parse_header(bytes(header))

    assert exc_info.value.status is HeaderStatus.INVALID_VERSION


@pytest.mark.parametrize(
    "channel_data_offset,variable_data_offset",
    [
        (32, 16),    # variable data inside the fixed header
        (32, 40),    # variable data after channel data
        (200, 32),   # channel data past the end of the buffer
    ],
)
def test_inconsistent_offsets(channel_data_offset: int, variable_data_offset: int):
    header = build_header(
        channel_data_offset=channel_data_offset,
        variable_data_offset=variable_data_offset,
        channel_count=3,
        frame_count=1,
    )

    with pytest.raises(MalformedHeader) as exc_info:
        parse_header(bytes(header) + b"\x00" * 8)

    assert exc_info.value.status is HeaderStatus.INVALID_DATA_OFFSET


def test_custom_reader_status_is_surfaced():
    class RejectingReader(HeaderReader):
        def read(self, buffer: bytes) -> HeaderReadResult:
            return HeaderReadResult(HeaderStatus.INVALID_MAGIC)

    with pytest.raises(MalformedHeader) as exc_info:
        parse_header(uncompressed_sequence(1, 3), reader=RejectingReader())

    assert exc_info.value.status is HeaderStatus.INVALID_MAGIC


# ---------------------------------------------------------------------
# Field extraction
# ---------------------------------------------------------------------

def test_parses_fixed_fields():
    header_bytes = build_header(
        channel_data_offset=64,
        variable_data_offset=48,
        channel_count=450,
        frame_count=1200,
        step_ms=50,
        compression=1,
        block_count=7,
        range_count=2,
        minor=2,
        uid=42,
    )
    buf = bytes(header_bytes) + b"\x00" * 32

    header = parse_header(buf)

    assert header.channel_data_offset == 64
    assert header.variable_data_offset == 48
    assert header.major_version == 2
    assert header.minor_version == 2
    assert header.channel_count == 450
    assert header.frame_size == 450
    assert header.frame_count == 1200
    assert header.frame_step_time_ms == 50
    assert header.compression_type == CompressionType.ZSTD
    assert header.compression_block_count == 7
    assert header.channel_range_count == 2
    assert header.sequence_uid == 42


def test_unknown_compression_tag_is_kept_for_decoder():
    header_bytes = build_header(
        channel_data_offset=32,
        variable_data_offset=32,
        channel_count=3,
        frame_count=0,
        compression=7,
    )

    header = parse_header(bytes(header_bytes))

    assert header.compression_type == 7


# ---------------------------------------------------------------------
# Extended block count
# ---------------------------------------------------------------------

def test_extended_block_count_spans_two_bytes():
    buf = bytearray(32)
    buf[20] = 0x35
    buf[21] = 0x42

    assert extended_block_count(bytes(buf)) == 0x342 == 834


def test_extended_block_count_without_high_nibble():
    buf = bytearray(32)
    buf[20] = 0x01
    buf[21] = 200

    assert extended_block_count(bytes(buf)) == 200
