"""
Sequence decoding error kinds.

Every failure raised while parsing a sequence buffer or extracting a frame
is a SequenceError. Callers that only need to know "this playback attempt
is over" catch the base class.
"""

from __future__ import annotations


class SequenceError(Exception):
    """Base class for sequence file decoding errors."""


class MalformedHeader(SequenceError):
    """
    Raised when the fixed header cannot be parsed.

    Carries the status reported by the header reader so the original
    code and message reach the operator.
    """

    def __init__(self, message: str, *, status: object | None = None) -> None:
        super().__init__(message)
        self.status = status


class TruncatedFile(SequenceError):
    """
    Raised when a computed byte range falls outside the buffer.

    Covers uncompressed frame slices, block table entries, compressed
    chunks and short decompressed output.
    """


class FrameOutOfRange(SequenceError):
    """Raised when a frame index is not covered by the sequence."""


class UnsupportedLayout(SequenceError):
    """
    Raised for layouts the decoder recognizes but does not handle.

    Examples: zlib blocks, single-stream zstd (block count 0),
    unknown compression tags.
    """


class DecompressionError(SequenceError):
    """Raised when a compressed chunk cannot be decompressed."""
