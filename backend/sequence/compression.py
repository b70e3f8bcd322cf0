"""
Decompression capability for block-compressed sequences.

The decoder never talks to a compression library directly; it holds a
Decompressor so the scheme can be swapped (or faked in tests).
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import zstandard

from sequence.errors import DecompressionError


class Decompressor(ABC):
    """
    Abstract interface for decompressing one whole chunk.
    """

    @abstractmethod
    def decompress(self, chunk: bytes) -> bytes:
        """
        Decompress a complete chunk.

        Raises:
            DecompressionError if the chunk is not valid for this scheme.
        """
        raise NotImplementedError


class ZstdDecompressor(Decompressor):
    """
    zstd chunk decompressor.

    Chunks written without a content size in the frame header are
    streamed to the end, so no output size hint is needed.
    """

    def __init__(self) -> None:
        self._dctx = zstandard.ZstdDecompressor()

    def decompress(self, chunk: bytes) -> bytes:
        try:
            with self._dctx.stream_reader(chunk, read_across_frames=True) as reader:
                return reader.read()
        except zstandard.ZstdError as e:
            raise DecompressionError(f"Failed to decompress zstd chunk: {e}") from e
