# backend/protocol/ddp.py
"""
DDP (Distributed Display Protocol) packet framing.

Header (10 bytes, big-endian fields):
    1 byte   flags     0x40 = version 1, | 0x01 = push (last packet of frame)
    1 byte   sequence  low 4 bits, 1..15 (0 = sequencing disabled)
    1 byte   data type 0x0B = RGB, 8 bits per channel
    1 byte   id        0x01 = default output device
    4 bytes  offset    (u32) byte offset of this packet's data in the frame
    2 bytes  length    (u16) data bytes that follow
    N bytes  pixel data (N <= 1440)

Usage example:

    packets = encode_frame(frame_bytes, sequence=seq)
    for packet in packets:
        sock.send(packet)
    seq = next_sequence(seq)
"""

from __future__ import annotations

import struct

from constants import (
    DDP_DATA_TYPE_RGB8,
    DDP_FLAG_PUSH,
    DDP_FLAG_VERSION_1,
    DDP_HEADER_BYTES,
    DDP_ID_DISPLAY,
    DDP_MAX_DATA_BYTES,
    DDP_SEQ_MAX,
    DDP_SEQ_MIN,
)


# -------------------------
# Exceptions
# -------------------------

class DDPProtocolError(Exception):
    """Base class for DDP framing errors."""


class InvalidPacketPayload(DDPProtocolError):
    """
    Raised when packet data is empty or larger than one packet may carry.
    """


class InvalidSequenceNumber(DDPProtocolError):
    """
    Raised when a DDP sequence number is outside 1..15.
    """


# -------------------------
# Sequence numbers
# -------------------------

def next_sequence(current: int) -> int:
    """
    Return the sequence number following `current`, wrapping 15 -> 1.
    """
    if current >= DDP_SEQ_MAX:
        return DDP_SEQ_MIN
    return current + 1


# -------------------------
# Encoding
# -------------------------

def encode_packet(
    *,
    sequence: int,
    offset: int,
    data: bytes,
    push: bool,
    data_type: int = DDP_DATA_TYPE_RGB8,
    dest_id: int = DDP_ID_DISPLAY,
) -> bytes:
    """
    Encode a single DDP data packet.
    """
    if sequence < DDP_SEQ_MIN or sequence > DDP_SEQ_MAX:
        raise InvalidSequenceNumber(f"Invalid DDP sequence: {sequence}")

    if not data or len(data) > DDP_MAX_DATA_BYTES:
        raise InvalidPacketPayload(
            f"DDP payload length {len(data)} not in 1..{DDP_MAX_DATA_BYTES}"
        )

    flags = DDP_FLAG_VERSION_1 | (DDP_FLAG_PUSH if push else 0)

    header = struct.pack(
        ">BBBBIH",
        flags,
        sequence & 0x0F,
        data_type,
        dest_id,
        offset,
        len(data),
    )
    return header + data


def encode_frame(frame: bytes, *, sequence: int) -> list[bytes]:
    """
    Split one frame into DDP packets sharing a sequence number.

    Only the last packet carries the push flag, so the controller
    displays the frame once it is complete.
    """
    if not frame:
        raise InvalidPacketPayload("Cannot encode an empty frame")

    packets: list[bytes] = []
    for offset in range(0, len(frame), DDP_MAX_DATA_BYTES):
        chunk = frame[offset : offset + DDP_MAX_DATA_BYTES]
        packets.append(
            encode_packet(
                sequence=sequence,
                offset=offset,
                data=chunk,
                push=offset + len(chunk) >= len(frame),
            )
        )
    return packets


# -------------------------
# Decoding (diagnostics / tests)
# -------------------------

def decode_packet_header(packet: bytes) -> dict[str, int | bool]:
    """
    Decode the 10-byte header of a DDP packet.
    """
    if len(packet) < DDP_HEADER_BYTES:
        raise InvalidPacketPayload(
            f"DDP packet length {len(packet)} < {DDP_HEADER_BYTES}"
        )

    flags, sequence, data_type, dest_id, offset, length = struct.unpack_from(
        ">BBBBIH", packet, 0
    )
    return {
        "version": (flags >> 6) & 0x03,
        "push": bool(flags & DDP_FLAG_PUSH),
        "sequence": sequence & 0x0F,
        "data_type": data_type,
        "dest_id": dest_id,
        "offset": offset,
        "length": length,
    }
