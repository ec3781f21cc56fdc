"""Source RCON packet encoder and decoder.

Packet layout (all integers little-endian, signed 32-bit)::

    +---------+---------+---------+------------------+------+------+
    |  Size   |   ID    |  Type   |       Body       | 0x00 | 0x00 |
    | 4 bytes | 4 bytes | 4 bytes | size - 10 bytes  |      |      |
    +---------+---------+---------+------------------+------+------+

- Size: length of everything after the size field (id + type + body + 2)
- ID: chosen by the client for requests, echoed (or -1) by the server
- Type: request or response tag, see :class:`RequestType` / :class:`ResponseType`
- Body: UTF-8 text without NUL bytes
- The two trailing zero bytes are an empty string terminator and the
  packet terminator; both must always be zero
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import BinaryIO, Union

from .errors import (
    InvalidPacketSize,
    InvalidUtf8Body,
    MalformedPacket,
    PayloadTooLong,
    RconIOError,
)
from .limits import MAX_PACKET_SIZE, MAX_PAYLOAD_SIZE, MIN_PACKET_SIZE

logger = logging.getLogger(__name__)

INT_SIZE = 4
HEADER_SIZE = 8  # id + type, counted by the size field
TERMINATOR = b"\x00\x00"


class RequestType(IntEnum):
    """Client-to-server packet types."""

    AUTH = 3
    EXEC_COMMAND = 2


class ResponseType(IntEnum):
    """Server-to-client packet types."""

    RESPONSE_VALUE = 0
    AUTH_RESPONSE = 2  # shares its wire code with EXEC_COMMAND


@dataclass(frozen=True)
class UnknownType:
    """A type code the client does not recognise, kept as-is."""

    code: int

    def __int__(self) -> int:
        return self.code

    def __repr__(self) -> str:
        return f"UnknownType({self.code})"


PacketType = Union[RequestType, ResponseType, UnknownType]


def response_type(code: int) -> ResponseType | UnknownType:
    """Map a raw wire code to a response variant.

    Only server packets are ever decoded, so code 2 always means
    AUTH_RESPONSE here.
    """
    try:
        return ResponseType(code)
    except ValueError:
        return UnknownType(code)


@dataclass(frozen=True)
class Packet:
    """A single RCON packet."""

    id: int
    packet_type: PacketType
    body: str = ""

    @property
    def size(self) -> int:
        """Value of the size field: everything after the size field itself."""
        return HEADER_SIZE + len(self.body.encode("utf-8")) + len(TERMINATOR)

    @property
    def is_error(self) -> bool:
        """Negative ids are reserved by the server to signal auth failure."""
        return self.id < 0

    def encode(self) -> bytes:
        return encode_packet(self.id, self.packet_type, self.body)

    def __repr__(self) -> str:
        return (
            f"Packet(id={self.id}, type={self.packet_type!r}, "
            f"body={self.body!r})"
        )


def _int32(value: int) -> bytes:
    return int(value).to_bytes(INT_SIZE, "little", signed=True)


def encode_packet(packet_id: int, packet_type: PacketType, body: str = "") -> bytes:
    """Serialize one packet to its exact wire bytes.

    Args:
        packet_id: Request id (signed 32-bit).
        packet_type: Type tag; its integer value is written as-is.
        body: UTF-8 text payload.

    Raises:
        PayloadTooLong: If the encoded body would not fit in a packet.
        MalformedPacket: If the body contains a NUL byte.
    """
    if "\x00" in body:
        raise MalformedPacket("packet body must not contain NUL bytes")
    payload = body.encode("utf-8")
    if len(payload) >= MAX_PAYLOAD_SIZE:
        raise PayloadTooLong(len(payload))

    size = HEADER_SIZE + len(payload) + len(TERMINATOR)
    return _int32(size) + _int32(packet_id) + _int32(int(packet_type)) + payload + TERMINATOR


def _read_exact(stream: BinaryIO, n: int) -> bytes:
    """Read exactly ``n`` bytes or raise :class:`RconIOError`."""
    buf = b""
    while len(buf) < n:
        try:
            chunk = stream.read(n - len(buf))
        except OSError as e:
            raise RconIOError(f"read failed: {e}") from e
        if not chunk:
            raise RconIOError(
                f"unexpected end of stream (wanted {n} bytes, got {len(buf)})"
            )
        buf += chunk
    return buf


def _read_int32(stream: BinaryIO) -> int:
    return int.from_bytes(_read_exact(stream, INT_SIZE), "little", signed=True)


def decode_packet(stream: BinaryIO) -> Packet:
    """Read one packet from a byte stream.

    Args:
        stream: Any object with a ``read(n)`` method returning bytes.

    Returns:
        The decoded packet, with its type interpreted as a response.

    Raises:
        InvalidPacketSize: If the size field is out of bounds.
        InvalidUtf8Body: If the body is not valid UTF-8.
        MalformedPacket: If the terminator bytes are not zero.
        RconIOError: If the stream fails or ends early.
    """
    size = _read_int32(stream)
    packet_id = _read_int32(stream)
    raw_type = _read_int32(stream)

    # Checked before allocating the body so a corrupt length can't drive the read
    if not MIN_PACKET_SIZE <= size <= MAX_PACKET_SIZE:
        raise InvalidPacketSize(size)

    body_len = size - MIN_PACKET_SIZE
    if body_len < 0:
        raise MalformedPacket(f"negative body length {body_len}")

    raw_body = _read_exact(stream, body_len)
    try:
        body = raw_body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidUtf8Body(raw_body) from e

    terminator = _read_exact(stream, len(TERMINATOR))
    if terminator != TERMINATOR:
        raise MalformedPacket(
            f"bad packet terminator {terminator.hex(' ')} (expected 00 00)"
        )

    packet = Packet(id=packet_id, packet_type=response_type(raw_type), body=body)
    logger.debug("recv id=%d type=%r size=%d", packet_id, packet.packet_type, size)
    return packet
