"""Protocol layer: packet framing, type tags, size limits and errors."""

from .limits import MAX_CMD_SIZE, MAX_PACKET_SIZE, MAX_PAYLOAD_SIZE, MIN_PACKET_SIZE
from .packet import (
    Packet,
    RequestType,
    ResponseType,
    UnknownType,
    decode_packet,
    encode_packet,
)
from .errors import (
    AuthenticationFailed,
    CommandTooLong,
    InvalidPacketSize,
    InvalidUtf8Body,
    MalformedPacket,
    PayloadTooLong,
    RconError,
    RconIOError,
)
