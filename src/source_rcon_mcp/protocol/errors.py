"""Exception hierarchy for the RCON client."""

from __future__ import annotations

from .limits import MAX_CMD_SIZE, MAX_PACKET_SIZE, MAX_PAYLOAD_SIZE, MIN_PACKET_SIZE


class RconError(Exception):
    """Base class for every error raised by the RCON client."""


class RconIOError(RconError):
    """Transport-level failure: connect, read, write, timeout or EOF."""


class InvalidUtf8Body(RconError):
    """A packet body was not valid UTF-8."""

    def __init__(self, raw: bytes) -> None:
        super().__init__(f"invalid data: packet body is not valid UTF-8 ({len(raw)} bytes)")
        self.raw = raw


class InvalidPacketSize(RconError):
    """A declared packet size was outside the legal bounds."""

    def __init__(self, size: int) -> None:
        super().__init__(
            f"invalid packet size {size} "
            f"(expected size in [{MIN_PACKET_SIZE}, {MAX_PACKET_SIZE}])"
        )
        self.size = size


class MalformedPacket(RconError):
    """Bad packet from server (non-zero terminator or negative body length)."""


class CommandTooLong(RconError):
    def __init__(self, length: int) -> None:
        super().__init__(f"command too long {length} (expected <= {MAX_CMD_SIZE})")
        self.length = length


class PayloadTooLong(RconError):
    def __init__(self, length: int) -> None:
        super().__init__(f"payload too long {length} (expected < {MAX_PAYLOAD_SIZE})")
        self.length = length


class AuthenticationFailed(RconError):
    def __init__(self) -> None:
        super().__init__("authentication failed")
