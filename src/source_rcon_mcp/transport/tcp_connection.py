"""TCP connection to a Source RCON server.

One connection owns one socket and one request-id counter. Every call
blocks until its whole exchange has completed, and only one request is
ever in flight: responses are attributed purely by the server answering
in FIFO order.
"""

from __future__ import annotations

import logging
import socket
from enum import Enum
from typing import Union

from ..protocol.errors import (
    AuthenticationFailed,
    CommandTooLong,
    MalformedPacket,
    RconError,
    RconIOError,
)
from ..protocol.limits import MAX_CMD_SIZE
from ..protocol.packet import (
    Packet,
    PacketType,
    RequestType,
    ResponseType,
    decode_packet,
    encode_packet,
)

logger = logging.getLogger(__name__)

DEFAULT_PORT = 25575
READ_TIMEOUT_S = 5.0
MAX_REQUEST_ID = 2**31 - 1

Address = Union[str, tuple[str, int]]


class HandshakeStatus(Enum):
    """How the server answered the authentication request.

    The protocol says an auth request is answered by an empty
    RESPONSE_VALUE carrying the request id, then an AUTH_RESPONSE. Some
    servers only send the AUTH_RESPONSE, which is then not guaranteed to
    belong to our request.
    """

    MATCHED = "matched"
    BARE_AUTH_RESPONSE = "bare_auth_response"


def parse_address(address: Address, default_port: int = DEFAULT_PORT) -> tuple[str, int]:
    """Normalise ``"host:port"``, ``"host"`` or ``(host, port)`` to a tuple.

    Raises:
        RconIOError: If the port is missing or not a number.
    """
    try:
        return _split_address(address, default_port)
    except ValueError as e:
        raise RconIOError(f"invalid address {address!r}") from e


def _split_address(address: Address, default_port: int) -> tuple[str, int]:
    if isinstance(address, tuple):
        host, port = address
        return host, int(port)

    text = address.strip()
    if text.startswith("["):
        # [v6addr]:port
        host, _, rest = text[1:].partition("]")
        port = rest.lstrip(":")
        return host, int(port) if port else default_port
    if text.count(":") == 1:
        host, _, port = text.partition(":")
        return host, int(port)
    return text, default_port


class RconConnection:
    """Manages an authenticated RCON session over TCP.

    Usage::

        conn = RconConnection("localhost", 25575)
        conn.open()
        conn.auth("secret")
        print(conn.exec("status"))
        conn.close()

    or simply ``with connect("localhost:25575", "secret") as conn: ...``.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = DEFAULT_PORT,
        timeout: float = READ_TIMEOUT_S,
    ) -> None:
        self._host = host
        self._port = port
        self._timeout = timeout
        self._sock: socket.socket | None = None
        self._reader = None
        self._next_id = 0
        self._usable = False
        self.handshake_status: HandshakeStatus | None = None

    @property
    def address(self) -> str:
        return f"{self._host}:{self._port}"

    @property
    def connected(self) -> bool:
        return self._sock is not None

    @property
    def usable(self) -> bool:
        """False once closed or after any failed exchange."""
        return self._sock is not None and self._usable

    @property
    def next_id(self) -> int:
        return self._next_id

    def __enter__(self) -> RconConnection:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def open(self) -> None:
        """Open the TCP stream.

        Raises:
            RconIOError: If the server cannot be reached.
        """
        try:
            sock = socket.create_connection((self._host, self._port), timeout=self._timeout)
            sock.settimeout(self._timeout)
        except OSError as e:
            raise RconIOError(f"could not connect to {self.address}: {e}") from e

        self._sock = sock
        self._reader = sock.makefile("rb")
        self._usable = True
        logger.info("Connected to %s", self.address)

    def close(self) -> None:
        """Close the stream. Safe to call more than once."""
        if self._sock is None:
            return

        try:
            try:
                self._reader.close()
            finally:
                self._sock.close()
        except OSError as e:
            logger.warning("Error closing connection: %s", e)
        finally:
            self._sock = None
            self._reader = None
            self._usable = False
            logger.info("Disconnected from %s", self.address)

    def auth(self, password: str) -> HandshakeStatus:
        """Authenticate the session.

        Returns:
            Which of the two accepted reply shapes the server used.

        Raises:
            AuthenticationFailed: If the server rejected the password.
            RconIOError: On transport failure.
        """
        self._ensure_usable()
        try:
            self.handshake_status = self._handshake(password)
        except RconError:
            self._usable = False
            raise
        return self.handshake_status

    def exec(self, command: str) -> str:
        """Run one console command and return its full output.

        The command is followed by an empty EXEC_COMMAND. Since the server
        answers strictly in order, the echo of that empty request marks the
        end of the (possibly multi-packet) response to the real one.

        Raises:
            CommandTooLong: If the command exceeds ``MAX_CMD_SIZE`` bytes.
                Nothing is sent in that case.
            MalformedPacket: If the command contains a NUL byte. Nothing
                is sent in that case either.
            RconIOError: On transport failure or a closed connection.
        """
        length = len(command.encode("utf-8"))
        if length > MAX_CMD_SIZE:
            raise CommandTooLong(length)
        if "\x00" in command:
            raise MalformedPacket("packet body must not contain NUL bytes")

        self._ensure_usable()
        try:
            self._send(RequestType.EXEC_COMMAND, command)
            return self._recv_multi_packet_response()
        except RconError:
            self._usable = False
            raise

    def _ensure_usable(self) -> None:
        if self._sock is None:
            raise RconIOError("not connected")
        if not self._usable:
            raise RconIOError("connection is no longer usable, reconnect")

    def _handshake(self, password: str) -> HandshakeStatus:
        auth_id = self._send(RequestType.AUTH, password)

        response: Packet | None = None
        while True:
            packet = self._recv()
            if packet.packet_type == ResponseType.RESPONSE_VALUE:
                # Empty body and matching id: first half of a proper reply
                if packet.body == "" and packet.id == auth_id:
                    status = HandshakeStatus.MATCHED
                    break
            elif packet.packet_type == ResponseType.AUTH_RESPONSE:
                response = packet
                status = HandshakeStatus.BARE_AUTH_RESPONSE
                break
            logger.debug("Skipping packet during auth: %r", packet)

        if response is None:
            response = self._recv()
        else:
            logger.warning(
                "Server %s sent a bare auth response without a matching "
                "RESPONSE_VALUE", self.address,
            )

        if response.packet_type != ResponseType.AUTH_RESPONSE or response.is_error:
            raise AuthenticationFailed()

        logger.info("Authenticated with %s (%s)", self.address, status.value)
        return status

    def _recv_multi_packet_response(self) -> str:
        end_id = self._send(RequestType.EXEC_COMMAND, "")
        parts: list[str] = []
        while True:
            packet = self._recv()
            if packet.id == end_id:
                break
            parts.append(packet.body)
        return "".join(parts)

    def _fetch_and_add_id(self) -> int:
        """Return the current request id and advance the counter.

        Wraps back to 1 on overflow; 0 is only ever used once and negative
        ids are reserved for auth failure.
        """
        packet_id = self._next_id
        self._next_id = packet_id + 1 if packet_id < MAX_REQUEST_ID else 1
        return packet_id

    def _send(self, packet_type: PacketType, body: str) -> int:
        packet_id = self._fetch_and_add_id()
        data = encode_packet(packet_id, packet_type, body)
        try:
            self._sock.sendall(data)
        except OSError as e:
            raise RconIOError(f"write failed: {e}") from e
        logger.debug("send id=%d type=%r size=%d", packet_id, packet_type, len(data) - 4)
        return packet_id

    def _recv(self) -> Packet:
        return decode_packet(self._reader)


def connect(
    address: Address,
    password: str,
    timeout: float = READ_TIMEOUT_S,
) -> RconConnection:
    """Open a connection and authenticate it.

    Args:
        address: ``"host:port"`` or a ``(host, port)`` tuple.
        password: RCON password.
        timeout: Socket connect and read timeout in seconds.

    Returns:
        A ready-to-use :class:`RconConnection`.

    Raises:
        AuthenticationFailed: If the password is rejected.
        RconIOError: If the server cannot be reached.
    """
    host, port = parse_address(address)
    conn = RconConnection(host, port, timeout=timeout)
    conn.open()
    try:
        conn.auth(password)
    except RconError:
        conn.close()
        raise
    return conn
