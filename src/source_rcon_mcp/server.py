"""MCP server entry point for Source RCON game servers.

Exposes tools, resources, and prompts via the Model Context Protocol
using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any

from mcp.server.fastmcp import FastMCP
from pydantic import ValidationError

from .config import load_settings
from .protocol.errors import RconError
from .protocol.limits import (
    MAX_CMD_SIZE,
    MAX_PACKET_SIZE,
    MAX_PAYLOAD_SIZE,
    MIN_PACKET_SIZE,
)
from .transport.tcp_connection import RconConnection, connect as rcon_connect

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "source-rcon",
    instructions="MCP server for administering game servers over Source RCON",
)

# Global connection state
_connection: RconConnection | None = None
# One request in flight per connection; tools may run on worker threads
_lock = threading.Lock()


def _get_connection() -> RconConnection:
    """Get the active RCON connection, raising if not connected."""
    if _connection is None or not _connection.usable:
        raise RuntimeError(
            "Not connected to a server. Use the 'connect' tool first."
        )
    return _connection


def _drop_connection() -> None:
    global _connection
    if _connection is not None:
        _connection.close()
    _connection = None


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(
    host: str | None = None,
    port: int | None = None,
    password: str | None = None,
) -> dict[str, Any]:
    """Open an authenticated RCON session to a game server.

    Missing arguments fall back to RCON_HOST, RCON_PORT and RCON_PASS.

    Args:
        host: Server hostname or IP address.
        port: RCON TCP port (default 25575).
        password: RCON password.
    """
    global _connection
    with _lock:
        if _connection is not None and _connection.usable:
            return {
                "connected": True,
                "message": "Already connected",
                "address": _connection.address,
            }
        _drop_connection()

        try:
            settings = load_settings(host=host, port=port, password=password)
        except ValidationError as e:
            return {"connected": False, "error": f"invalid settings: {e}"}

        try:
            _connection = rcon_connect(
                settings.address, settings.password, timeout=settings.timeout
            )
        except RconError as e:
            logger.warning("Connect to %s:%d failed: %s", settings.host, settings.port, e)
            return {"connected": False, "error": str(e)}

        return {
            "connected": True,
            "address": _connection.address,
            "handshake": _connection.handshake_status.value,
        }


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the RCON session."""
    with _lock:
        _drop_connection()
    return {"disconnected": True}


@mcp.tool()
def status() -> dict[str, Any]:
    """Report whether a session is open and which request id comes next."""
    with _lock:
        if _connection is None or not _connection.usable:
            return {"connected": False}
        return {
            "connected": True,
            "address": _connection.address,
            "handshake": _connection.handshake_status.value,
            "next_request_id": _connection.next_id,
        }


# ─── COMMAND TOOLS ────────────────────────────────────────────────────

@mcp.tool()
def exec_command(command: str) -> dict[str, Any]:
    """Run one console command on the server and return its full output.

    Args:
        command: Console command, at most 1446 bytes of UTF-8.
    """
    with _lock:
        conn = _get_connection()
        try:
            response = conn.exec(command)
        except RconError as e:
            if not conn.usable:
                _drop_connection()
            return {"command": command, "error": str(e)}
    return {"command": command, "response": response}


@mcp.tool()
def exec_batch(commands: list[str]) -> dict[str, Any]:
    """Run several console commands one after another.

    Each command completes before the next is sent. Stops at the first
    failure.

    Args:
        commands: Console commands in execution order.
    """
    results: list[dict[str, Any]] = []
    with _lock:
        conn = _get_connection()
        for command in commands:
            try:
                results.append({"command": command, "response": conn.exec(command)})
            except RconError as e:
                results.append({"command": command, "error": str(e)})
                if not conn.usable:
                    _drop_connection()
                return {"results": results, "completed": False}
    return {"results": results, "completed": True}


# ─── MCP RESOURCES ────────────────────────────────────────────────────

@mcp.resource("rcon://protocol/limits")
def resource_limits() -> str:
    """Packet size limits of the Source RCON wire format."""
    return json.dumps({
        "min_packet_size": MIN_PACKET_SIZE,
        "max_packet_size": MAX_PACKET_SIZE,
        "max_payload_size": MAX_PAYLOAD_SIZE,
        "max_command_size": MAX_CMD_SIZE,
    })


# ─── MCP PROMPTS ─────────────────────────────────────────────────────

@mcp.prompt()
def server_admin(task: str) -> str:
    """Guide the AI through an administration task on the connected server.

    Args:
        task: What should be done (e.g., "kick idle players", "save the world").
    """
    return f"""Carry out this server administration task: {task}

Consider:
- Use the status tool to check the session, and connect if needed
- Inspect the server state first (e.g. "status", "list", "help")
- Run one command at a time with exec_command, or exec_batch for a fixed sequence
- Commands are limited to {MAX_CMD_SIZE} bytes
- Read each response before issuing the next command

Report what was run and what the server answered."""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    settings = load_settings()
    logging.basicConfig(level=settings.log_level)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
