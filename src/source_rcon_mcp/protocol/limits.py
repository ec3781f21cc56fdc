"""Packet size limits for the Source RCON wire format."""

MIN_PACKET_SIZE = 10  # id(4) + type(4) + empty body terminator(1) + packet terminator(1)
MAX_PACKET_SIZE = 4096
MAX_PAYLOAD_SIZE = MAX_PACKET_SIZE - MIN_PACKET_SIZE

# Client-to-server bodies are capped lower than server responses on
# common servers (Minecraft rejects anything longer).
MAX_CMD_SIZE = 1446
