"""Console command/response protocol.

Defines the line-oriented command vocabulary spoken by the NOTCH console
and the structured records decoded from its responses.

Key concepts:
- Commands: one line host -> console
- Responses: exactly one line console -> host, correlated by position
- Results: uniform success/payload/error shape for every operation
"""

from .commands import Command, CommandType
from .decoding import (
    ACK,
    HANDSHAKE_ACK,
    NACK,
    decode_info,
    decode_memory,
    decode_settings,
    decode_stats,
    is_ack,
    nack_detail,
    parse_record,
)
from .records import ConsoleInfo, ConsoleSettings, ConsoleSnapshot, ConsoleStats, MemoryInfo
from .results import CommandResult

__all__ = [
    "Command",
    "CommandType",
    "CommandResult",
    "ConsoleInfo",
    "ConsoleSettings",
    "ConsoleSnapshot",
    "ConsoleStats",
    "MemoryInfo",
    "ACK",
    "HANDSHAKE_ACK",
    "NACK",
    "decode_info",
    "decode_memory",
    "decode_settings",
    "decode_stats",
    "is_ack",
    "nack_detail",
    "parse_record",
]
