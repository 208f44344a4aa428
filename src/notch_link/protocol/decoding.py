"""Response line decoders.

Record responses come in two shapes:

    MEMORY:sram=1024,flash=30720,eeprom=512
    {"sram": 1024, "flash": 30720, "eeprom": 512}

The `TAG:` prefix is optional, but when present it must name the command
that was sent. Decoders raise DecodeError; the client turns that into a
failed CommandResult.
"""

from __future__ import annotations

import json
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import DecodeError
from .records import ConsoleInfo, ConsoleSettings, ConsoleStats, MemoryInfo

HANDSHAKE_ACK = "NOTCH_READY"
ACK = "OK"
NACK = "ERR"

M = TypeVar("M", bound=BaseModel)


def is_ack(line: str) -> bool:
    """Check for a positive acknowledgement ("OK" or "OK <text>")."""
    return line == ACK or line.startswith(ACK + " ")


def nack_detail(line: str) -> str | None:
    """Return the failure detail of a negative acknowledgement, or None."""
    if line != NACK and not line.startswith((NACK + " ", NACK + ":")):
        return None
    detail = line[len(NACK) :].lstrip(" :")
    return detail or "console reported an error"


def parse_record(line: str, tag: str) -> dict[str, Any]:
    """Split a record response into a raw key/value mapping."""
    line = line.strip()

    if line.startswith("{"):
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            raise DecodeError(f"Malformed {tag} response {line!r}: {e.msg}") from e
        if not isinstance(data, dict):
            raise DecodeError(f"Malformed {tag} response {line!r}: expected an object")
        return data

    head, sep, body = line.partition(":")
    if sep and "=" not in head:
        if head.strip().upper() != tag:
            raise DecodeError(f"Expected {tag} response, got {line!r}")
    else:
        body = line

    fields: dict[str, Any] = {}
    for item in body.split(","):
        if not item.strip():
            continue
        key, eq, value = item.partition("=")
        key = key.strip()
        if not eq or not key:
            raise DecodeError(f"Malformed {tag} response {line!r}: bad field {item.strip()!r}")
        fields[key] = value.strip()
    return fields


def _validate(model: type[M], data: dict[str, Any], line: str, tag: str) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(part) for part in first["loc"])
        raise DecodeError(f"Malformed {tag} response {line!r}: {where}: {first['msg']}") from e


def decode_info(line: str) -> ConsoleInfo:
    return _validate(ConsoleInfo, parse_record(line, "INFO"), line, "INFO")


def decode_settings(line: str) -> ConsoleSettings:
    fields = parse_record(line, "SETTINGS")
    values = {key: str(value) for key, value in fields.items()}
    return _validate(ConsoleSettings, {"values": values}, line, "SETTINGS")


def decode_memory(line: str) -> MemoryInfo:
    return _validate(MemoryInfo, parse_record(line, "MEMORY"), line, "MEMORY")


def decode_stats(line: str) -> ConsoleStats:
    fields = parse_record(line, "STATS")
    return _validate(ConsoleStats, {"counters": fields}, line, "STATS")
