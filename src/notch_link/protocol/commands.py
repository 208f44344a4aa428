"""Command definitions for the console protocol.

Every command is encoded as exactly one line of text. The console answers
each command with exactly one line, so correlation is positional: the next
line received after a command is its response.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

# Characters that would break the line framing or the key=value encoding
_RESERVED = ("\n", "\r", ",", "=", ":")


class CommandType(str, Enum):
    """All supported command tokens."""

    # Session
    HANDSHAKE = "HELLO"
    PING = "PING"

    # Informational queries
    GET_INFO = "GET_INFO"
    GET_SETTINGS = "GET_SETTINGS"
    GET_MEMORY = "GET_MEMORY"
    GET_STATS = "GET_STATS"

    # Control
    OPEN_MENU = "OPEN_MENU"
    UPDATE_SETTING = "SET"


class Command(BaseModel):
    """A command from host to console.

    Example:
        Command.update_setting("brightness", 5).encode() == "SET:brightness=5"
    """

    cmd: CommandType
    params: dict[str, Any] = Field(default_factory=dict)

    def encode(self) -> str:
        """Encode as a single wire line, without the terminator."""
        if not self.params:
            return self.cmd.value
        body = ",".join(f"{key}={value}" for key, value in self.params.items())
        return f"{self.cmd.value}:{body}"

    @classmethod
    def create(
        cls,
        cmd: str | CommandType,
        params: dict[str, Any] | None = None,
    ) -> Command:
        """Factory method for creating commands."""
        return cls(
            cmd=cmd if isinstance(cmd, CommandType) else CommandType(cmd),
            params=params or {},
        )

    # Convenience factories

    @classmethod
    def handshake(cls) -> Command:
        return cls.create(CommandType.HANDSHAKE)

    @classmethod
    def ping(cls) -> Command:
        return cls.create(CommandType.PING)

    @classmethod
    def get_info(cls) -> Command:
        return cls.create(CommandType.GET_INFO)

    @classmethod
    def get_settings(cls) -> Command:
        return cls.create(CommandType.GET_SETTINGS)

    @classmethod
    def get_memory(cls) -> Command:
        return cls.create(CommandType.GET_MEMORY)

    @classmethod
    def get_stats(cls) -> Command:
        return cls.create(CommandType.GET_STATS)

    @classmethod
    def open_menu(cls) -> Command:
        return cls.create(CommandType.OPEN_MENU)

    @classmethod
    def update_setting(cls, key: str, value: Any) -> Command:
        """Create a SET command.

        Raises:
            ValueError: If key or value contains a reserved character, or
                the key is empty.
        """
        key = str(key).strip()
        text = str(value).strip()
        if not key:
            raise ValueError("Setting key must not be empty")
        for label, part in (("key", key), ("value", text)):
            bad = [ch for ch in _RESERVED if ch in part]
            if bad:
                raise ValueError(f"Setting {label} {part!r} contains reserved character {bad[0]!r}")
        return cls.create(CommandType.UPDATE_SETTING, {key: text})
