"""Structured payloads decoded from console responses."""

from pydantic import BaseModel, ConfigDict, Field


class ConsoleInfo(BaseModel):
    """Identity reported by GET_INFO."""

    model_config = ConfigDict(extra="allow")

    firmware: str | None = None
    version: str | None = None
    device: str | None = None


class ConsoleSettings(BaseModel):
    """User-adjustable settings reported by GET_SETTINGS."""

    values: dict[str, str] = Field(default_factory=dict)

    def get(self, key: str, default: str | None = None) -> str | None:
        return self.values.get(key, default)


class MemoryInfo(BaseModel):
    """Free memory reported by GET_MEMORY, in bytes."""

    sram: int = Field(ge=0)
    flash: int = Field(ge=0)
    eeprom: int = Field(ge=0)


class ConsoleStats(BaseModel):
    """Usage counters reported by GET_STATS."""

    counters: dict[str, int] = Field(default_factory=dict)


class ConsoleSnapshot(BaseModel):
    """Everything the host knows about the console after a session workflow.

    Any part may be None when the corresponding query failed.
    """

    info: ConsoleInfo | None = None
    settings: ConsoleSettings | None = None
    memory: MemoryInfo | None = None
    stats: ConsoleStats | None = None
