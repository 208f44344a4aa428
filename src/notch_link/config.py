"""Link configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

# The console firmware runs its UART at a fixed rate; there is no negotiation.
BAUD_RATE = 9600


@dataclass
class LinkConfig:
    """Configuration for a console link.

    Timeouts and delays are in seconds.
    """

    # Device path (e.g. /dev/ttyACM0, COM3); None selects one at connect time
    port: str | None = None
    baud_rate: int = BAUD_RATE

    # Correlated request deadlines
    response_timeout: float = 10.0
    handshake_timeout: float = 15.0
    ping_timeout: float = 3.0

    # Time the console needs after the wake-up line before it answers a handshake
    settle_delay: float = 2.0

    # Read loop
    read_chunk_size: int = 256
    encoding: str = "utf-8"

    @classmethod
    def from_env(cls, **overrides: object) -> LinkConfig:
        """Build a config from NOTCH_* environment variables.

        Explicit keyword overrides win over the environment; None overrides
        are ignored so CLI options can be passed through unconditionally.
        """
        config = cls(
            port=os.getenv("NOTCH_PORT") or None,
            response_timeout=_env_float("NOTCH_RESPONSE_TIMEOUT", cls.response_timeout),
            handshake_timeout=_env_float("NOTCH_HANDSHAKE_TIMEOUT", cls.handshake_timeout),
            ping_timeout=_env_float("NOTCH_PING_TIMEOUT", cls.ping_timeout),
            settle_delay=_env_float("NOTCH_SETTLE_DELAY", cls.settle_delay),
        )
        for key, value in overrides.items():
            if value is None:
                continue
            if not hasattr(config, key):
                raise TypeError(f"Unknown config option: {key}")
            setattr(config, key, value)
        return config


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {raw!r}")
    return value
