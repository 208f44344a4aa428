"""notch-link - host-side serial link to the NOTCH console.

Layers:
- transport: newline-framed byte stream with connection lifecycle and a
  single-outstanding request/response primitive
- protocol: command vocabulary, response decoding, uniform results
- client: the console operations and session workflows
"""

from .client import ConsoleClient, create_serial_client, create_test_client
from .config import BAUD_RATE, LinkConfig
from .errors import (
    CapabilityError,
    CommandTimeoutError,
    ConnectionError,
    DecodeError,
    DeviceLostError,
    NotchLinkError,
    NotConnectedError,
    ProtocolBusyError,
    ReadError,
    TransportError,
    WriteError,
)
from .protocol import (
    Command,
    CommandResult,
    CommandType,
    ConsoleInfo,
    ConsoleSettings,
    ConsoleSnapshot,
    ConsoleStats,
    MemoryInfo,
)
from .transport import (
    LineTransport,
    MockLineTransport,
    SerialLineTransport,
    TransportEvent,
    TransportState,
)

__version__ = "0.1.0"

__all__ = [
    # Client
    "ConsoleClient",
    "create_serial_client",
    "create_test_client",
    # Config
    "LinkConfig",
    "BAUD_RATE",
    # Transport
    "LineTransport",
    "SerialLineTransport",
    "MockLineTransport",
    "TransportEvent",
    "TransportState",
    # Protocol
    "Command",
    "CommandType",
    "CommandResult",
    "ConsoleInfo",
    "ConsoleSettings",
    "ConsoleSnapshot",
    "ConsoleStats",
    "MemoryInfo",
    # Errors
    "NotchLinkError",
    "CapabilityError",
    "TransportError",
    "ConnectionError",
    "NotConnectedError",
    "WriteError",
    "ReadError",
    "DeviceLostError",
    "ProtocolBusyError",
    "CommandTimeoutError",
    "DecodeError",
]
