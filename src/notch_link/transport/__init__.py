"""Line transports for the console link.

- LineTransport: base class (state machine, read loop, response slot, events)
- SerialLineTransport: pyserial-asyncio serial port endpoint
- MockLineTransport: in-memory endpoint for testing
"""

from .base import (
    EventCallback,
    LineTransport,
    PendingResponse,
    TransportEvent,
    TransportState,
)
from .framing import TERMINATOR, LineBuffer, encode_line
from .mock import MockLineTransport
from .serial_port import PortSelector, SerialLineTransport, scan_ports

__all__ = [
    # Base
    "LineTransport",
    "PendingResponse",
    "TransportEvent",
    "TransportState",
    "EventCallback",
    # Framing
    "LineBuffer",
    "TERMINATOR",
    "encode_line",
    # Implementations
    "SerialLineTransport",
    "MockLineTransport",
    "PortSelector",
    "scan_ports",
]
