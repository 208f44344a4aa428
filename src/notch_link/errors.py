"""Exception hierarchy for the NOTCH serial link.

Transport-level failures derive from TransportError. Protocol-level failures
(timeouts, malformed responses) are normally captured into a failed
CommandResult by the client rather than raised.
"""

from __future__ import annotations

import builtins


class NotchLinkError(Exception):
    """Base exception for all notch-link errors."""


class CapabilityError(NotchLinkError):
    """The environment cannot provide a serial endpoint."""


class TransportError(NotchLinkError):
    """Error in the serial transport layer."""


class ConnectionError(TransportError, builtins.ConnectionError):
    """Opening the endpoint or the handshake sequence failed."""


class NotConnectedError(TransportError):
    """Operation attempted without an open connection."""


class WriteError(TransportError):
    """Writing a line to the endpoint failed."""


class ReadError(TransportError):
    """Reading from the endpoint failed for a reason other than device loss."""


class DeviceLostError(TransportError):
    """The physical device disappeared while the connection was open."""


class ProtocolBusyError(TransportError):
    """A correlated request was issued while another one was still pending."""


class CommandTimeoutError(NotchLinkError, builtins.TimeoutError):
    """No response line arrived before the deadline."""


class DecodeError(NotchLinkError):
    """A response line did not match the expected shape."""
