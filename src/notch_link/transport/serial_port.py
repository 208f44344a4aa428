"""Serial port endpoint via pyserial-asyncio."""

from __future__ import annotations

import errno
import inspect
import logging
import os
from collections.abc import Awaitable, Callable, Sequence

import serial
import serial_asyncio
from serial.tools import list_ports
from serial.tools.list_ports_common import ListPortInfo

from ..config import LinkConfig
from ..errors import ConnectionError
from .base import LineTransport, StreamReader, StreamWriter

logger = logging.getLogger(__name__)

# errno values the OS reports when a USB serial adapter is unplugged mid-read
_DEVICE_LOST_ERRNOS = {errno.ENODEV, errno.ENXIO, errno.EIO}

# Called with the detected ports when none is configured; returns the device
# path to open, or None to abort. May be a coroutine function.
PortSelector = Callable[[Sequence[ListPortInfo]], "str | None | Awaitable[str | None]"]


def scan_ports() -> list[ListPortInfo]:
    """List candidate serial ports, sorted by device path."""
    return sorted(list_ports.comports(), key=lambda p: p.device)


class SerialLineTransport(LineTransport):
    """Line transport over a serial port.

    Opens the port at the console's fixed baud rate. When no port is
    configured, the port is chosen at connect time: by `port_selector`
    if given (e.g. an interactive prompt), otherwise the only detected
    port.
    """

    def __init__(
        self,
        config: LinkConfig | None = None,
        port_selector: PortSelector | None = None,
    ) -> None:
        super().__init__(config)
        self._port_selector = port_selector
        self._port: str | None = None
        self._serial_transport: serial_asyncio.SerialTransport | None = None

    @property
    def port(self) -> str | None:
        """Device path of the open port, if any."""
        return self._port

    def is_supported(self) -> bool:
        # pyserial ships backends for POSIX and Windows only
        return os.name in ("posix", "nt")

    async def _resolve_port(self) -> str:
        if self.config.port:
            return self.config.port

        candidates = scan_ports()
        if self._port_selector is not None:
            choice = self._port_selector(candidates)
            if inspect.isawaitable(choice):
                choice = await choice
            if not choice:
                raise ConnectionError("No serial port selected")
            return choice

        if len(candidates) == 1:
            return candidates[0].device
        if not candidates:
            raise ConnectionError("No serial ports found")
        devices = ", ".join(p.device for p in candidates)
        raise ConnectionError(f"Multiple serial ports found ({devices}); choose one explicitly")

    async def _open_endpoint(self) -> tuple[StreamReader, StreamWriter]:
        port = await self._resolve_port()
        logger.info(f"Opening {port} at {self.config.baud_rate} baud")
        reader, writer = await serial_asyncio.open_serial_connection(
            url=port,
            baudrate=self.config.baud_rate,
        )
        self._port = port
        self._serial_transport = writer.transport
        return reader, writer

    async def _close_endpoint(self) -> None:
        transport, self._serial_transport = self._serial_transport, None
        port, self._port = self._port, None
        if transport is not None and not transport.is_closing():
            transport.abort()
        if port is not None:
            logger.debug(f"Closed {port}")

    def _is_device_lost(self, exc: BaseException) -> bool:
        if isinstance(exc, serial.SerialException):
            return True
        if isinstance(exc, OSError) and exc.errno in _DEVICE_LOST_ERRNOS:
            return True
        return super()._is_device_lost(exc)
