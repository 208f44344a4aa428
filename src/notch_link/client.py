"""Console client.

Exposes the console's command vocabulary as request/response operations on
top of any LineTransport (serial port or mock).

Every operation returns a CommandResult. Timeouts, malformed responses,
negative acknowledgements and loss of the connection while a response is
pending are reported as failed results, never raised, so a caller can run
several independent queries and treat each failure as non-fatal. Only
contract violations raise: calling while not connected, overlapping
requests, unsupported environment, failed writes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from .config import LinkConfig
from .errors import (
    CommandTimeoutError,
    ConnectionError,
    DecodeError,
    DeviceLostError,
    NotchLinkError,
    NotConnectedError,
    ReadError,
    WriteError,
)
from .protocol import (
    ACK,
    HANDSHAKE_ACK,
    Command,
    CommandResult,
    ConsoleInfo,
    ConsoleSettings,
    ConsoleSnapshot,
    ConsoleStats,
    MemoryInfo,
    decode_info,
    decode_memory,
    decode_settings,
    decode_stats,
    is_ack,
    nack_detail,
)
from .transport import LineTransport, MockLineTransport, PortSelector, SerialLineTransport

logger = logging.getLogger(__name__)

# Failures that end one exchange but not the caller's workflow
_EXCHANGE_FAILURES = (CommandTimeoutError, DeviceLostError, ReadError, NotConnectedError)


def _expect_handshake(line: str) -> None:
    if line != HANDSHAKE_ACK:
        raise DecodeError(f"Unexpected handshake response: {line!r}")


def _expect_ack(line: str) -> None:
    if not is_ack(line):
        raise DecodeError(f"Expected {ACK}, got {line!r}")


def _any_line(line: str) -> None:
    return None


@dataclass
class ConsoleClient:
    """Client for the NOTCH console.

    Usage:
        async with create_serial_client(LinkConfig(port="/dev/ttyACM0")) as client:
            print(client.snapshot.info)
            result = await client.ping()

        # Testing
        transport = MockLineTransport()
        transport.set_response("HELLO", "NOTCH_READY")
        client = create_test_client(transport)
    """

    _transport: LineTransport
    _owns_transport: bool = field(default=True)
    snapshot: ConsoleSnapshot = field(default_factory=ConsoleSnapshot)

    @property
    def transport(self) -> LineTransport:
        """Access the underlying transport."""
        return self._transport

    @property
    def config(self) -> LinkConfig:
        return self._transport.config

    @property
    def is_connected(self) -> bool:
        return self._transport.is_connected

    # =========================================================================
    # Exchange
    # =========================================================================

    async def _request(
        self,
        command: Command,
        decode: Callable[[str], Any],
        timeout: float | None = None,
    ) -> CommandResult:
        """Send one command, await its response line and decode it."""
        if not self._transport.is_connected:
            raise NotConnectedError(f"Cannot send {command.cmd.value}: not connected")

        line = command.encode()
        try:
            response = await self._transport.send_command_with_response(line, timeout)
        except _EXCHANGE_FAILURES as e:
            logger.debug(f"{command.cmd.value} failed: {e}")
            return CommandResult.fail(e)

        detail = nack_detail(response)
        if detail is not None:
            return CommandResult.fail(f"{command.cmd.value} rejected: {detail}")

        try:
            payload = decode(response)
        except DecodeError as e:
            logger.debug(f"{command.cmd.value} response not understood: {e}")
            return CommandResult.fail(e)
        return CommandResult.ok(payload)

    # =========================================================================
    # Commands
    # =========================================================================

    async def handshake(self) -> CommandResult:
        """Greet the console. Uses the long handshake deadline since the
        console may still be booting."""
        return await self._request(
            Command.handshake(), _expect_handshake, self.config.handshake_timeout
        )

    async def get_info(self) -> CommandResult:
        """Payload: ConsoleInfo."""
        return await self._request(Command.get_info(), decode_info)

    async def get_settings(self) -> CommandResult:
        """Payload: ConsoleSettings."""
        return await self._request(Command.get_settings(), decode_settings)

    async def get_memory(self) -> CommandResult:
        """Payload: MemoryInfo."""
        return await self._request(Command.get_memory(), decode_memory)

    async def get_stats(self) -> CommandResult:
        """Payload: ConsoleStats."""
        return await self._request(Command.get_stats(), decode_stats)

    async def ping(self) -> CommandResult:
        """Succeeds on any response line that is not a negative acknowledgement."""
        return await self._request(Command.ping(), _any_line, self.config.ping_timeout)

    async def open_menu(self) -> CommandResult:
        return await self._request(Command.open_menu(), _expect_ack)

    async def update_setting(self, key: str, value: Any) -> CommandResult:
        """Change one console setting.

        Raises:
            ValueError: If key or value cannot be encoded on the wire.
        """
        command = Command.update_setting(key, value)
        result = await self._request(command, _expect_ack)
        if result.success and self.snapshot.settings is not None:
            self.snapshot.settings.values.update(command.params)
        return result

    # =========================================================================
    # Workflows
    # =========================================================================

    async def _attempt(self, name: str, operation: Callable[[], Awaitable[CommandResult]]) -> Any:
        """Run one informational query; log and swallow its failure."""
        try:
            result = await operation()
        except NotchLinkError as e:
            logger.warning(f"{name} failed: {e}")
            return None
        if not result.success:
            logger.warning(f"{name} failed: {result.error}")
            return None
        return result.payload

    async def open_session(self) -> ConsoleSnapshot:
        """Connect, wake the console, handshake and load its state.

        Info, settings and memory are each attempted independently; a
        failure in one leaves that part of the snapshot empty.

        Raises:
            CapabilityError: If no serial endpoint can exist here.
            ConnectionError: If the port could not be opened or the handshake
                failed (the transport is disconnected again).
        """
        await self._transport.connect()

        # A bare line tells the console to skip its intro and listen
        try:
            await self._transport.send_command("")
        except WriteError as e:
            logger.debug(f"Wake-up line not sent: {e}")

        await asyncio.sleep(self.config.settle_delay)

        try:
            result = await self.handshake()
        except (NotConnectedError, WriteError) as e:
            await self._transport.disconnect()
            raise ConnectionError(f"Handshake failed: {e}") from e
        if not result.success:
            await self._transport.disconnect()
            raise ConnectionError(f"Handshake failed: {result.error}")

        snapshot = ConsoleSnapshot()
        info: ConsoleInfo | None = await self._attempt("GET_INFO", self.get_info)
        settings: ConsoleSettings | None = await self._attempt("GET_SETTINGS", self.get_settings)
        memory: MemoryInfo | None = await self._attempt("GET_MEMORY", self.get_memory)
        snapshot.info, snapshot.settings, snapshot.memory = info, settings, memory
        self.snapshot = snapshot
        return snapshot

    async def refresh(self) -> ConsoleSnapshot:
        """Reload memory and stats, one after the other."""
        memory: MemoryInfo | None = await self._attempt("GET_MEMORY", self.get_memory)
        stats: ConsoleStats | None = await self._attempt("GET_STATS", self.get_stats)
        if memory is not None:
            self.snapshot.memory = memory
        if stats is not None:
            self.snapshot.stats = stats
        return self.snapshot

    async def connect(self) -> None:
        """Connect the transport without running the session workflow."""
        await self._transport.connect()

    async def close(self) -> None:
        """Disconnect the transport (if owned)."""
        if self._owns_transport:
            await self._transport.disconnect()

    async def __aenter__(self) -> ConsoleClient:
        await self.open_session()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


# Factory functions


def create_serial_client(
    config: LinkConfig | None = None,
    port_selector: PortSelector | None = None,
) -> ConsoleClient:
    """Create a client talking to a console over a serial port.

    Args:
        config: Link configuration (default: from NOTCH_* environment)
        port_selector: Chooses a port when none is configured

    Returns:
        ConsoleClient with SerialLineTransport
    """
    transport = SerialLineTransport(config or LinkConfig.from_env(), port_selector=port_selector)
    return ConsoleClient(_transport=transport)


def create_test_client(transport: MockLineTransport | None = None) -> ConsoleClient:
    """Create a client for testing.

    Args:
        transport: Pre-configured mock transport (creates new if None)

    Returns:
        ConsoleClient with MockLineTransport
    """
    return ConsoleClient(
        _transport=transport or MockLineTransport(),
        _owns_transport=transport is None,
    )
