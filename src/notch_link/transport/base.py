"""Line transport for the console link.

Turns a raw, half-duplex byte stream into newline-delimited lines and
provides a single-outstanding request/response primitive on top of it.

Architecture:
- LineTransport owns the endpoint, the connection state and the read loop
- Subclasses only open and close the physical endpoint (serial port, mock)
- Incoming lines go to the pending response slot if one is registered,
  otherwise to the unsolicited-data listeners

Correlation is positional: the console answers every command with exactly
one line, so the first line decoded after a command is its response. That
only works with one request in flight, so an overlapping request is
rejected with ProtocolBusyError rather than queued.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import Any, Protocol

from ..config import LinkConfig
from ..errors import (
    CapabilityError,
    CommandTimeoutError,
    ConnectionError,
    DeviceLostError,
    NotConnectedError,
    ProtocolBusyError,
    ReadError,
    WriteError,
)
from .framing import LineBuffer, encode_line

logger = logging.getLogger(__name__)

# Textual indications of an unplugged device, across platforms and drivers
_DEVICE_LOST_MARKERS = ("device has been lost", "device disconnected", "device not configured")


class TransportState(str, Enum):
    """Connection state machine.

    CONNECTING is only observable while connect() is running; the protocol
    treats it as not connected.
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class TransportEvent(str, Enum):
    """Lifecycle events raised to listeners."""

    CONNECTED = "connected"  # callback()
    DISCONNECTED = "disconnected"  # callback()
    ERROR = "error"  # callback(cause)
    UNSOLICITED_DATA = "unsolicited_data"  # callback(line)


class StreamReader(Protocol):
    """The subset of asyncio.StreamReader the read loop uses."""

    async def read(self, n: int = -1) -> bytes: ...


class StreamWriter(Protocol):
    """The subset of asyncio.StreamWriter the transport writes through."""

    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...

    def close(self) -> None: ...

    async def wait_closed(self) -> None: ...


# Listener callbacks may be plain functions or coroutine functions
EventCallback = Callable[..., Any]


class PendingResponse:
    """One-shot slot for the caller waiting on the next line.

    The deadline timer and the line dispatch are mutually exclusive:
    whichever resolves the slot first cancels the other.
    """

    def __init__(self, line: str, future: asyncio.Future[str]) -> None:
        self.line = line
        self.future = future
        self.timer: asyncio.TimerHandle | None = None

    def resolve(self, line: str) -> bool:
        if self.timer is not None:
            self.timer.cancel()
        if self.future.done():
            return False
        self.future.set_result(line)
        return True

    def fail(self, error: BaseException) -> bool:
        if self.timer is not None:
            self.timer.cancel()
        if self.future.done():
            return False
        self.future.set_exception(error)
        return True

    def discard(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
        if not self.future.done():
            self.future.cancel()
        elif not self.future.cancelled():
            # Mark a failure nobody will await as retrieved
            self.future.exception()


class LineTransport(ABC):
    """Base class for line transports.

    Provides:
    - Connection state management with guaranteed cleanup
    - Background read loop with line framing
    - send_command / send_command_with_response primitives
    - Event listeners (connected, disconnected, error, unsolicited data)
    """

    def __init__(self, config: LinkConfig | None = None) -> None:
        self.config = config or LinkConfig()
        self._state = TransportState.DISCONNECTED
        self._writer: StreamWriter | None = None
        self._read_task: asyncio.Task[None] | None = None
        self._pending: PendingResponse | None = None
        self._listeners: dict[TransportEvent, list[EventCallback]] = {
            event: [] for event in TransportEvent
        }
        self._callback_tasks: set[asyncio.Task[Any]] = set()
        self._lock = asyncio.Lock()

    # =========================================================================
    # State
    # =========================================================================

    @property
    def state(self) -> TransportState:
        """Current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        """Check if transport is connected."""
        return self._state == TransportState.CONNECTED

    def get_connection_status(self) -> bool:
        return self.is_connected

    @property
    def has_pending_response(self) -> bool:
        return self._pending is not None and not self._pending.future.done()

    def is_supported(self) -> bool:
        """Check whether this environment can provide an endpoint at all."""
        return True

    def _has_resources(self) -> bool:
        return (
            self._state != TransportState.DISCONNECTED
            or self._writer is not None
            or self._read_task is not None
        )

    # =========================================================================
    # Events
    # =========================================================================

    def on(self, event: TransportEvent | str, callback: EventCallback) -> Callable[[], None]:
        """Register a listener for a transport event.

        Returns:
            A function that removes the listener again.
        """
        listeners = self._listeners[TransportEvent(event)]
        listeners.append(callback)

        def unsubscribe() -> None:
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    def _emit(self, event: TransportEvent, *args: Any) -> None:
        for callback in list(self._listeners[event]):
            try:
                result = callback(*args)
            except Exception:
                logger.exception(f"Listener for '{event.value}' raised")
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._callback_tasks.add(task)
                task.add_done_callback(self._callback_done)

    def _callback_done(self, task: asyncio.Task[Any]) -> None:
        self._callback_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Async listener raised: {task.exception()!r}")

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def connect(self) -> None:
        """Open the endpoint and start the read loop.

        Any existing connection is fully torn down first, so at most one
        endpoint is open at a time.

        Raises:
            CapabilityError: If the environment cannot provide an endpoint.
            ConnectionError: If opening the endpoint failed (chained to the cause).
        """
        if not self.is_supported():
            raise CapabilityError(f"{type(self).__name__} is not supported in this environment")

        async with self._lock:
            if self._has_resources():
                logger.info("Already connected, tearing down before reconnecting")
                await self._disconnect_unlocked()

            self._state = TransportState.CONNECTING
            try:
                reader, writer = await self._open_endpoint()
            except asyncio.CancelledError:
                logger.info("Connect cancelled")
                await self._cleanup(NotConnectedError("Connect cancelled"))
                raise
            except Exception as e:
                logger.error(f"Connection failed: {e}")
                await self._cleanup(NotConnectedError("Connection failed"))
                self._emit(TransportEvent.ERROR, e)
                raise ConnectionError(f"Failed to connect: {e}") from e

            self._writer = writer
            self._state = TransportState.CONNECTED
            buffer = LineBuffer(self.config.encoding)
            self._read_task = asyncio.create_task(self._read_loop(reader, buffer))

        logger.info(f"{type(self).__name__} connected")
        self._emit(TransportEvent.CONNECTED)

    async def disconnect(self) -> None:
        """Close the connection. No-op if already disconnected."""
        async with self._lock:
            await self._disconnect_unlocked()

    async def _disconnect_unlocked(self) -> None:
        if not self._has_resources():
            return
        await self._cleanup(NotConnectedError("Transport disconnected while awaiting a response"))
        logger.info(f"{type(self).__name__} disconnected")
        self._emit(TransportEvent.DISCONNECTED)

    async def _cleanup(self, pending_error: BaseException) -> None:
        """Release reader, writer and endpoint, in that order.

        Never raises. Whatever triggered it, the transport ends up
        DISCONNECTED with no resource references and no pending response.
        """
        read_task, writer = self._read_task, self._writer
        self._read_task = None
        self._writer = None
        self._state = TransportState.DISCONNECTED

        pending, self._pending = self._pending, None
        if pending is not None:
            pending.fail(pending_error)

        if read_task is not None and read_task is not asyncio.current_task():
            read_task.cancel()
            try:
                await read_task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.debug(f"Read loop ended with error during cleanup: {e}")

        if writer is not None:
            try:
                writer.close()
                await writer.wait_closed()
            except Exception as e:
                logger.debug(f"Ignoring error while closing writer: {e}")

        try:
            await self._close_endpoint()
        except Exception as e:
            logger.debug(f"Ignoring error while closing endpoint: {e}")

    # =========================================================================
    # Sending
    # =========================================================================

    def _require_connected(self) -> StreamWriter:
        if self._state != TransportState.CONNECTED or self._writer is None:
            raise NotConnectedError("Not connected")
        return self._writer

    async def send_command(self, line: str) -> None:
        """Write one line to the endpoint, appending the terminator.

        Raises:
            NotConnectedError: If not connected.
            WriteError: If the write failed. Not retried.
            ValueError: If the line contains a line break.
        """
        writer = self._require_connected()
        data = encode_line(line, self.config.encoding)
        try:
            writer.write(data)
            await writer.drain()
        except Exception as e:
            logger.error(f"Write of {line!r} failed: {e}")
            self._emit(TransportEvent.ERROR, e)
            raise WriteError(f"Failed to write {line!r}: {e}") from e
        logger.debug(f"Sent {line!r}")

    async def send_command_with_response(self, line: str, timeout: float | None = None) -> str:
        """Write one line and wait for the next line received.

        The response slot and its deadline are registered before the write,
        so a response arriving immediately cannot be missed.

        Args:
            line: Command line, without terminator
            timeout: Deadline in seconds (default: config.response_timeout)

        Returns:
            The response line, trimmed.

        Raises:
            NotConnectedError: If not connected, or disconnected while waiting.
            ProtocolBusyError: If another response is still pending.
            WriteError: If the write failed.
            CommandTimeoutError: If no line arrived before the deadline.
            DeviceLostError: If the device disappeared while waiting.
            ReadError: If the read loop failed while waiting.
        """
        self._require_connected()
        current = self._pending
        if current is not None and not current.future.done():
            raise ProtocolBusyError(
                f"Cannot send {line!r} while awaiting the response to {current.line!r}"
            )

        if timeout is None:
            timeout = self.config.response_timeout

        loop = asyncio.get_running_loop()
        pending = PendingResponse(line, loop.create_future())
        pending.timer = loop.call_later(timeout, self._expire_pending, pending, timeout)
        self._pending = pending

        try:
            await self.send_command(line)
        except BaseException:
            self._release_pending(pending)
            pending.discard()
            raise

        try:
            return await pending.future
        finally:
            # Cancelled callers must not leave the slot behind
            self._release_pending(pending)
            pending.discard()

    def _release_pending(self, pending: PendingResponse) -> None:
        if self._pending is pending:
            self._pending = None

    def _expire_pending(self, pending: PendingResponse, timeout: float) -> None:
        self._release_pending(pending)
        if pending.fail(CommandTimeoutError(f"No response to {pending.line!r} within {timeout:g}s")):
            logger.debug(f"Timed out waiting for response to {pending.line!r}")

    # =========================================================================
    # Receiving
    # =========================================================================

    async def _read_loop(self, reader: StreamReader, buffer: LineBuffer) -> None:
        """Background task reading chunks and dispatching lines."""
        try:
            while True:
                chunk = await reader.read(self.config.read_chunk_size)
                if not chunk:
                    break
                for line in buffer.feed(chunk):
                    self._dispatch_line(line)
        except asyncio.CancelledError:
            return
        except Exception as e:
            await self._handle_read_failure(e)
            return
        await self._handle_read_failure(None)

    def _dispatch_line(self, line: str) -> None:
        pending, self._pending = self._pending, None
        if pending is not None and pending.resolve(line):
            logger.debug(f"Response to {pending.line!r}: {line!r}")
            return
        logger.debug(f"Unsolicited line: {line!r}")
        self._emit(TransportEvent.UNSOLICITED_DATA, line)

    async def _handle_read_failure(self, exc: Exception | None) -> None:
        """Tear down after the stream ended or failed.

        Fires DISCONNECTED exactly once for the lost connection, then ERROR
        with the underlying cause (not for a clean end of stream).

        Runs under the connection lock so a concurrent connect() waits for
        the teardown instead of having its new endpoint closed by it.
        """
        async with self._lock:
            if self._read_task is not asyncio.current_task():
                # Connection was already torn down by someone else
                return
            await self._teardown_after_read_failure(exc)

    async def _teardown_after_read_failure(self, exc: Exception | None) -> None:
        if exc is None:
            logger.info("Endpoint closed the stream")
            pending_error: Exception = DeviceLostError("Endpoint closed the stream")
        elif self._is_device_lost(exc):
            logger.info(f"Device lost: {exc}")
            pending_error = DeviceLostError(f"Device lost: {exc}")
            pending_error.__cause__ = exc
        else:
            logger.error(f"Read loop error: {exc}")
            pending_error = ReadError(f"Read failed: {exc}")
            pending_error.__cause__ = exc

        await self._cleanup(pending_error)
        self._emit(TransportEvent.DISCONNECTED)
        if exc is not None:
            self._emit(TransportEvent.ERROR, exc)

    def _is_device_lost(self, exc: BaseException) -> bool:
        """Classify a read failure as physical device loss."""
        if isinstance(exc, (ConnectionResetError, BrokenPipeError)):
            return True
        message = str(exc).lower()
        return any(marker in message for marker in _DEVICE_LOST_MARKERS)

    # =========================================================================
    # Endpoint hooks for subclasses
    # =========================================================================

    @abstractmethod
    async def _open_endpoint(self) -> tuple[StreamReader, StreamWriter]:
        """Acquire and open the endpoint, returning its byte streams."""
        ...

    async def _close_endpoint(self) -> None:
        """Release the endpoint after reader and writer are closed."""
        return None

    async def __aenter__(self) -> LineTransport:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()
