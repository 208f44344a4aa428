"""In-memory endpoint for tests and offline development."""

from __future__ import annotations

import asyncio
import errno

from ..config import LinkConfig
from .base import LineTransport, StreamReader, StreamWriter


class _MemoryWriter:
    """StreamWriter stand-in that hands written bytes to the mock."""

    def __init__(self, transport: MockLineTransport) -> None:
        self._transport = transport
        self.closed = False

    def write(self, data: bytes) -> None:
        if self.closed:
            raise BrokenPipeError("Endpoint is closed")
        if self._transport.write_error is not None:
            raise self._transport.write_error
        self._transport._on_write(data)

    async def drain(self) -> None:
        return None

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        return None


class MockLineTransport(LineTransport):
    """Line transport backed by an in-memory byte stream.

    No actual I/O. Incoming bytes are injected with feed(), and canned
    responses can be attached to specific command lines.

    Usage:
        transport = MockLineTransport()
        transport.set_response("PING", "PONG")
        await transport.connect()
        assert await transport.send_command_with_response("PING") == "PONG"
        assert transport.written == ["PING"]
    """

    def __init__(self, config: LinkConfig | None = None, *, supported: bool = True) -> None:
        super().__init__(config)
        self.supported = supported
        self.open_error: Exception | None = None
        self.write_error: Exception | None = None
        self.opened = 0
        self.closed = 0
        self._stream: asyncio.StreamReader | None = None
        self._responses: dict[str, list[str]] = {}
        self._written: list[str] = []

    @property
    def written(self) -> list[str]:
        """Every line written, terminator stripped, in order."""
        return self._written.copy()

    @property
    def open_endpoints(self) -> int:
        return self.opened - self.closed

    def is_supported(self) -> bool:
        return self.supported

    def set_response(self, line: str, *responses: str) -> None:
        """Answer `line` with the given response lines each time it is written."""
        self._responses[line] = list(responses)

    def clear(self) -> None:
        """Clear recorded lines and canned responses."""
        self._written.clear()
        self._responses.clear()

    # Stream control

    def _require_stream(self) -> asyncio.StreamReader:
        if self._stream is None:
            raise RuntimeError("Mock endpoint is not open")
        return self._stream

    def feed(self, data: bytes | str) -> None:
        """Inject bytes as if the console had sent them."""
        if isinstance(data, str):
            data = data.encode(self.config.encoding)
        self._require_stream().feed_data(data)

    def lose_device(self, error: Exception | None = None) -> None:
        """Make the pending read fail as if the device was unplugged."""
        self._require_stream().set_exception(
            error or OSError(errno.EIO, "The device has been lost")
        )

    def end_stream(self) -> None:
        self._require_stream().feed_eof()

    # Endpoint hooks

    def _on_write(self, data: bytes) -> None:
        line = data.decode(self.config.encoding).removesuffix("\n")
        self._written.append(line)
        responses = self._responses.get(line)
        if responses:
            # Deliver after the write returns, like a real device would
            payload = "".join(f"{response}\n" for response in responses)
            asyncio.get_running_loop().call_soon(self._deliver, payload)

    def _deliver(self, payload: str) -> None:
        if self._stream is not None:
            self.feed(payload)

    async def _open_endpoint(self) -> tuple[StreamReader, StreamWriter]:
        if self.open_error is not None:
            raise self.open_error
        self._stream = asyncio.StreamReader()
        self.opened += 1
        return self._stream, _MemoryWriter(self)

    async def _close_endpoint(self) -> None:
        if self._stream is not None:
            self._stream = None
            self.closed += 1
