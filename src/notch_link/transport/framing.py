"""Newline framing for the console byte stream."""

from __future__ import annotations

import codecs

TERMINATOR = "\n"


def encode_line(line: str, encoding: str = "utf-8") -> bytes:
    """Encode one wire line, appending the terminator.

    Raises:
        ValueError: If the line already contains a line break; the wire
            format has no escaping.
    """
    if "\n" in line or "\r" in line:
        raise ValueError(f"Line must not contain a line break: {line!r}")
    return (line + TERMINATOR).encode(encoding)


class LineBuffer:
    """Accumulates decoded text and splits it into complete lines.

    Bytes are decoded incrementally, so a multi-byte character or a
    terminator split across two chunks is handled the same as one that
    arrives whole. Lines are trimmed; empty lines are dropped.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""

    @property
    def pending(self) -> str:
        """Text received after the last terminator."""
        return self._pending

    def feed(self, chunk: bytes | str) -> list[str]:
        """Append a chunk and return every complete line, in arrival order."""
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        self._pending += chunk

        lines: list[str] = []
        while True:
            index = self._pending.find(TERMINATOR)
            if index == -1:
                break
            line = self._pending[:index].strip()
            self._pending = self._pending[index + 1 :]
            if line:
                lines.append(line)
        return lines

    def reset(self) -> None:
        self._decoder.reset()
        self._pending = ""
