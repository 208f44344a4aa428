"""Uniform result shape for console operations."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class CommandResult(BaseModel):
    """Outcome of one request/response exchange.

    On success `payload` carries the decoded record (or None for
    acknowledgement-only commands); on failure `error` describes why.
    """

    success: bool
    payload: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, payload: Any = None) -> CommandResult:
        return cls(success=True, payload=payload)

    @classmethod
    def fail(cls, error: str | BaseException) -> CommandResult:
        message = str(error)
        if not message and isinstance(error, BaseException):
            message = type(error).__name__
        return cls(success=False, error=message)
