"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Error hierarchy shared by prompt resolution, rendering, transport and streaming.
"""

from __future__ import annotations

from enum import IntEnum


class ErrorCode(IntEnum):
    """Stable numeric codes attached to every promptloop error."""

    INVALID_PARAM = 1001
    AUTH_FAILED = 1002
    NETWORK_ERROR = 1003
    TEMPLATE_RENDER_ERROR = 1005
    CLIENT_CLOSED = 1006
    PROMPT_NOT_FOUND = 1007
    INTERNAL_ERROR = 1099


class PromptLoopError(Exception):
    """Base error for all promptloop failures."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __str__(self) -> str:
        return f"[{int(self.code)}] {super().__str__()}"


class InvalidParameterError(PromptLoopError):
    """Raised when a required argument is missing, empty or malformed."""

    code = ErrorCode.INVALID_PARAM


class InvalidVariableError(InvalidParameterError):
    """Raised when a variable value does not match its declared type."""

    def __init__(self, key: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Variable '{key}' has invalid type. Expected: {expected}, Got: {actual}"
        )
        self.key = key
        self.expected = expected
        self.actual = actual


class NetworkError(PromptLoopError):
    """Raised by the HTTP collaborator on non-2xx responses or I/O failures."""

    code = ErrorCode.NETWORK_ERROR

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class AuthError(NetworkError):
    """Raised when the remote side rejects the configured credentials."""

    code = ErrorCode.AUTH_FAILED


class TemplateRenderError(PromptLoopError):
    """Raised when a template engine fails to render a template."""

    code = ErrorCode.TEMPLATE_RENDER_ERROR


class ClientClosedError(PromptLoopError):
    """Raised when a closed client is used."""

    code = ErrorCode.CLIENT_CLOSED


class PromptNotFoundError(PromptLoopError):
    """Raised when the prompt hub returns no usable prompt for a reference."""

    code = ErrorCode.PROMPT_NOT_FOUND


class InternalError(PromptLoopError):
    """Raised on unexpected internal state or malformed response shapes."""

    code = ErrorCode.INTERNAL_ERROR


class StreamEventError(InternalError):
    """Raised when the server emits an error event on a streaming response."""

    def __init__(self, message: str, *, event: str | None = None) -> None:
        super().__init__(message)
        self.event = event


class StreamClosedError(PromptLoopError):
    """Raised when reading from a stream reader that is already closed."""
