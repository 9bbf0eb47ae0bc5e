"""
Error taxonomy for the chat-completions gateway.

Callers react differently to each kind:
- Configuration errors are fatal and raised at construction time
- Timeouts carry the phase that stalled and the configured bound
- Upstream errors keep the provider's message, code and HTTP status
- Transport errors cover everything below HTTP (no body, broken connection)
"""

from __future__ import annotations

from enum import Enum
from typing import Any

UNKNOWN_ERROR_CODE = "UNKNOWN"


class TimeoutPhase(Enum):
    """Which bound a timeout error refers to."""
    REQUEST = "request"
    CONNECT = "stream connect"
    READ = "stream read"


class LLMError(Exception):
    """Base LLM error with rich context."""

    def __init__(
        self,
        message: str,
        provider: str = "openrouter",
        model: str | None = None,
        status_code: int | None = None,
        response_data: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.model = model
        self.status_code = status_code
        self.response_data = response_data or {}


class ConfigurationError(LLMError):
    """Client cannot be built from the supplied options."""


class LLMTimeoutError(LLMError, TimeoutError):
    """A request phase exceeded its configured bound."""

    def __init__(self, timeout: float, phase: TimeoutPhase, **kwargs: Any):
        super().__init__(
            f"{phase.value} timed out after {timeout:g}s", **kwargs
        )
        self.timeout = timeout
        self.phase = phase


class UpstreamAPIError(LLMError):
    """Non-2xx response from the upstream API."""

    def __init__(
        self,
        message: str,
        code: str = UNKNOWN_ERROR_CODE,
        status_code: int | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, status_code=status_code, **kwargs)
        self.code = code

    def __str__(self) -> str:
        return f"{self.message} (code={self.code}, status={self.status_code})"


class TransportError(LLMError):
    """Connection failure, missing response body, or malformed 2xx payload."""


class RequestCancelledError(LLMError):
    """The caller's cancellation signal fired."""

    def __init__(self, message: str = "Request cancelled by caller", **kwargs: Any):
        super().__init__(message, **kwargs)
