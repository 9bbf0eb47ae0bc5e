"""
Chat-completions integration with an OpenAI-compatible upstream.

This package provides:
- Validated request models and pass-through result models
- A categorized error taxonomy (configuration, timeout, upstream, transport)
- Deadline racing for connect, read and request phases
- Incremental SSE decoding for streamed completions
"""

from __future__ import annotations

from .exceptions import (
    ConfigurationError,
    LLMError,
    LLMTimeoutError,
    RequestCancelledError,
    TimeoutPhase,
    TransportError,
    UpstreamAPIError,
)
from .models import (
    ChatTurn,
    ClientConfig,
    CompletionChoice,
    CompletionRequest,
    CompletionResult,
    MessageRole,
    TokenUsage,
)

__all__ = [
    # Models
    "ChatTurn",
    "ClientConfig",
    "CompletionChoice",
    "CompletionRequest",
    "CompletionResult",
    # Exceptions
    "ConfigurationError",
    "LLMError",
    "LLMTimeoutError",
    "MessageRole",
    "RequestCancelledError",
    "TimeoutPhase",
    "TokenUsage",
    "TransportError",
    "UpstreamAPIError",
]
