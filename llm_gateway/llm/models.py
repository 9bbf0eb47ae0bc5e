"""
Core request/response models for the chat-completions gateway.

This module provides:
- Caller-built turns and requests (validated, immutable)
- Upstream completion results (parsed pass-through of the provider payload)
- The frozen client configuration shared by all calls on one client
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import ConfigurationError

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "deepseek/deepseek-v3.2"
DEFAULT_APP_URL = "http://localhost:5173"
DEFAULT_APP_NAME = "Anna"

DEFAULT_REQUEST_TIMEOUT = 60.0
DEFAULT_STREAM_CONNECT_TIMEOUT = 30.0
DEFAULT_STREAM_READ_TIMEOUT = 30.0

API_KEY_ENV = "OPENROUTER_API_KEY"
DEFAULT_MODEL_ENV = "OPENROUTER_DEFAULT_MODEL"
APP_URL_ENV = "WEB_URL"


class MessageRole(Enum):
    """Roles accepted from callers."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ChatTurn(BaseModel):
    """One caller-supplied conversation turn."""
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    role: MessageRole
    content: str = Field(min_length=1)


class CompletionRequest(BaseModel):
    """Per-call request parameters; unset fields fall back to client defaults."""
    model_config = ConfigDict(frozen=True)

    turns: tuple[ChatTurn, ...] = Field(min_length=1)
    model: str | None = None
    temperature: float = Field(default=0.7, ge=0, le=2)
    max_tokens: int = Field(default=4096, ge=1, le=128000)
    top_p: float = Field(default=1.0, ge=0, le=1)
    stream: bool = False

    def to_payload(self, default_model: str, *, stream: bool) -> dict[str, Any]:
        """Build the upstream JSON body."""
        return {
            "model": self.model or default_model,
            "messages": [
                {"role": turn.role, "content": turn.content} for turn in self.turns
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "top_p": self.top_p,
            "stream": stream,
        }


class ReplyMessage(BaseModel):
    """Assistant message inside an upstream choice."""
    model_config = ConfigDict(extra="allow")

    role: str
    content: str | None = None


class CompletionChoice(BaseModel):
    model_config = ConfigDict(extra="allow")

    index: int
    message: ReplyMessage
    finish_reason: str | None = None


class TokenUsage(BaseModel):
    """Token usage statistics."""
    model_config = ConfigDict(extra="allow")

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class CompletionResult(BaseModel):
    """Non-streaming completion, as returned by the upstream API."""
    model_config = ConfigDict(frozen=True, extra="allow")

    id: str
    model: str
    choices: list[CompletionChoice]
    usage: TokenUsage = Field(default_factory=TokenUsage)
    created: int

    @property
    def content(self) -> str | None:
        """Text of the first choice, if any."""
        if not self.choices:
            return None
        return self.choices[0].message.content


def _first_set(*values: str | None) -> str | None:
    for value in values:
        if value is not None and value.strip():
            return value.strip()
    return None


def _positive(name: str, value: float | None, default: float) -> float:
    if value is None:
        return default
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value!r}")
    return float(value)


@dataclass(frozen=True)
class ClientConfig:
    """Configuration fixed for a client's lifetime."""
    api_key: str
    default_model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL

    # Timeouts in seconds
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    stream_connect_timeout: float = DEFAULT_STREAM_CONNECT_TIMEOUT
    stream_read_timeout: float = DEFAULT_STREAM_READ_TIMEOUT

    # Descriptive headers sent upstream
    app_url: str = DEFAULT_APP_URL
    app_name: str = DEFAULT_APP_NAME

    @classmethod
    def resolve(
        cls,
        api_key: str | None = None,
        default_model: str | None = None,
        *,
        base_url: str | None = None,
        request_timeout: float | None = None,
        stream_connect_timeout: float | None = None,
        stream_read_timeout: float | None = None,
        app_url: str | None = None,
        app_name: str | None = None,
    ) -> ClientConfig:
        """
        Build a config from explicit options, then environment, then defaults.

        Raises:
            ConfigurationError: If no API key is available or a timeout is
                not positive.
        """
        key = _first_set(api_key, os.getenv(API_KEY_ENV))
        if not key:
            raise ConfigurationError(f"{API_KEY_ENV} is required")

        return cls(
            api_key=key,
            default_model=_first_set(default_model, os.getenv(DEFAULT_MODEL_ENV))
            or DEFAULT_MODEL,
            base_url=_first_set(base_url) or DEFAULT_BASE_URL,
            request_timeout=_positive(
                "request_timeout", request_timeout, DEFAULT_REQUEST_TIMEOUT
            ),
            stream_connect_timeout=_positive(
                "stream_connect_timeout",
                stream_connect_timeout,
                DEFAULT_STREAM_CONNECT_TIMEOUT,
            ),
            stream_read_timeout=_positive(
                "stream_read_timeout", stream_read_timeout, DEFAULT_STREAM_READ_TIMEOUT
            ),
            app_url=_first_set(app_url, os.getenv(APP_URL_ENV)) or DEFAULT_APP_URL,
            app_name=_first_set(app_name) or DEFAULT_APP_NAME,
        )
