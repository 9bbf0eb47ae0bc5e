"""
HTTP client for OpenAI-compatible chat-completion APIs.

Two entry points:
- complete(): one request, one structured result, bounded end to end
- complete_stream(): an async iterator of text fragments decoded from SSE,
  with a bound on time-to-headers and a separate bound on every chunk read
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from llm_gateway.logging_utils import log_operation

from .deadline import ensure_not_cancelled, race_deadline
from .exceptions import (
    UNKNOWN_ERROR_CODE,
    ConfigurationError,
    TimeoutPhase,
    TransportError,
    UpstreamAPIError,
)
from .models import ClientConfig, CompletionRequest, CompletionResult
from .streaming.models import SSEEventType
from .streaming.parser import SSEDecoder

logger = structlog.get_logger(__name__)

COMPLETIONS_PATH = "/chat/completions"


async def _next_chunk(chunks: AsyncIterator[bytes]) -> bytes | None:
    """Read one chunk; ``None`` marks the end of the stream."""
    try:
        return await chunks.__anext__()
    except StopAsyncIteration:
        return None


class StreamingChatClient:
    """Chat-completions client with per-phase timeouts and incremental SSE decoding."""

    def __init__(
        self,
        api_key: str | None = None,
        default_model: str | None = None,
        *,
        config: ClientConfig | None = None,
        base_url: str | None = None,
        request_timeout: float | None = None,
        stream_connect_timeout: float | None = None,
        stream_read_timeout: float | None = None,
        app_url: str | None = None,
        app_name: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if config is None:
            config = ClientConfig.resolve(
                api_key,
                default_model,
                base_url=base_url,
                request_timeout=request_timeout,
                stream_connect_timeout=stream_connect_timeout,
                stream_read_timeout=stream_read_timeout,
                app_url=app_url,
                app_name=app_name,
            )
        elif overrides := [
            name
            for name, value in (
                ("api_key", api_key),
                ("default_model", default_model),
                ("base_url", base_url),
                ("request_timeout", request_timeout),
                ("stream_connect_timeout", stream_connect_timeout),
                ("stream_read_timeout", stream_read_timeout),
                ("app_url", app_url),
                ("app_name", app_name),
            )
            if value is not None
        ]:
            raise ConfigurationError(
                f"Pass either config or individual settings, not both: {', '.join(overrides)}"
            )
        elif not config.api_key:
            raise ConfigurationError("ClientConfig.api_key is empty")

        self.config: ClientConfig = config
        # Phase timeouts are enforced here, not by httpx.
        self.client: httpx.AsyncClient = httpx.AsyncClient(
            base_url=config.base_url,
            headers={
                "Authorization": f"Bearer {config.api_key}",
                "Content-Type": "application/json",
                "HTTP-Referer": config.app_url,
                "X-Title": config.app_name,
            },
            timeout=None,
            transport=transport,
        )

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> StreamingChatClient:
        """Build a client from an already-resolved configuration."""
        return cls(config=config, transport=transport)

    @log_operation(
        "chat_completion", context={"provider": "openrouter", "stream": False}
    )
    async def complete(
        self,
        request: CompletionRequest,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> CompletionResult:
        """
        Send one non-streaming completion request.

        The whole exchange (headers and body) is bounded by
        ``config.request_timeout``. No retries.

        Raises:
            ValueError: If ``request.stream`` is set
            LLMTimeoutError: The request phase exceeded its bound
            UpstreamAPIError: Upstream answered with a non-2xx status
            TransportError: Connection failed or the body was not a completion
            RequestCancelledError: ``cancel_event`` fired
        """
        if request.stream:
            raise ValueError("complete() does not accept stream=True; use complete_stream()")
        payload = request.to_payload(self.config.default_model, stream=False)
        response = await race_deadline(
            self._post(payload),
            timeout=self.config.request_timeout,
            phase=TimeoutPhase.REQUEST,
            cancel_event=cancel_event,
        )

        if not response.is_success:
            raise self._envelope_error(response.content, response.status_code)

        try:
            return CompletionResult.model_validate_json(response.content)
        except ValidationError as e:
            raise TransportError(
                f"Unexpected completion payload: {e}",
                model=payload["model"],
                status_code=response.status_code,
            ) from e

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        try:
            return await self.client.post(COMPLETIONS_PATH, json=payload)
        except httpx.TransportError as e:
            raise TransportError(f"HTTP error: {e!s}", model=payload["model"]) from e

    def complete_stream(
        self,
        request: CompletionRequest,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncIterator[str]:
        """
        Stream a completion as text fragments.

        The returned iterator is single-pass. Nothing is sent until the first
        fragment is requested. Consumers that stop early should call
        ``aclose()`` on it (or wrap it in ``contextlib.aclosing``) so the
        response stream is released promptly.

        Raises:
            RequestCancelledError: Immediately, if ``cancel_event`` is already set
        """
        ensure_not_cancelled(cancel_event)
        payload = request.to_payload(self.config.default_model, stream=True)
        return self._stream_fragments(payload, cancel_event)

    async def _stream_fragments(
        self,
        payload: dict[str, Any],
        cancel_event: asyncio.Event | None,
    ) -> AsyncIterator[str]:
        log = logger.bind(model=payload["model"])
        log.info(
            "Starting stream request",
            max_tokens=payload["max_tokens"],
            messages_count=len(payload["messages"]),
        )

        response = await race_deadline(
            self._open_stream(payload),
            timeout=self.config.stream_connect_timeout,
            phase=TimeoutPhase.CONNECT,
            cancel_event=cancel_event,
        )
        log.debug("Stream response received", status_code=response.status_code)

        try:
            if not response.is_success:
                body = await race_deadline(
                    response.aread(),
                    timeout=self.config.stream_read_timeout,
                    phase=TimeoutPhase.READ,
                    cancel_event=cancel_event,
                )
                raise self._stream_error(body, response.status_code, log)

            async with aclosing(self._decode(response, cancel_event, log)) as fragments:
                async for fragment in fragments:
                    yield fragment
        finally:
            await response.aclose()

    async def _open_stream(self, payload: dict[str, Any]) -> httpx.Response:
        request = self.client.build_request("POST", COMPLETIONS_PATH, json=payload)
        try:
            return await self.client.send(request, stream=True)
        except httpx.TransportError as e:
            raise TransportError(f"HTTP error: {e!s}", model=payload["model"]) from e

    async def _decode(
        self,
        response: httpx.Response,
        cancel_event: asyncio.Event | None,
        log: structlog.stdlib.BoundLogger,
    ) -> AsyncIterator[str]:
        """Read-decode-split-parse loop; the caller owns releasing ``response``."""
        chunks = response.aiter_bytes()
        decoder = SSEDecoder()
        fragments = 0
        try:
            while True:
                try:
                    chunk = await race_deadline(
                        _next_chunk(chunks),
                        timeout=self.config.stream_read_timeout,
                        phase=TimeoutPhase.READ,
                        cancel_event=cancel_event,
                    )
                except httpx.TransportError as e:
                    raise TransportError(f"Stream error: {e!s}") from e
                if chunk is None:
                    break

                for event in decoder.feed(chunk):
                    if event.event_type is SSEEventType.COMPLETION:
                        return
                    if event.is_fragment:
                        fragments += 1
                        yield event.content
        finally:
            await chunks.aclose()
            log.info("Stream finished", fragments=fragments, **decoder.get_stats())

    def _envelope_error(self, body: bytes, status_code: int) -> UpstreamAPIError:
        """Non-streaming errors: unparsable bodies become a generic envelope."""
        return self._upstream_error(self._parse_envelope(body) or {}, status_code)

    def _stream_error(
        self, body: bytes, status_code: int, log: structlog.stdlib.BoundLogger
    ) -> UpstreamAPIError:
        """Streaming errors: unparsable bodies keep their raw text."""
        text = body.decode("utf-8", errors="replace")
        log.error("Upstream error response", status_code=status_code, body=text)
        error = self._parse_envelope(body)
        if error is None:
            return UpstreamAPIError(text, code=UNKNOWN_ERROR_CODE, status_code=status_code)
        return self._upstream_error(error, status_code)

    @staticmethod
    def _upstream_error(error: dict[str, Any], status_code: int) -> UpstreamAPIError:
        return UpstreamAPIError(
            str(error.get("message") or "Unknown error"),
            code=str(error.get("code") or UNKNOWN_ERROR_CODE),
            status_code=status_code,
            response_data=error,
        )

    @staticmethod
    def _parse_envelope(body: bytes) -> dict[str, Any] | None:
        """Return the ``error`` object of an upstream error body, if it has one."""
        try:
            data = json.loads(body)
        except ValueError:
            return None
        if not isinstance(data, dict):
            return {}
        error = data.get("error")
        return error if isinstance(error, dict) else {}

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> StreamingChatClient:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.aclose()
