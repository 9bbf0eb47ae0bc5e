"""
Chat service for the LLM gateway.

This is the seam route handlers talk to. It owns no client of its own: the
process builds one StreamingChatClient at startup and injects it here, so
handlers never reach for hidden global state.

- chat_once(): one-shot completion reduced to the response payload routes return
- relay_sse(): re-frames streamed fragments as SSE for a browser
- collect(): concatenates a stream into a single string
"""

from __future__ import annotations

import asyncio
import io
import json
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any

import structlog

from llm_gateway.llm.client import StreamingChatClient
from llm_gateway.llm.exceptions import UpstreamAPIError
from llm_gateway.llm.models import CompletionRequest
from llm_gateway.logging_utils import GatewayErrorHandler, operation_context

logger = structlog.get_logger(__name__)

SSE_DONE_FRAME = "data: [DONE]\n\n"


def sse_frame(data: dict[str, Any]) -> str:
    """Encode one SSE ``data:`` frame."""
    return f"data: {json.dumps(data, ensure_ascii=False)}\n\n"


class ChatService:
    """Relays completions between route handlers and the upstream client."""

    def __init__(self, llm_client: StreamingChatClient):
        self.llm_client = llm_client

    async def chat_once(
        self,
        request: CompletionRequest,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> dict[str, Any]:
        """Non-streaming chat returning id, model, first message and usage."""
        result = await self.llm_client.complete(request, cancel_event=cancel_event)
        message = result.choices[0].message if result.choices else None

        return {
            "id": result.id,
            "model": result.model,
            "message": message.model_dump() if message else None,
            "usage": result.usage.model_dump(),
        }

    async def relay_sse(
        self,
        request: CompletionRequest,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncIterator[str]:
        """
        Stream a completion as browser-facing SSE frames.

        Each fragment becomes ``{"content": ...}``, followed by ``[DONE]``.
        An upstream rejection is reported in-band as one ``{"error": ...}``
        frame and ends the relay; every other error propagates.
        """
        stream = self.llm_client.complete_stream(request, cancel_event=cancel_event)
        async with aclosing(stream):
            try:
                async for fragment in stream:
                    yield sse_frame({"content": fragment})
            except UpstreamAPIError as e:
                GatewayErrorHandler.log_error(e, "relay_sse")
                yield sse_frame({"error": {"code": e.code, "message": e.message}})
                return

        yield SSE_DONE_FRAME

    async def collect(
        self,
        request: CompletionRequest,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> str:
        """Consume a whole stream and return the concatenated text."""
        buffer = io.StringIO()
        async with operation_context(
            "collect_stream", context={"model": request.model}
        ) as log:
            stream = self.llm_client.complete_stream(request, cancel_event=cancel_event)
            async with aclosing(stream):
                async for fragment in stream:
                    buffer.write(fragment)
            log.debug("Collected stream", characters=buffer.tell())
        return buffer.getvalue()
