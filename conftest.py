"""Shared fixtures: scripted upstream bodies and mock-transport clients."""

import asyncio
import json

import httpx
import pytest

from llm_gateway.llm.client import StreamingChatClient
from llm_gateway.llm.models import ChatTurn, CompletionRequest


class ScriptedStream(httpx.AsyncByteStream):
    """Response body that replays byte chunks and counts how often it is closed.

    A ``STALL`` step blocks forever, like an upstream that stops sending.
    """

    STALL = object()

    def __init__(self, steps, delay: float = 0.0):
        self.steps = list(steps)
        self.delay = delay
        self.reads = 0
        self.close_calls = 0

    async def __aiter__(self):
        for step in self.steps:
            if step is self.STALL:
                await asyncio.Event().wait()
            if self.delay:
                await asyncio.sleep(self.delay)
            self.reads += 1
            yield step

    async def aclose(self) -> None:
        self.close_calls += 1


def sse_delta(content: str) -> bytes:
    chunk = {"choices": [{"index": 0, "delta": {"content": content}}]}
    return f"data: {json.dumps(chunk, ensure_ascii=False)}\n\n".encode()


@pytest.fixture
def scripted_stream():
    return ScriptedStream


@pytest.fixture
def delta():
    return sse_delta


@pytest.fixture
def sse_response():
    def build(stream: ScriptedStream, status_code: int = 200) -> httpx.Response:
        return httpx.Response(
            status_code,
            headers={"content-type": "text/event-stream"},
            stream=stream,
        )
    return build


@pytest.fixture
def client_factory():
    """Build clients whose HTTP traffic goes to ``handler`` instead of the network."""
    def build(handler, **options) -> StreamingChatClient:
        options.setdefault("api_key", "test-key")
        return StreamingChatClient(transport=httpx.MockTransport(handler), **options)
    return build


@pytest.fixture
def hello_request() -> CompletionRequest:
    return CompletionRequest(turns=[ChatTurn(role="user", content="hello")])
