"""
Process wiring for the LLM gateway.

One client is built per process from Configuration and injected into the
ChatService that route handlers use.
"""

from __future__ import annotations

import asyncio
import sys

import httpx
import structlog

from llm_gateway.chat_service import ChatService
from llm_gateway.config import Configuration
from llm_gateway.llm.client import StreamingChatClient
from llm_gateway.llm.exceptions import LLMError
from llm_gateway.llm.models import ChatTurn, CompletionRequest
from llm_gateway.logging_utils import GatewayErrorHandler, configure_logging

logger = structlog.get_logger(__name__)


def build_client(
    config: Configuration,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> StreamingChatClient:
    """Create the process-wide client from configuration."""
    client_config = config.get_client_config()
    logger.info(
        "LLM client configured",
        base_url=client_config.base_url,
        model=client_config.default_model,
        request_timeout=client_config.request_timeout,
        stream_connect_timeout=client_config.stream_connect_timeout,
        stream_read_timeout=client_config.stream_read_timeout,
    )
    return StreamingChatClient.from_config(client_config, transport=transport)


def build_chat_service(
    config: Configuration,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ChatService:
    """Create the chat service with its injected client."""
    return ChatService(build_client(config, transport=transport))


async def main(argv: list[str] | None = None) -> int:
    """Stream the reply to a prompt given on the command line."""
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print("usage: python -m llm_gateway.main <prompt>", file=sys.stderr)
        return 2

    config = Configuration()
    configure_logging(config.get_logging_config())
    service = build_chat_service(config)

    request = CompletionRequest(turns=[ChatTurn(role="user", content=" ".join(args))])
    try:
        async with service.llm_client:
            async for fragment in service.llm_client.complete_stream(request):
                sys.stdout.write(fragment)
                sys.stdout.flush()
    except LLMError as e:
        GatewayErrorHandler.log_error(e, "main")
        return 1
    finally:
        sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
