"""
LLM gateway: a streaming chat-completions client and the service seam that
route handlers consume it through.
"""

from __future__ import annotations

from llm_gateway.llm.client import StreamingChatClient

__all__ = ["StreamingChatClient"]
