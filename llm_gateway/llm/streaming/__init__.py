"""
Streaming support: SSE line classification and incremental decoding.
"""

from __future__ import annotations

from .models import RawSSEChunk, SSEEventType
from .parser import SSEDecoder, parse_sse_line

__all__ = ["RawSSEChunk", "SSEDecoder", "SSEEventType", "parse_sse_line"]
