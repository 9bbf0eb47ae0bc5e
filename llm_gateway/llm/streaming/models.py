"""
Streaming-specific dataclasses for SSE decoding.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class SSEEventType(Enum):
    """Outcome of decoding one complete SSE line."""
    CHUNK = "chunk"
    COMPLETION = "completion"
    IGNORED = "ignored"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class RawSSEChunk:
    """One decoded SSE line."""
    event_type: SSEEventType
    raw_data: str
    data: dict[str, Any] | None = None
    content: str | None = None

    @property
    def is_fragment(self) -> bool:
        """Whether this line carries text for the consumer."""
        return self.event_type is SSEEventType.CHUNK and bool(self.content)
