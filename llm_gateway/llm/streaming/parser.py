"""
Incremental SSE decoder for chat-completion streams.

Bytes arrive in arbitrary chunks: a read may end in the middle of a line,
of a JSON object, or of a multi-byte UTF-8 sequence. The decoder keeps the
undecoded byte tail and the unterminated line tail between reads, and only
ever interprets complete lines.
"""

from __future__ import annotations

import codecs
import json

from .models import RawSSEChunk, SSEEventType

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


def parse_sse_line(raw_line: str) -> RawSSEChunk:
    """Classify one complete line of an SSE stream."""
    line = raw_line.strip()
    if not line.startswith(DATA_PREFIX):
        # Blank separators, ": keep-alive" comments, event/id fields
        return RawSSEChunk(event_type=SSEEventType.IGNORED, raw_data=line)

    payload = line[len(DATA_PREFIX):]
    if payload == DONE_SENTINEL:
        return RawSSEChunk(event_type=SSEEventType.COMPLETION, raw_data=payload)

    try:
        data = json.loads(payload)
        content = data["choices"][0]["delta"].get("content")
    except (ValueError, KeyError, IndexError, TypeError, AttributeError):
        return RawSSEChunk(event_type=SSEEventType.MALFORMED, raw_data=payload)

    return RawSSEChunk(
        event_type=SSEEventType.CHUNK,
        raw_data=payload,
        data=data,
        content=content if isinstance(content, str) else None,
    )


class SSEDecoder:
    """Stateful byte-to-event decoder; one instance per stream."""

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""
        self.stats = {
            "total_lines": 0,
            "chunk_lines": 0,
            "ignored_lines": 0,
            "malformed_lines": 0,
        }

    @property
    def pending(self) -> str:
        """Unterminated text waiting for the next read."""
        return self._buffer

    def feed(self, chunk: bytes) -> list[RawSSEChunk]:
        """
        Append one read's bytes and return the events for every line it completed.

        Ignored lines are counted but not returned. Malformed lines are
        returned so callers can observe them; they carry no content.
        """
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")

        events: list[RawSSEChunk] = []
        for line in lines:
            event = parse_sse_line(line)
            self._count(event)
            if event.event_type is not SSEEventType.IGNORED:
                events.append(event)
        return events

    def _count(self, event: RawSSEChunk) -> None:
        self.stats["total_lines"] += 1
        if event.event_type is SSEEventType.CHUNK:
            self.stats["chunk_lines"] += 1
        elif event.event_type is SSEEventType.MALFORMED:
            self.stats["malformed_lines"] += 1
        elif event.event_type is SSEEventType.IGNORED:
            self.stats["ignored_lines"] += 1

    def get_stats(self) -> dict[str, int]:
        """Get decoding statistics for logging."""
        return self.stats.copy()
