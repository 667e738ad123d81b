"""
Newline-delimited JSON encoding of extraction events.

Record shapes, one per line:
  {"type": "progress", "count": 12}
  {"type": "text", "content": "Artist A, Artist B - Song\\n..."}   terminal, success
  {"error": "...", "details": "..."}                               terminal, failure
"""
from __future__ import annotations

import json
from typing import AsyncIterator

from .models import Event, Failure, Progress, Result

NDJSON_MEDIA_TYPE = "application/x-ndjson"

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",  # disable nginx buffering if proxied
}

_line = lambda d: json.dumps(d, ensure_ascii=False) + "\n"


def encode_event(event: Event) -> str:
    if isinstance(event, Progress):
        return _line({"type": "progress", "count": event.count})
    if isinstance(event, Result):
        return _line({"type": "text", "content": event.text})
    if isinstance(event, Failure):
        return _line({"error": event.message, "details": event.detail or ""})
    raise TypeError(f"Not an extraction event: {event!r}")


async def ndjson_stream(events: AsyncIterator[Event]) -> AsyncIterator[str]:
    """One line per event, in the order produced."""
    async for event in events:
        yield encode_event(event)
