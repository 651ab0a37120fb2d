"""
Switchboard Response Relay

Owns the client-facing stream: frames normalized events in the SSE
convention the browser already parses, and guarantees exactly one
terminal frame followed by the `[DONE]` sentinel on every path,
including failures that happen before the first provider byte.

Wire format (one frame per event):
    data: {"text": "...", "model": "provider/model"}
    data: {"done": true}
    data: {"error": "...", "code": "..."}
    data: [DONE]
"""

from __future__ import annotations

import json
import time
from collections.abc import AsyncIterator
from contextlib import aclosing

from fastapi.responses import StreamingResponse

from switchboard.exceptions import SwitchboardError
from switchboard.logging import get_logger
from switchboard.streaming.events import Done, StreamError, StreamEvent, TextDelta, is_terminal

logger = get_logger("switchboard.relay")

STREAM_SENTINEL = "data: [DONE]\n\n"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def encode_event(event: StreamEvent) -> str:
    """Frame one event as an SSE `data:` line."""
    if isinstance(event, TextDelta):
        payload: dict = {"text": event.text}
        if event.source:
            payload["model"] = event.source
    elif isinstance(event, Done):
        payload = {"done": True}
    else:
        payload = {"error": event.message, "code": event.code}
    return f"data: {json.dumps(payload)}\n\n"


class StreamRegistry:
    """Active client streams, added on connect and removed on disconnect."""

    def __init__(self) -> None:
        self._active: dict[str, float] = {}

    def add(self, stream_id: str) -> None:
        self._active[stream_id] = time.monotonic()

    def remove(self, stream_id: str) -> None:
        self._active.pop(stream_id, None)

    def __contains__(self, stream_id: object) -> bool:
        return stream_id in self._active

    def __len__(self) -> int:
        return len(self._active)

    @property
    def active(self) -> list[str]:
        return list(self._active)


class ResponseRelay:
    """Relays normalized events to one client connection at a time."""

    def __init__(self, streams: StreamRegistry | None = None):
        self._streams = streams or StreamRegistry()

    @property
    def streams(self) -> StreamRegistry:
        return self._streams

    async def frames(self, events: AsyncIterator[StreamEvent], stream_id: str) -> AsyncIterator[str]:
        """Encoded frames for `events`, always ending in a terminal frame and the sentinel."""
        terminated = False
        self._streams.add(stream_id)
        try:
            try:
                async with aclosing(events) as source:
                    async for event in source:
                        yield encode_event(event)
                        if is_terminal(event):
                            terminated = True
                            break
            except SwitchboardError as e:
                logger.warning(
                    "Stream failed before completion: %s", e.message, extra={"request_id": stream_id}
                )
                if not terminated:
                    terminated = True
                    yield encode_event(StreamError(message=e.message, code=e.code))
            except Exception:
                logger.exception("Unexpected stream failure", extra={"request_id": stream_id})
                if not terminated:
                    terminated = True
                    yield encode_event(StreamError(message="Internal gateway error", code="gateway_error"))

            if not terminated:
                yield encode_event(Done())
            yield STREAM_SENTINEL
        finally:
            self._streams.remove(stream_id)

    def response(self, events: AsyncIterator[StreamEvent], stream_id: str) -> StreamingResponse:
        """A flushed, cache-disabled, persistent streaming response."""
        return StreamingResponse(
            self.frames(events, stream_id),
            media_type="text/event-stream",
            headers={**SSE_HEADERS, "X-Request-ID": stream_id},
        )
