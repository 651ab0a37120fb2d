"""
Switchboard Stream Normalizer

Turns one provider response into a sequence of normalized StreamEvents.

States:
- AWAITING_FIRST_BYTE: request sent, nothing received yet
- STREAMING: at least one chunk received
- DONE / ERROR: terminated; nothing further is emitted

Input shapes:
- SSE families: raw bytes, buffered into lines. Only `data: ` lines carry
  payloads; `[DONE]` ends the stream; undecodable payloads are dropped.
- Non-streaming families: one JSON body, re-emitted word by word with a
  small delay so clients see the same incremental behaviour.

A network chunk boundary never has to align with a line boundary or a
UTF-8 character boundary.
"""

from __future__ import annotations

import asyncio
import codecs
import json
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from switchboard.exceptions import FrameParseError
from switchboard.logging import get_logger
from switchboard.streaming.events import Done, StreamError, StreamEvent, TextDelta, is_terminal

if TYPE_CHECKING:
    from switchboard.providers.base import ProviderAdapter

logger = get_logger("switchboard.streaming")

SSE_DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"
DEFAULT_WORD_DELAY = 0.015


class StreamState(str, Enum):
    AWAITING_FIRST_BYTE = "AWAITING_FIRST_BYTE"
    STREAMING = "STREAMING"
    DONE = "DONE"
    ERROR = "ERROR"


class SSELineBuffer:
    """Accumulates bytes and hands back complete lines.

    The trailing fragment after the last newline stays buffered until
    the next chunk (or flush()).
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[str]:
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> list[str]:
        self._buffer += self._decoder.decode(b"", final=True)
        remainder, self._buffer = self._buffer.rstrip("\r"), ""
        return [remainder] if remainder else []


def describe_failure(adapter: ProviderAdapter, status_code: int, body: bytes) -> str:
    """Provider's own error message when it sent one, else a generic one."""
    try:
        parsed = json.loads(body) if body else None
    except ValueError:
        parsed = None
    message = adapter.error_message(parsed) if parsed is not None else None
    if message:
        return message
    return f"Provider returned HTTP {status_code}"


class StreamNormalizer:
    """Normalizes one provider response. Use one instance per stream."""

    def __init__(
        self,
        adapter: ProviderAdapter,
        *,
        provider_id: str = "",
        word_delay: float = DEFAULT_WORD_DELAY,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._adapter = adapter
        self._provider_id = provider_id
        self._word_delay = word_delay
        self._sleep = sleep
        self._state = StreamState.AWAITING_FIRST_BYTE
        self.dropped_frames = 0

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def terminated(self) -> bool:
        return self._state in (StreamState.DONE, StreamState.ERROR)

    def _terminate(self, event: StreamEvent) -> StreamEvent:
        self._state = StreamState.ERROR if isinstance(event, StreamError) else StreamState.DONE
        return event

    async def normalize(self, response: httpx.Response) -> AsyncIterator[StreamEvent]:
        """Normalize an open (possibly still streaming) httpx response."""
        if not response.is_success:
            body = await response.aread()
            self._state = StreamState.STREAMING
            logger.warning(
                "Provider request failed",
                extra={"provider": self._provider_id, "status_code": response.status_code},
            )
            yield self._terminate(
                StreamError(message=describe_failure(self._adapter, response.status_code, body))
            )
            return

        if self._adapter.supports_streaming:
            async for event in self.from_sse(response.aiter_bytes()):
                yield event
            return

        raw = await response.aread()
        self._state = StreamState.STREAMING
        try:
            body = json.loads(raw)
        except ValueError:
            yield self._terminate(StreamError(message="Provider returned an unreadable response"))
            return
        async for event in self.from_json(body):
            yield event

    async def from_sse(self, chunks: AsyncIterable[bytes]) -> AsyncIterator[StreamEvent]:
        """Normalize an SSE byte stream, emitting each delta as soon as its line completes."""
        buffer = SSELineBuffer()
        async for chunk in chunks:
            if self.terminated:
                return
            self._state = StreamState.STREAMING
            for line in buffer.feed(chunk):
                event = self._parse_line(line)
                if event is None:
                    continue
                if is_terminal(event):
                    yield self._terminate(event)
                    return
                yield event

        for line in buffer.flush():
            event = self._parse_line(line)
            if event is None:
                continue
            if is_terminal(event):
                yield self._terminate(event)
                return
            yield event

        if not self.terminated:
            yield self._terminate(Done())

    def _parse_line(self, line: str) -> StreamEvent | None:
        if not line.startswith(SSE_DATA_PREFIX):
            return None
        data = line[len(SSE_DATA_PREFIX):].strip()
        if data == DONE_SENTINEL:
            return Done()
        try:
            try:
                payload = json.loads(data)
            except ValueError as e:
                raise FrameParseError(f"Invalid JSON frame: {e}", frame=data) from e
            try:
                return self._adapter.parse_frame(payload)
            except (KeyError, IndexError, TypeError, ValidationError) as e:
                raise FrameParseError(f"Unexpected frame shape: {e!r}", frame=data) from e
        except FrameParseError as e:
            self.dropped_frames += 1
            logger.debug(
                "Dropped malformed frame: %s",
                e.message,
                extra={"provider": self._provider_id},
            )
            return None

    async def from_json(self, body: Any) -> AsyncIterator[StreamEvent]:
        """Normalize one complete JSON response into word-sized deltas."""
        message = self._adapter.error_message(body)
        if message:
            yield self._terminate(StreamError(message=message))
            return
        async for event in self.split_words(self._adapter.parse_response(body)):
            yield event

    async def split_words(self, text: str) -> AsyncIterator[StreamEvent]:
        """Emit one TextDelta per whitespace-separated word (plus a trailing space), then Done."""
        self._state = StreamState.STREAMING
        for index, word in enumerate(text.split()):
            if index and self._word_delay > 0:
                await self._sleep(self._word_delay)
            yield TextDelta(text=word + " ")
        yield self._terminate(Done())
