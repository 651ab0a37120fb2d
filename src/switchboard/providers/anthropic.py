"""
Switchboard Anthropic Adapter

Messages API (https://api.anthropic.com/v1/messages).

Wire rules:
- System prompt is a top-level `system` field, never a message
- Only `user`/`assistant` roles in `messages`; history system turns
  are folded into `system`
- Auth via `x-api-key` plus a pinned `anthropic-version`
- Streaming text arrives as `content_block_delta` events carrying `delta.text`
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from switchboard.exceptions import FrameParseError
from switchboard.providers.base import (
    Message,
    ProviderAdapter,
    ProviderConfig,
    ProviderFamily,
    ProviderRequest,
    split_system,
)
from switchboard.streaming.events import Done, StreamError, StreamEvent, TextDelta

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicAdapter(ProviderAdapter):
    """Anthropic Messages API, streamed over SSE."""

    family = ProviderFamily.ANTHROPIC

    def build_request(
        self,
        config: ProviderConfig,
        model: str,
        system_prompt: str | None,
        messages: Sequence[Message],
        *,
        stream: bool,
        credential: str,
        max_tokens: int = 8192,
    ) -> ProviderRequest:
        system, turns = split_system(system_prompt, messages)

        body: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": [{"role": m.role.value, "content": m.content} for m in turns],
            "stream": stream,
        }
        if system:
            body["system"] = system

        headers = {
            "Content-Type": "application/json",
            "x-api-key": credential,
            "anthropic-version": ANTHROPIC_VERSION,
        }
        if stream:
            headers["Accept"] = "text/event-stream"

        return ProviderRequest(url=config.base_url, headers=headers, body=body, stream=stream)

    def parse_frame(self, payload: Any) -> StreamEvent | None:
        if not isinstance(payload, dict):
            raise FrameParseError("Expected a JSON object frame", frame=repr(payload))

        event_type = payload.get("type")
        if event_type == "content_block_delta":
            delta = payload.get("delta") or {}
            if not isinstance(delta, dict):
                raise FrameParseError("Expected `delta` to be an object", frame=repr(payload))
            text = delta.get("text")
            if text is not None and not isinstance(text, str):
                raise FrameParseError("Expected `delta.text` to be a string", frame=repr(payload))
            if text:
                return TextDelta(text=text)
            return None
        if event_type == "message_stop":
            return Done()
        if event_type == "error" or "error" in payload:
            return StreamError(message=self.error_message(payload) or "Unknown provider error")
        return None

    def parse_response(self, body: Any) -> str:
        if not isinstance(body, dict):
            return ""
        blocks = body.get("content") or []
        if not isinstance(blocks, list):
            return ""
        return "".join(
            block["text"]
            for block in blocks
            if isinstance(block, dict)
            and block.get("type") == "text"
            and isinstance(block.get("text"), str)
        )
