"""
Switchboard OpenAI-Compatible Adapter

Chat Completions schema, shared by OpenAI and Groq (and any other
OpenAI-compatible endpoint registered with this adapter).

Wire rules:
- System prompt is injected as the first `system` message, followed by
  the history unmodified
- Auth via `Authorization: Bearer`
- Streaming text arrives in `choices[0].delta.content`, terminated by `[DONE]`
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
)
from switchboard.streaming.events import StreamError, StreamEvent, TextDelta


class OpenAICompatibleAdapter(ProviderAdapter):
    """OpenAI and OpenAI-compatible providers, streamed over SSE."""

    family = ProviderFamily.OPENAI_COMPATIBLE

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
        oai_messages: list[dict[str, str]] = []
        if system_prompt:
            oai_messages.append({"role": "system", "content": system_prompt})
        oai_messages.extend({"role": m.role.value, "content": m.content} for m in messages)

        body: dict[str, Any] = {
            "model": model,
            "messages": oai_messages,
            "max_tokens": max_tokens,
            "stream": stream,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {credential}",
        }
        if stream:
            headers["Accept"] = "text/event-stream"

        return ProviderRequest(url=config.base_url, headers=headers, body=body, stream=stream)

    def parse_frame(self, payload: Any) -> StreamEvent | None:
        if not isinstance(payload, dict):
            raise FrameParseError("Expected a JSON object frame", frame=repr(payload))

        if "error" in payload:
            return StreamError(message=self.error_message(payload) or "Unknown provider error")

        choices = payload.get("choices") or []
        if not isinstance(choices, list):
            raise FrameParseError("Expected `choices` to be a list", frame=repr(payload))
        if not choices or not isinstance(choices[0], dict):
            return None
        delta = choices[0].get("delta") or {}
        if not isinstance(delta, dict):
            raise FrameParseError("Expected `delta` to be an object", frame=repr(payload))
        text = delta.get("content")
        if text is not None and not isinstance(text, str):
            raise FrameParseError("Expected `delta.content` to be a string", frame=repr(payload))
        if text:
            return TextDelta(text=text)
        return None

    def parse_response(self, body: Any) -> str:
        if not isinstance(body, dict):
            return ""
        choices = body.get("choices") or []
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return ""
        message = choices[0].get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        return content if isinstance(content, str) else ""
