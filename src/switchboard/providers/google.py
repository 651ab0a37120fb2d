"""
Switchboard Google Adapter

Gemini generateContent API. This family is called without incremental
streaming: the normalizer receives one complete JSON response and
re-chunks it word by word.

Wire rules:
- Roles renamed `assistant` -> `model`; each turn is `{role, parts: [{text}]}`
- System prompt goes in `systemInstruction`
- URL is templated with the model as a path segment, and the API key
  travels as a `key` query parameter rather than a header
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any
from urllib.parse import quote, urlencode

from switchboard.exceptions import FrameParseError
from switchboard.providers.base import (
    Message,
    ProviderAdapter,
    ProviderConfig,
    ProviderFamily,
    ProviderRequest,
    Role,
    split_system,
)
from switchboard.streaming.events import StreamError, StreamEvent, TextDelta

_ROLE_MAP = {
    Role.USER: "user",
    Role.ASSISTANT: "model",
}


class GoogleAdapter(ProviderAdapter):
    """Google Gemini, one blocking call per turn."""

    family = ProviderFamily.GOOGLE
    supports_streaming = False

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
            "contents": [
                {"role": _ROLE_MAP[m.role], "parts": [{"text": m.content}]} for m in turns
            ],
            "generationConfig": {"maxOutputTokens": max_tokens},
        }
        if system:
            body["systemInstruction"] = {"parts": [{"text": system}]}

        url = (
            f"{config.base_url.rstrip('/')}/{quote(model, safe='')}:generateContent"
            f"?{urlencode({'key': credential})}"
        )
        return ProviderRequest(
            url=url,
            headers={"Content-Type": "application/json"},
            body=body,
            stream=False,
        )

    def parse_frame(self, payload: Any) -> StreamEvent | None:
        """Interpret one GenerateContentResponse-shaped object.

        Google is called without streaming, so the normalizer takes the
        `from_json` path and this is only reached through the adapter
        interface. It reuses `parse_response` so both paths agree on the
        text a response carries.
        """
        if isinstance(payload, list):
            raise FrameParseError("Expected a single response object", frame=repr(payload)[:200])
        if not isinstance(payload, dict):
            raise FrameParseError("Expected a JSON object frame", frame=repr(payload))
        if "error" in payload:
            return StreamError(message=self.error_message(payload) or "Unknown provider error")
        text = self.parse_response(payload)
        return TextDelta(text=text) if text else None

    def parse_response(self, body: Any) -> str:
        if not isinstance(body, dict):
            return ""
        candidates = body.get("candidates") or []
        if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
            return ""
        content = candidates[0].get("content") or {}
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            return ""
        return "".join(
            p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)
        )
