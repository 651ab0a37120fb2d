"""
Switchboard Provider Base

Abstract interface for provider adapters. Each provider family
implements the same capability set, so adding a provider means adding
one adapter, never touching the stream normalizer's control flow:

- build_request():   internal conversation -> provider request (url, headers, body)
- parse_frame():     one decoded streaming frame -> StreamEvent | None
- parse_response():  one complete JSON response -> full text
- error_message():   error envelope -> provider's message, if any

Key design decisions:
- Adapters are stateless; one instance serves every request
- Translation builds new dicts and never mutates the conversation
- Provider configs are frozen after process start
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from switchboard.streaming.events import StreamEvent


class Role(str, Enum):
    """Conversation roles accepted from clients."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """One role-tagged turn of a conversation."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class ProviderFamily(str, Enum):
    """Wire-protocol families. Two providers may share one family."""

    ANTHROPIC = "ANTHROPIC"
    OPENAI_COMPATIBLE = "OPENAI_COMPATIBLE"
    GOOGLE = "GOOGLE"


class ProviderRequest(BaseModel):
    """A fully translated upstream HTTP request."""

    method: str = "POST"
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: dict[str, Any] = Field(default_factory=dict)
    stream: bool = False


class ProviderAdapter(ABC):
    """Translates to and from one provider family's wire format."""

    family: ClassVar[ProviderFamily]
    supports_streaming: ClassVar[bool] = True

    @abstractmethod
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
        """Translate a conversation into this family's request shape."""
        ...

    @abstractmethod
    def parse_frame(self, payload: Any) -> StreamEvent | None:
        """Interpret one decoded `data:` payload.

        Returns None for frames that carry no text (pings, metadata).
        Raises FrameParseError when the payload has an unusable shape.
        """
        ...

    @abstractmethod
    def parse_response(self, body: Any) -> str:
        """Extract the full assistant text from a non-streaming response."""
        ...

    def error_message(self, body: Any) -> str | None:
        """Return the provider's error message if `body` is an error envelope."""
        if isinstance(body, list) and body:
            body = body[0]
        if not isinstance(body, dict):
            return None
        error = body.get("error")
        if error is None:
            return None
        if isinstance(error, dict):
            return str(error.get("message") or error.get("type") or "Unknown provider error")
        return str(error)


class ProviderConfig(BaseModel):
    """Static description of one provider. Never mutated after startup."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str
    name: str
    base_url: str
    models: tuple[str, ...] = ()
    adapter: ProviderAdapter

    @property
    def family(self) -> ProviderFamily:
        return self.adapter.family

    @property
    def default_model(self) -> str:
        return self.models[0] if self.models else ""

    def supports_model(self, model: str) -> bool:
        return model in self.models


def split_system(
    system_prompt: str | None, messages: Sequence[Message]
) -> tuple[str | None, list[Message]]:
    """Fold history `system` turns into the system prompt.

    For families that carry the system prompt outside the message list.
    Returns the merged prompt and the remaining user/assistant turns in order.
    """
    parts = [system_prompt] if system_prompt else []
    turns: list[Message] = []
    for message in messages:
        if message.role == Role.SYSTEM:
            if message.content:
                parts.append(message.content)
        else:
            turns.append(message)
    return ("\n\n".join(parts) or None), turns
