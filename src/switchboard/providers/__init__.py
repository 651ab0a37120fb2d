"""
Switchboard Provider Layer

Provider adapters (Anthropic, OpenAI-compatible, Google) behind one
interface, a read-only registry, and the model selector.

Usage:
    from switchboard.providers import ModelSelector, create_registry, translate

    registry = create_registry()
    selection = ModelSelector(registry).select("auto", "Rename this var", registry.credentialed())
    provider = registry.resolve(selection.provider)
    request = translate(
        provider, selection.model, "You are helpful.", messages,
        streaming=True, credential=registry.credential(provider.id),
    )
"""

from __future__ import annotations

from collections.abc import Sequence

from switchboard.credentials import CredentialSource
from switchboard.providers.anthropic import AnthropicAdapter
from switchboard.providers.base import (
    Message,
    ProviderAdapter,
    ProviderConfig,
    ProviderFamily,
    ProviderRequest,
    Role,
)
from switchboard.providers.google import GoogleAdapter
from switchboard.providers.openai import OpenAICompatibleAdapter
from switchboard.providers.registry import DEFAULT_PROVIDERS, ProviderRegistry
from switchboard.providers.router import (
    ModelSelector,
    SelectionResult,
    TaskComplexity,
    classify_complexity,
)

__all__ = [
    "AnthropicAdapter",
    "DEFAULT_PROVIDERS",
    "GoogleAdapter",
    "Message",
    "ModelSelector",
    "OpenAICompatibleAdapter",
    "ProviderAdapter",
    "ProviderConfig",
    "ProviderFamily",
    "ProviderRegistry",
    "ProviderRequest",
    "Role",
    "SelectionResult",
    "TaskComplexity",
    "classify_complexity",
    "create_registry",
    "translate",
]


def create_registry(credentials: CredentialSource | None = None) -> ProviderRegistry:
    """Factory for the default provider table.

    Args:
        credentials: Credential source; defaults to environment variables.
    """
    return ProviderRegistry(credentials=credentials)


def translate(
    provider: ProviderConfig,
    model: str,
    system_prompt: str | None,
    messages: Sequence[Message],
    *,
    streaming: bool,
    credential: str,
    max_tokens: int = 8192,
) -> ProviderRequest:
    """Translate a conversation into `provider`'s request shape.

    The conversation is not mutated. Streaming is only requested from
    families that support it at the protocol level.
    """
    return provider.adapter.build_request(
        provider,
        model,
        system_prompt,
        tuple(messages),
        stream=streaming and provider.adapter.supports_streaming,
        credential=credential,
        max_tokens=max_tokens,
    )
