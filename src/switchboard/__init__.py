"""
Switchboard — Multi-Provider Streaming Chat Gateway

Usage:
    from switchboard import ChatGateway, Message, create_registry

    gateway = ChatGateway(create_registry())
    async for event in gateway.stream([Message(role="user", content="Build a todo app")]):
        ...

    # Pin a provider/model:
    result = await gateway.complete(messages, model="groq/llama-3.3-70b-versatile")
"""

__version__ = "0.1.0"

from switchboard.config import GatewaySettings
from switchboard.exceptions import (
    FrameParseError,
    NoProviderAvailableError,
    SwitchboardError,
    UnknownModelError,
    UnknownProviderError,
    UpstreamError,
    UpstreamTimeoutError,
)
from switchboard.gateway import ChatGateway, ChatResult
from switchboard.providers import (
    Message,
    ModelSelector,
    ProviderRegistry,
    Role,
    SelectionResult,
    TaskComplexity,
    create_registry,
    translate,
)
from switchboard.streaming import Done, StreamError, StreamEvent, StreamNormalizer, TextDelta

__all__ = [
    "__version__",
    # Gateway
    "ChatGateway",
    "ChatResult",
    "GatewaySettings",
    # Providers
    "Message",
    "ModelSelector",
    "ProviderRegistry",
    "Role",
    "SelectionResult",
    "TaskComplexity",
    "create_registry",
    "translate",
    # Streaming
    "Done",
    "StreamError",
    "StreamEvent",
    "StreamNormalizer",
    "TextDelta",
    # Errors
    "FrameParseError",
    "NoProviderAvailableError",
    "SwitchboardError",
    "UnknownModelError",
    "UnknownProviderError",
    "UpstreamError",
    "UpstreamTimeoutError",
]
