"""Shared test fixtures for the Switchboard test suite."""

import json

import httpx
import pytest

from switchboard.config import GatewaySettings
from switchboard.credentials import MappingCredentialSource
from switchboard.gateway import ChatGateway
from switchboard.providers.base import Message, Role
from switchboard.providers.registry import ProviderRegistry

TEST_KEYS = {
    "anthropic": "sk-ant-test-key",
    "openai": "sk-openai-test-key",
    "groq": "gsk-groq-test-key",
    "google": "gemini-test-key",
}

PROVIDER_HOSTS = {
    "api.anthropic.com": "anthropic",
    "api.openai.com": "openai",
    "api.groq.com": "groq",
    "generativelanguage.googleapis.com": "google",
}


def sse_body(*payloads, done: bool = True) -> bytes:
    """Encode payloads as an SSE body the way providers send them."""
    frames = [f"data: {json.dumps(p, ensure_ascii=False)}\n\n" for p in payloads]
    if done:
        frames.append("data: [DONE]\n\n")
    return "".join(frames).encode()


class FakeProviders:
    """MockTransport handler routing by provider host.

    Each provider maps to a callable(request) -> httpx.Response.
    Every request is recorded as (provider_id, request).
    """

    def __init__(self, **handlers):
        self.handlers = handlers
        self.calls: list[tuple[str, httpx.Request]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        provider_id = PROVIDER_HOSTS[request.url.host]
        self.calls.append((provider_id, request))
        handler = self.handlers.get(provider_id)
        if handler is None:
            return httpx.Response(500, json={"error": {"message": f"no handler for {provider_id}"}})
        return handler(request)

    def called(self) -> list[str]:
        return [provider_id for provider_id, _ in self.calls]


@pytest.fixture
def credentials():
    return MappingCredentialSource(TEST_KEYS)


@pytest.fixture
def registry(credentials):
    return ProviderRegistry(credentials=credentials)


@pytest.fixture
def empty_registry():
    return ProviderRegistry(credentials=MappingCredentialSource({}))


@pytest.fixture
def settings():
    return GatewaySettings(word_delay_ms=0, fallback_model=None, system_prompt="You are helpful.")


@pytest.fixture
def conversation():
    return [
        Message(role=Role.USER, content="Hi there"),
        Message(role=Role.ASSISTANT, content="Hello! How can I help?"),
        Message(role=Role.USER, content="Rename my variable please"),
    ]


@pytest.fixture
def sse():
    return sse_body


@pytest.fixture
def fake_providers():
    return FakeProviders


@pytest.fixture
def make_gateway(registry, settings):
    """Factory: gateway wired to a FakeProviders transport."""

    def _make(fake: FakeProviders, *, gateway_registry=None, gateway_settings=None) -> ChatGateway:
        client = httpx.AsyncClient(transport=httpx.MockTransport(fake))
        return ChatGateway(
            gateway_registry or registry,
            settings=gateway_settings or settings,
            client=client,
        )

    return _make
