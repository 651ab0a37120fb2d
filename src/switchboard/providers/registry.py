"""
Switchboard Provider Registry

Static table of known providers: endpoint, supported models and the
adapter that speaks their wire format. Credentials are looked up through
an injected CredentialSource; the table itself is read-only after
construction and safe to share between concurrent requests.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from types import MappingProxyType

from switchboard.credentials import CredentialSource, EnvCredentialSource
from switchboard.exceptions import UnknownModelError, UnknownProviderError
from switchboard.providers.anthropic import AnthropicAdapter
from switchboard.providers.base import ProviderConfig
from switchboard.providers.google import GoogleAdapter
from switchboard.providers.openai import OpenAICompatibleAdapter

_openai_compatible = OpenAICompatibleAdapter()

DEFAULT_PROVIDERS: tuple[ProviderConfig, ...] = (
    ProviderConfig(
        id="anthropic",
        name="Anthropic",
        base_url="https://api.anthropic.com/v1/messages",
        models=("claude-sonnet-4-20250514", "claude-3-5-haiku-20241022"),
        adapter=AnthropicAdapter(),
    ),
    ProviderConfig(
        id="openai",
        name="OpenAI",
        base_url="https://api.openai.com/v1/chat/completions",
        models=("gpt-4o", "gpt-4o-mini"),
        adapter=_openai_compatible,
    ),
    ProviderConfig(
        id="groq",
        name="Groq",
        base_url="https://api.groq.com/openai/v1/chat/completions",
        models=("llama-3.3-70b-versatile", "llama-3.1-8b-instant"),
        adapter=_openai_compatible,
    ),
    ProviderConfig(
        id="google",
        name="Google",
        base_url="https://generativelanguage.googleapis.com/v1beta/models",
        models=("gemini-1.5-pro", "gemini-1.5-flash"),
        adapter=GoogleAdapter(),
    ),
)

PROVIDER_ALIASES: dict[str, str] = {
    "gemini": "google",
    "claude": "anthropic",
}


class ProviderRegistry:
    """Read-only provider table plus a credential lookup."""

    def __init__(
        self,
        providers: Iterable[ProviderConfig] | None = None,
        credentials: CredentialSource | None = None,
        aliases: dict[str, str] | None = None,
    ):
        table = {p.id: p for p in (DEFAULT_PROVIDERS if providers is None else providers)}
        self._providers = MappingProxyType(table)
        self._aliases = MappingProxyType(dict(PROVIDER_ALIASES if aliases is None else aliases))
        self._credentials = credentials or EnvCredentialSource()

    @property
    def providers(self) -> tuple[ProviderConfig, ...]:
        return tuple(self._providers.values())

    @property
    def provider_ids(self) -> tuple[str, ...]:
        return tuple(self._providers)

    def __contains__(self, provider_id: object) -> bool:
        if not isinstance(provider_id, str):
            return False
        return self._canonical(provider_id) in self._providers

    def _canonical(self, provider_id: str) -> str:
        key = provider_id.strip().lower()
        return self._aliases.get(key, key)

    def resolve(self, provider_id: str) -> ProviderConfig:
        """Look up a provider by id or alias.

        Raises:
            UnknownProviderError: if the id is not registered.
        """
        config = self._providers.get(self._canonical(provider_id))
        if config is None:
            raise UnknownProviderError(provider_id)
        return config

    def credential(self, provider_id: str) -> str | None:
        """Return the credential for a provider, or None if absent."""
        return self._credentials.get(self.resolve(provider_id).id) or None

    def has_credential(self, provider_id: str) -> bool:
        try:
            return self.credential(provider_id) is not None
        except UnknownProviderError:
            return False

    def credentialed(self) -> frozenset[str]:
        """Ids of every provider that currently has a credential."""
        return frozenset(pid for pid in self._providers if self.has_credential(pid))

    def provider_for_model(
        self, model: str, credentials: Collection[str] | None = None
    ) -> ProviderConfig:
        """First provider (in registry order) listing `model`.

        When `credentials` is given, only those provider ids are considered.

        Raises:
            UnknownModelError: if no eligible provider lists the model.
        """
        for config in self._providers.values():
            if credentials is not None and config.id not in credentials:
                continue
            if config.supports_model(model):
                return config
        raise UnknownModelError(model)

    def available_models(self) -> list[dict[str, str]]:
        """Every (provider, model) pair whose provider has a credential."""
        available: list[dict[str, str]] = []
        for config in self._providers.values():
            if not self.has_credential(config.id):
                continue
            for model in config.models:
                available.append({"provider": config.id, "model": model, "id": f"{config.id}/{model}"})
        return available

    def with_credentials(self, credentials: CredentialSource) -> ProviderRegistry:
        """Same provider table, different credential source (e.g. per-user keys)."""
        return ProviderRegistry(
            providers=self._providers.values(),
            credentials=credentials,
            aliases=dict(self._aliases),
        )

    def secrets(self) -> list[str]:
        """Current credential values, for scrubbing outbound error messages."""
        values = (self._credentials.get(pid) for pid in self._providers)
        return [v for v in values if v]
