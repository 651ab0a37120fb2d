"""
Switchboard Credential Sources

Provider credentials are always read through an injected source, never
from literals. A source answers one question: "what is the key for this
provider, if any?". Empty strings are treated as absent.

Sources:
- EnvCredentialSource:     process environment (ANTHROPIC_API_KEY, ...)
- MappingCredentialSource: an in-memory dict (tests, per-request overrides)
- StoreCredentialSource:   a per-user key-value store (external collaborator)
- ChainedCredentialSource: first source with a value wins
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Protocol, runtime_checkable

# Provider id -> environment variables consulted, in order
ENV_KEYS: dict[str, tuple[str, ...]] = {
    "anthropic": ("ANTHROPIC_API_KEY",),
    "openai": ("OPENAI_API_KEY",),
    "groq": ("GROQ_API_KEY",),
    "google": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
}


@runtime_checkable
class CredentialSource(Protocol):
    def get(self, provider_id: str) -> str | None: ...


@runtime_checkable
class KeyValueStore(Protocol):
    """Minimal get/set store interface (database layer lives elsewhere)."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class EnvCredentialSource:
    """Reads provider keys from environment variables."""

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        env_keys: Mapping[str, tuple[str, ...]] | None = None,
    ):
        self._environ = environ
        self._env_keys = dict(env_keys or ENV_KEYS)

    def get(self, provider_id: str) -> str | None:
        env = os.environ if self._environ is None else self._environ
        for var in self._env_keys.get(provider_id, ()):
            value = env.get(var)
            if value:
                return value
        return None


class MappingCredentialSource:
    """Serves keys from a fixed mapping of provider id -> key."""

    def __init__(self, keys: Mapping[str, str] | None = None):
        self._keys = dict(keys or {})

    def get(self, provider_id: str) -> str | None:
        return self._keys.get(provider_id) or None


class StoreCredentialSource:
    """Per-user keys held in an external key-value store.

    Keys are stored under ``credentials:{user_id}:{provider_id}``.
    Decryption, if any, is the store's concern.
    """

    def __init__(self, store: KeyValueStore, user_id: str):
        self._store = store
        self._user_id = user_id

    @staticmethod
    def key_for(user_id: str, provider_id: str) -> str:
        return f"credentials:{user_id}:{provider_id}"

    def get(self, provider_id: str) -> str | None:
        return self._store.get(self.key_for(self._user_id, provider_id)) or None


class ChainedCredentialSource:
    """Consults sources in order; the first non-empty value wins."""

    def __init__(self, *sources: CredentialSource):
        self._sources = sources

    def get(self, provider_id: str) -> str | None:
        for source in self._sources:
            value = source.get(provider_id)
            if value:
                return value
        return None
