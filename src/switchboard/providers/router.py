"""
Switchboard Model Selector

Resolves a requested model string plus the task text to a concrete
(provider, model) pair:

- Explicit "provider/model": used verbatim when the provider is known
  and credentialed (the provider rejects invalid model names itself)
- Bare "model": first credentialed provider that lists it
- "auto", absent, or unresolvable: task complexity picks a preference
  list, and the first credentialed entry wins

Selection is a pure function of its inputs: the credential set is passed
in rather than read from the environment.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from enum import Enum

from pydantic import BaseModel, ConfigDict

from switchboard.exceptions import (
    NoProviderAvailableError,
    UnknownModelError,
    UnknownProviderError,
)
from switchboard.providers.registry import ProviderRegistry

AUTO = "auto"


class TaskComplexity(str, Enum):
    """Coarse task classification used for automatic routing."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


HIGH_COMPLEXITY_KEYWORDS: tuple[str, ...] = (
    "build",
    "architect",
    "full app",
    "full-stack",
    "full stack",
    "database schema",
    "refactor entire",
    "production",
)

LOW_COMPLEXITY_KEYWORDS: tuple[str, ...] = (
    "fix typo",
    "typo",
    "rename",
    "simple",
    "quick question",
)

HIGH_LENGTH_THRESHOLD = 500  # strictly longer -> HIGH
LOW_LENGTH_THRESHOLD = 100  # strictly shorter -> LOW

# Highest quality first for complex work, cheapest first for simple work
DEFAULT_PREFERENCES: dict[TaskComplexity, tuple[tuple[str, str], ...]] = {
    TaskComplexity.HIGH: (
        ("anthropic", "claude-sonnet-4-20250514"),
        ("openai", "gpt-4o"),
        ("google", "gemini-1.5-pro"),
        ("groq", "llama-3.3-70b-versatile"),
    ),
    TaskComplexity.MEDIUM: (
        ("anthropic", "claude-3-5-haiku-20241022"),
        ("openai", "gpt-4o-mini"),
        ("groq", "llama-3.3-70b-versatile"),
        ("google", "gemini-1.5-flash"),
    ),
    TaskComplexity.LOW: (
        ("groq", "llama-3.1-8b-instant"),
        ("google", "gemini-1.5-flash"),
        ("openai", "gpt-4o-mini"),
        ("anthropic", "claude-3-5-haiku-20241022"),
    ),
}


def classify_complexity(task_text: str) -> TaskComplexity:
    """Keyword + length classification. High keywords win over low ones."""
    text = (task_text or "").lower()
    if any(keyword in text for keyword in HIGH_COMPLEXITY_KEYWORDS):
        return TaskComplexity.HIGH
    if any(keyword in text for keyword in LOW_COMPLEXITY_KEYWORDS):
        return TaskComplexity.LOW
    length = len(task_text or "")
    if length > HIGH_LENGTH_THRESHOLD:
        return TaskComplexity.HIGH
    if length < LOW_LENGTH_THRESHOLD:
        return TaskComplexity.LOW
    return TaskComplexity.MEDIUM


class SelectionResult(BaseModel):
    """A resolved (provider, model) pair."""

    model_config = ConfigDict(frozen=True)

    provider: str
    model: str
    complexity: TaskComplexity | None = None  # set only for automatic routing

    @property
    def label(self) -> str:
        return f"{self.provider}/{self.model}"


class ModelSelector:
    """Routes a chat turn to a provider/model."""

    def __init__(
        self,
        registry: ProviderRegistry,
        preferences: Mapping[TaskComplexity, Sequence[tuple[str, str]]] | None = None,
    ):
        self._registry = registry
        self._preferences = {
            level: tuple(entries)
            for level, entries in (preferences or DEFAULT_PREFERENCES).items()
        }

    def select(
        self,
        requested_model: str | None,
        task_text: str,
        credentials: Iterable[str],
    ) -> SelectionResult:
        """Resolve to a (provider, model) pair.

        Raises:
            NoProviderAvailableError: if no candidate provider has a credential.
        """
        available = frozenset(credentials)

        requested = (requested_model or "").strip()
        if requested and requested.lower() != AUTO:
            explicit = self._resolve_explicit(requested, available)
            if explicit is not None:
                return explicit

        complexity = classify_complexity(task_text)
        for provider_id, model in self._preferences.get(complexity, ()):
            if provider_id in available and provider_id in self._registry:
                return SelectionResult(provider=provider_id, model=model, complexity=complexity)

        raise NoProviderAvailableError(
            details={"complexity": complexity.value, "requested_model": requested_model}
        )

    def _resolve_explicit(self, requested: str, available: frozenset[str]) -> SelectionResult | None:
        if "/" in requested:
            prefix, name = requested.split("/", 1)
            try:
                provider = self._registry.resolve(prefix)
            except UnknownProviderError:
                provider = None
            if provider is not None:
                if provider.id in available and name:
                    return SelectionResult(provider=provider.id, model=name)
                return None

        try:
            provider = self._registry.provider_for_model(requested, credentials=available)
        except UnknownModelError:
            return None
        return SelectionResult(provider=provider.id, model=requested)
