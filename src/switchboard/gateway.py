"""
Switchboard Chat Gateway

Wires the pieces together for one chat turn:

    select -> translate -> provider call -> normalize -> (fallback)

Fallback policy: if the primary provider fails before any TextDelta
has been produced, the turn is retried once against the configured
fallback model. Once text has been produced, a failure is terminal and
surfaces as a StreamError.

Upstream errors never escape stream() as exceptions: they become a
final StreamError. Selection errors (NoProviderAvailableError) are
raised so the caller can report them before anything is streamed.
"""

from __future__ import annotations

import re
import time
from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing

import httpx
from pydantic import BaseModel

from switchboard.config import GatewaySettings
from switchboard.exceptions import (
    NoProviderAvailableError,
    UnknownProviderError,
    UpstreamError,
    UpstreamTimeoutError,
)
from switchboard.logging import get_logger
from switchboard.providers import translate
from switchboard.providers.base import Message, ProviderRequest, Role
from switchboard.providers.registry import ProviderRegistry
from switchboard.providers.router import ModelSelector, SelectionResult
from switchboard.streaming.events import Done, StreamError, StreamEvent, TextDelta, is_terminal
from switchboard.streaming.normalizer import StreamNormalizer, describe_failure

logger = get_logger("switchboard.gateway")

_KEY_PARAM = re.compile(r"([?&]key=)[^&\s\"']+")
NO_RESPONSE = "No response"


class ChatResult(BaseModel):
    """Result of a non-streaming chat turn."""

    response: str
    provider: str
    model: str


class ChatGateway:
    """Multi-provider chat gateway.

    Stateless per request: the only shared state is the read-only
    registry and the pooled HTTP client.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        settings: GatewaySettings | None = None,
        selector: ModelSelector | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self._registry = registry
        self._settings = settings or GatewaySettings()
        self._selector = selector or ModelSelector(registry)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(
                self._settings.timeout_seconds,
                connect=self._settings.connect_timeout_seconds,
            )
        )

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def settings(self) -> GatewaySettings:
        return self._settings

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ─── Selection ──────────────────────────────────────────

    def prepare_messages(self, messages: Sequence[Message]) -> list[Message]:
        """Keep the newest turn plus the last N history turns."""
        if not messages:
            return []
        limit = max(self._settings.context_messages, 0)
        history = list(messages[:-1])
        history = history[-limit:] if limit else []
        return history + [messages[-1]]

    def select(self, messages: Sequence[Message], requested_model: str | None = None) -> SelectionResult:
        """Resolve the provider/model for a turn. Task text is the newest user message."""
        task_text = next(
            (m.content for m in reversed(messages) if m.role == Role.USER),
            "",
        )
        return self._selector.select(requested_model, task_text, self._registry.credentialed())

    def fallback_for(self, primary: SelectionResult) -> SelectionResult | None:
        """The configured fallback, if it is usable and differs from `primary`."""
        label = self._settings.fallback_model
        if not label or "/" not in label:
            return None
        provider_id, model = label.split("/", 1)
        try:
            provider = self._registry.resolve(provider_id)
        except UnknownProviderError:
            logger.warning("Ignoring fallback with unknown provider: %s", label)
            return None
        fallback = SelectionResult(provider=provider.id, model=model)
        if fallback.label == primary.label or not self._registry.has_credential(provider.id):
            return None
        return fallback

    def _candidates(self, primary: SelectionResult) -> list[SelectionResult]:
        fallback = self.fallback_for(primary)
        return [primary, fallback] if fallback else [primary]

    def build_request(
        self,
        selection: SelectionResult,
        messages: Sequence[Message],
        system_prompt: str | None,
        *,
        streaming: bool,
    ) -> ProviderRequest:
        provider = self._registry.resolve(selection.provider)
        credential = self._registry.credential(provider.id)
        if not credential:
            raise NoProviderAvailableError(f"No credential configured for provider '{provider.id}'")
        return translate(
            provider,
            selection.model,
            system_prompt,
            messages,
            streaming=streaming,
            credential=credential,
            max_tokens=self._settings.max_tokens,
        )

    def sanitize(self, text: str) -> str:
        """Scrub credentials from a message before it leaves the process."""
        for secret in self._registry.secrets():
            text = text.replace(secret, "***")
        return _KEY_PARAM.sub(r"\1***", text)

    # ─── Streaming ──────────────────────────────────────────

    async def stream(
        self,
        messages: Sequence[Message],
        model: str | None = None,
        system_prompt: str | None = None,
        request_id: str | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream one chat turn as normalized events, ending in Done or StreamError.

        Raises:
            NoProviderAvailableError: before the first event, if nothing can serve the turn.
        """
        messages = self.prepare_messages(messages)
        prompt = self._settings.system_prompt if system_prompt is None else system_prompt
        candidates = self._candidates(self.select(messages, model))

        for attempt, selection in enumerate(candidates, start=1):
            can_fall_back = attempt < len(candidates)
            emitted_text = False

            async with aclosing(
                self._stream_attempt(selection, messages, prompt, attempt, request_id)
            ) as events:
                async for event in events:
                    if isinstance(event, StreamError) and not emitted_text and can_fall_back:
                        logger.warning(
                            "Primary provider failed before output, falling back: %s",
                            event.message,
                            extra={
                                "request_id": request_id,
                                "provider": selection.provider,
                                "model": selection.model,
                                "attempt": attempt,
                            },
                        )
                        break
                    if isinstance(event, TextDelta):
                        emitted_text = True
                    yield event
                    if is_terminal(event):
                        return
                else:
                    # attempt ended without a terminal event
                    yield Done()
                    return

    async def _stream_attempt(
        self,
        selection: SelectionResult,
        messages: Sequence[Message],
        system_prompt: str | None,
        attempt: int,
        request_id: str | None,
    ) -> AsyncIterator[StreamEvent]:
        log_extra = {
            "request_id": request_id,
            "provider": selection.provider,
            "model": selection.model,
            "attempt": attempt,
        }
        try:
            request = self.build_request(selection, messages, system_prompt, streaming=True)
        except (NoProviderAvailableError, UnknownProviderError) as e:
            yield StreamError(message=e.message, code=e.code)
            return

        provider = self._registry.resolve(selection.provider)
        normalizer = StreamNormalizer(
            provider.adapter,
            provider_id=provider.id,
            word_delay=self._settings.word_delay_seconds,
        )
        started = time.monotonic()
        logger.info("Opening provider stream", extra=log_extra)

        try:
            async with self._client.stream(
                request.method, request.url, headers=request.headers, json=request.body
            ) as response:
                async for event in normalizer.normalize(response):
                    if isinstance(event, TextDelta):
                        yield event.model_copy(update={"source": selection.label})
                    elif isinstance(event, StreamError):
                        yield StreamError(message=self.sanitize(event.message), code=event.code)
                    else:
                        yield event
        except httpx.TimeoutException:
            if not normalizer.terminated:
                yield StreamError(
                    message=(
                        f"Request to provider '{provider.id}' timed out "
                        f"after {self._settings.timeout_seconds:g}s"
                    ),
                    code=UpstreamTimeoutError.code,
                )
        except httpx.HTTPError as e:
            if not normalizer.terminated:
                yield StreamError(
                    message=self.sanitize(f"Request to provider '{provider.id}' failed: {e}"),
                    code=UpstreamError.code,
                )
        finally:
            logger.info(
                "Provider stream closed",
                extra={
                    **log_extra,
                    "event_type": normalizer.state.value,
                    "duration_ms": int((time.monotonic() - started) * 1000),
                },
            )

    # ─── Non-streaming ──────────────────────────────────────

    async def complete(
        self,
        messages: Sequence[Message],
        model: str | None = None,
        system_prompt: str | None = None,
        request_id: str | None = None,
    ) -> ChatResult:
        """Run one chat turn without streaming.

        Raises:
            NoProviderAvailableError: if nothing can serve the turn.
            UpstreamError: if every candidate provider failed.
        """
        messages = self.prepare_messages(messages)
        prompt = self._settings.system_prompt if system_prompt is None else system_prompt
        candidates = self._candidates(self.select(messages, model))

        for attempt, selection in enumerate(candidates, start=1):
            try:
                text = await self._complete_attempt(selection, messages, prompt)
            except UpstreamError as e:
                if attempt < len(candidates):
                    logger.warning(
                        "Primary provider failed, falling back: %s",
                        e.message,
                        extra={
                            "request_id": request_id,
                            "provider": selection.provider,
                            "model": selection.model,
                            "attempt": attempt,
                        },
                    )
                    continue
                raise
            return ChatResult(
                response=text or NO_RESPONSE,
                provider=selection.provider,
                model=selection.label,
            )

        raise NoProviderAvailableError()

    async def _complete_attempt(
        self,
        selection: SelectionResult,
        messages: Sequence[Message],
        system_prompt: str | None,
    ) -> str:
        provider = self._registry.resolve(selection.provider)
        request = self.build_request(selection, messages, system_prompt, streaming=False)

        try:
            response = await self._client.request(
                request.method, request.url, headers=request.headers, json=request.body
            )
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(
                provider.id, f"timed out after {self._settings.timeout_seconds:g}s"
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamError(provider.id, self.sanitize(f"request failed: {e}")) from e

        if not response.is_success:
            message = describe_failure(provider.adapter, response.status_code, response.content)
            raise UpstreamError(provider.id, self.sanitize(message), response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamError(provider.id, "unreadable response", response.status_code) from e

        message = provider.adapter.error_message(body)
        if message:
            raise UpstreamError(provider.id, self.sanitize(message), response.status_code)
        return provider.adapter.parse_response(body)
