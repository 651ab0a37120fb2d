"""Tests for the Switchboard FastAPI server and response relay.

Uses httpx AsyncClient with ASGITransport so requests run in-process
against a gateway wired to a fake provider transport.
"""

import json

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from switchboard.api.relay import STREAM_SENTINEL, ResponseRelay, StreamRegistry, encode_event
from switchboard.api.server import create_app
from switchboard.exceptions import NoProviderAvailableError
from switchboard.streaming.events import Done, StreamError, TextDelta


def openai_delta(text: str) -> dict:
    return {"choices": [{"index": 0, "delta": {"content": text}}]}


def parse_frames(body: str) -> list:
    """Split an SSE body into decoded payloads; the sentinel stays a string."""
    frames = []
    for block in body.split("\n\n"):
        if not block:
            continue
        assert block.startswith("data: ")
        data = block[len("data: "):]
        frames.append(data if data == "[DONE]" else json.loads(data))
    return frames


@pytest.fixture
def app_for(make_gateway):
    def _app(fake, **kwargs):
        return create_app(gateway=make_gateway(fake, **kwargs))

    return _app


@pytest.fixture
def client_for(app_for):
    def _client(fake, **kwargs):
        app = app_for(fake, **kwargs)
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")

    return _client


# ─── Models ─────────────────────────────────────────────────


class TestModels:
    async def test_lists_credentialed_models(self, client_for, fake_providers):
        async with client_for(fake_providers()) as client:
            resp = await client.get("/models")
        assert resp.status_code == 200
        ids = [m["id"] for m in resp.json()["models"]]
        assert "anthropic/claude-sonnet-4-20250514" in ids
        assert "groq/llama-3.1-8b-instant" in ids
        assert len(ids) == 8

    async def test_no_credentials(self, client_for, fake_providers, empty_registry):
        async with client_for(fake_providers(), gateway_registry=empty_registry) as client:
            resp = await client.get("/models")
        assert resp.json() == {"models": []}

    async def test_provider_models(self, client_for, fake_providers):
        async with client_for(fake_providers()) as client:
            resp = await client.get("/models/gemini")
        assert resp.status_code == 200
        data = resp.json()
        assert data["provider"] == "google"
        assert data["available"] is True
        assert "gemini-1.5-flash" in data["models"]

    async def test_unknown_provider(self, client_for, fake_providers):
        async with client_for(fake_providers()) as client:
            resp = await client.get("/models/mistral")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Unknown provider: mistral", "code": "unknown_provider"}

    async def test_prefixed_routes(self, client_for, fake_providers):
        async with client_for(fake_providers()) as client:
            resp = await client.get("/api/ai/models")
        assert resp.status_code == 200
        assert resp.json()["models"]


# ─── Chat ───────────────────────────────────────────────────


class TestChat:
    async def test_complete(self, client_for, fake_providers):
        fake = fake_providers(
            openai=lambda r: httpx.Response(200, json={"choices": [{"message": {"content": "Hi!"}}]})
        )
        async with client_for(fake) as client:
            resp = await client.post(
                "/chat", json={"messages": [{"role": "user", "content": "hello"}], "model": "openai/gpt-4o"}
            )
        assert resp.status_code == 200
        assert resp.json() == {"response": "Hi!", "provider": "openai", "model": "openai/gpt-4o"}

    async def test_no_provider(self, client_for, fake_providers, empty_registry):
        async with client_for(fake_providers(), gateway_registry=empty_registry) as client:
            resp = await client.post("/chat", json={"messages": [{"role": "user", "content": "hi"}]})
        assert resp.status_code == 503
        assert resp.json() == {"error": "No AI provider configured", "code": "no_provider_available"}

    async def test_upstream_failure(self, client_for, fake_providers):
        async with client_for(fake_providers()) as client:
            resp = await client.post(
                "/api/ai/chat",
                json={"messages": [{"role": "user", "content": "hi"}], "model": "openai/gpt-4o"},
            )
        assert resp.status_code == 502
        assert resp.json()["code"] == "upstream_error"

    async def test_empty_body(self, client_for, fake_providers):
        async with client_for(fake_providers()) as client:
            resp = await client.post("/chat", json={})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Message required", "code": "bad_request"}

    async def test_invalid_role(self, client_for, fake_providers):
        async with client_for(fake_providers()) as client:
            resp = await client.post("/chat", json={"messages": [{"role": "robot", "content": "hi"}]})
        assert resp.status_code == 422

    async def test_legacy_body(self, client_for, fake_providers):
        fake = fake_providers(
            groq=lambda r: httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})
        )
        async with client_for(fake) as client:
            resp = await client.post(
                "/chat",
                json={
                    "message": "and now?",
                    "context": [
                        {"role": "user", "content": "first"},
                        {"role": "assistant", "content": "reply"},
                    ],
                    "model": "groq/llama-3.1-8b-instant",
                },
            )
        assert resp.status_code == 200
        sent = json.loads(fake.calls[0][1].content)["messages"]
        assert [m["content"] for m in sent[1:]] == ["first", "reply", "and now?"]


# ─── Stream ─────────────────────────────────────────────────


class TestStream:
    async def test_frames_and_headers(self, client_for, fake_providers, sse):
        fake = fake_providers(
            openai=lambda r: httpx.Response(200, content=sse(openai_delta("Hel"), openai_delta("lo")))
        )
        async with client_for(fake) as client:
            resp = await client.post(
                "/stream",
                json={"messages": [{"role": "user", "content": "hi"}], "model": "openai/gpt-4o"},
            )
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/event-stream")
        assert resp.headers["cache-control"] == "no-cache"
        assert resp.headers["x-request-id"]
        assert parse_frames(resp.text) == [
            {"text": "Hel", "model": "openai/gpt-4o"},
            {"text": "lo", "model": "openai/gpt-4o"},
            {"done": True},
            "[DONE]",
        ]

    async def test_no_provider_is_error_frame(self, client_for, fake_providers, empty_registry):
        async with client_for(fake_providers(), gateway_registry=empty_registry) as client:
            resp = await client.post("/api/ai/stream", json={"message": "hi"})
        assert resp.status_code == 200
        assert parse_frames(resp.text) == [
            {"error": "No AI provider configured", "code": "no_provider_available"},
            "[DONE]",
        ]

    async def test_upstream_error_frame(self, client_for, fake_providers):
        fake = fake_providers(
            anthropic=lambda r: httpx.Response(529, json={"type": "error", "error": {"message": "Overloaded"}})
        )
        async with client_for(fake) as client:
            resp = await client.post(
                "/stream",
                json={
                    "messages": [{"role": "user", "content": "hi"}],
                    "model": "anthropic/claude-3-5-haiku-20241022",
                },
            )
        assert parse_frames(resp.text) == [
            {"error": "Overloaded", "code": "upstream_error"},
            "[DONE]",
        ]

    async def test_empty_body(self, client_for, fake_providers):
        async with client_for(fake_providers()) as client:
            resp = await client.post("/stream", json={"messages": []})
        assert resp.status_code == 400

    async def test_stream_unregistered_after_completion(self, app_for, fake_providers, sse):
        fake = fake_providers(groq=lambda r: httpx.Response(200, content=sse(openai_delta("x"))))
        app = app_for(fake)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            await client.post("/stream", json={"message": "hi", "model": "groq/llama-3.1-8b-instant"})
            status = await client.get("/api/status")
        assert len(app.state.relay.streams) == 0
        assert status.json()["active_streams"] == 0


# ─── Operational ────────────────────────────────────────────


class TestOperational:
    async def test_health(self, client_for, fake_providers):
        async with client_for(fake_providers()) as client:
            resp = await client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
        assert "timestamp" in resp.json()

    async def test_status(self, client_for, fake_providers):
        async with client_for(fake_providers()) as client:
            resp = await client.get("/api/status")
        data = resp.json()
        assert data["version"] == "0.1.0"
        assert data["providers"] == ["anthropic", "google", "groq", "openai"]

    async def test_cors_preflight(self, client_for, fake_providers):
        async with client_for(fake_providers()) as client:
            resp = await client.options(
                "/stream",
                headers={
                    "Origin": "http://localhost:5173",
                    "Access-Control-Request-Method": "POST",
                },
            )
        assert resp.headers["access-control-allow-origin"] == "http://localhost:5173"


# ─── Relay ──────────────────────────────────────────────────


async def events_from(*events):
    for event in events:
        yield event


async def failing_events():
    yield TextDelta(text="partial")
    raise RuntimeError("boom")


async def unavailable_events():
    raise NoProviderAvailableError()
    yield  # pragma: no cover


class TestRelay:
    def test_encode_text(self):
        assert encode_event(TextDelta(text="hi", source="groq/x")) == 'data: {"text": "hi", "model": "groq/x"}\n\n'
        assert encode_event(TextDelta(text="hi")) == 'data: {"text": "hi"}\n\n'

    def test_encode_done(self):
        assert encode_event(Done()) == 'data: {"done": true}\n\n'

    def test_encode_error(self):
        frame = encode_event(StreamError(message="bad", code="upstream_timeout"))
        assert json.loads(frame[len("data: "):]) == {"error": "bad", "code": "upstream_timeout"}

    async def test_missing_terminal_gets_done(self):
        relay = ResponseRelay()
        frames = [f async for f in relay.frames(events_from(TextDelta(text="a")), "s1")]
        assert frames == [encode_event(TextDelta(text="a")), encode_event(Done()), STREAM_SENTINEL]

    async def test_stops_after_first_terminal(self):
        relay = ResponseRelay()
        source = events_from(Done(), TextDelta(text="late"), StreamError(message="late"))
        frames = [f async for f in relay.frames(source, "s1")]
        assert frames == [encode_event(Done()), STREAM_SENTINEL]

    async def test_unexpected_exception(self):
        relay = ResponseRelay()
        frames = [f async for f in relay.frames(failing_events(), "s1")]
        assert frames[-2] == encode_event(StreamError(message="Internal gateway error", code="gateway_error"))
        assert frames[-1] == STREAM_SENTINEL
        assert len(relay.streams) == 0

    async def test_gateway_error_before_first_event(self):
        relay = ResponseRelay()
        frames = [f async for f in relay.frames(unavailable_events(), "s1")]
        assert parse_frames("".join(frames)) == [
            {"error": "No AI provider configured", "code": "no_provider_available"},
            "[DONE]",
        ]

    async def test_registered_while_streaming(self):
        streams = StreamRegistry()
        relay = ResponseRelay(streams)
        frames = relay.frames(events_from(TextDelta(text="a"), Done()), "live")
        await frames.__anext__()
        assert "live" in streams
        await frames.aclose()
        assert "live" not in streams
