"""
Switchboard API Server

FastAPI backend-for-frontend for the chat gateway.

Endpoints (served at the root and under /api/ai):
    POST /chat            — one complete answer as JSON
    POST /stream          — incremental answer as SSE frames
    GET  /models          — credentialed (provider, model) pairs
    GET  /models/{id}     — one provider's models

Operational:
    GET  /api/health
    GET  /api/status

Usage:
    uvicorn switchboard.api.server:app --reload
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

from switchboard import __version__
from switchboard.api.relay import ResponseRelay
from switchboard.config import GatewaySettings
from switchboard.exceptions import GatewayAPIError, SwitchboardError
from switchboard.gateway import ChatGateway, ChatResult
from switchboard.logging import configure_logging, get_logger
from switchboard.providers import create_registry
from switchboard.providers.base import Message, Role

logger = get_logger("switchboard.api")


# ─── Request/Response Models ────────────────────────────────

class ChatRequest(BaseModel):
    """Chat turn. Accepts `messages`, or the legacy `message` + `context` pair."""

    messages: list[Message] = Field(default_factory=list)
    message: str | None = None
    context: list[Message] = Field(default_factory=list)
    model: str | None = None
    system: str | None = None

    def conversation(self) -> list[Message]:
        turns = list(self.messages) if self.messages else list(self.context)
        if self.message:
            turns.append(Message(role=Role.USER, content=self.message))
        return turns


class ModelInfo(BaseModel):
    provider: str
    model: str
    id: str


class ModelsResponse(BaseModel):
    models: list[ModelInfo] = Field(default_factory=list)


class StatusResponse(BaseModel):
    version: str = __version__
    active_streams: int = 0
    providers: list[str] = Field(default_factory=list)


def _request_id() -> str:
    return uuid.uuid4().hex[:12]


def _conversation_or_400(body: ChatRequest) -> list[Message]:
    turns = body.conversation()
    if not turns:
        raise GatewayAPIError("Message required", status_code=400)
    return turns


# ─── Routes ─────────────────────────────────────────────────

router = APIRouter()


@router.post("/chat")
async def chat(body: ChatRequest, request: Request) -> ChatResult:
    gateway: ChatGateway = request.app.state.gateway
    turns = _conversation_or_400(body)
    return await gateway.complete(
        turns, model=body.model, system_prompt=body.system, request_id=_request_id()
    )


@router.post("/stream")
async def stream(body: ChatRequest, request: Request) -> StreamingResponse:
    gateway: ChatGateway = request.app.state.gateway
    relay: ResponseRelay = request.app.state.relay
    turns = _conversation_or_400(body)
    request_id = _request_id()
    events = gateway.stream(
        turns, model=body.model, system_prompt=body.system, request_id=request_id
    )
    return relay.response(events, stream_id=request_id)


@router.get("/models")
async def list_models(request: Request) -> ModelsResponse:
    gateway: ChatGateway = request.app.state.gateway
    return ModelsResponse(
        models=[ModelInfo(**entry) for entry in gateway.registry.available_models()]
    )


@router.get("/models/{provider_id}")
async def provider_models(provider_id: str, request: Request) -> dict:
    gateway: ChatGateway = request.app.state.gateway
    provider = gateway.registry.resolve(provider_id)
    return {
        "provider": provider.id,
        "name": provider.name,
        "available": gateway.registry.has_credential(provider.id),
        "models": list(provider.models),
    }


# ─── App ────────────────────────────────────────────────────

def create_app(
    settings: GatewaySettings | None = None,
    gateway: ChatGateway | None = None,
) -> FastAPI:
    """Build the FastAPI app. Pass a gateway to inject registry/client doubles."""
    settings = settings or (gateway.settings if gateway else GatewaySettings.from_env())
    gateway = gateway or ChatGateway(create_registry(), settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await gateway.aclose()

    app = FastAPI(
        title="Switchboard API",
        description="Multi-provider streaming chat gateway",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.gateway = gateway
    app.state.relay = ResponseRelay()

    allow_all = "*" in settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_origins,
        allow_credentials=not allow_all,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(SwitchboardError)
    async def switchboard_error_handler(request: Request, exc: SwitchboardError) -> JSONResponse:
        logger.warning(
            "Request failed: %s",
            exc.message,
            extra={"status_code": exc.status_code, "event_type": exc.code},
        )
        return JSONResponse(
            {"error": exc.message, "code": exc.code},
            status_code=exc.status_code,
        )

    app.include_router(router)
    app.include_router(router, prefix="/api/ai")

    @app.get("/api/health")
    async def health() -> dict:
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.get("/api/status")
    async def status(request: Request) -> StatusResponse:
        return StatusResponse(
            active_streams=len(request.app.state.relay.streams),
            providers=sorted(gateway.registry.credentialed()),
        )

    return app


_settings = GatewaySettings.from_env()
configure_logging(level=_settings.log_level, json_output=_settings.log_json)

app = create_app(_settings)
