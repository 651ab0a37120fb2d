"""
Switchboard Configuration

Gateway settings with defaults, loaded from environment variables.
Credentials are NOT part of the settings: they are read through a
CredentialSource (see switchboard.credentials) so they never end up
in a settings dump or a log line.
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field

from switchboard.logging import get_logger

logger = get_logger("switchboard.config")

DEFAULT_SYSTEM_PROMPT = """You are an expert full-stack developer AI assistant. You help users build web applications, debug code, and solve programming problems.

RULES:
1. Always provide complete, working code
2. Use modern best practices
3. Include helpful comments
4. When creating files, use this format:

**filename.ext**
```language
code here
```

5. For multi-file projects, create all necessary files
6. Explain your approach briefly before code
7. If you see errors, explain the fix clearly"""


class GatewaySettings(BaseModel):
    """Runtime configuration for the chat gateway."""

    model_config = ConfigDict(frozen=True)

    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    max_tokens: int = 8192
    context_messages: int = 10  # history turns forwarded upstream
    timeout_seconds: float = 60.0
    connect_timeout_seconds: float = 10.0
    word_delay_ms: float = 15.0  # synthetic streaming pace for non-streaming providers
    fallback_model: str | None = "groq/llama-3.3-70b-versatile"
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )
    log_level: str = "INFO"
    log_json: bool = False

    @property
    def word_delay_seconds(self) -> float:
        return max(self.word_delay_ms, 0.0) / 1000.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> GatewaySettings:
        """Build settings from environment variables, keeping defaults for unset keys."""
        env = os.environ if environ is None else environ
        defaults = cls()
        values: dict = {}

        if env.get("SWITCHBOARD_SYSTEM_PROMPT"):
            values["system_prompt"] = env["SWITCHBOARD_SYSTEM_PROMPT"]

        values["max_tokens"] = _int(env, "SWITCHBOARD_MAX_TOKENS", defaults.max_tokens)
        values["context_messages"] = _int(
            env, "SWITCHBOARD_CONTEXT_MESSAGES", defaults.context_messages
        )
        values["timeout_seconds"] = _float(
            env, "SWITCHBOARD_TIMEOUT_SECONDS", defaults.timeout_seconds
        )
        values["connect_timeout_seconds"] = _float(
            env, "SWITCHBOARD_CONNECT_TIMEOUT_SECONDS", defaults.connect_timeout_seconds
        )
        values["word_delay_ms"] = _float(env, "SWITCHBOARD_WORD_DELAY_MS", defaults.word_delay_ms)

        if "SWITCHBOARD_FALLBACK_MODEL" in env:
            values["fallback_model"] = env["SWITCHBOARD_FALLBACK_MODEL"].strip() or None

        origins = list(defaults.cors_origins)
        if env.get("CORS_ORIGINS"):
            origins = [o.strip() for o in env["CORS_ORIGINS"].split(",") if o.strip()]
        if env.get("FRONTEND_URL") and env["FRONTEND_URL"] not in origins:
            origins.append(env["FRONTEND_URL"])
        values["cors_origins"] = origins

        values["log_level"] = env.get("SWITCHBOARD_LOG_LEVEL", defaults.log_level)
        values["log_json"] = env.get("SWITCHBOARD_LOG_JSON", "").lower() in ("1", "true", "yes")

        return cls(**values)


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring malformed %s=%r, using %s", key, raw, default)
        return default


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring malformed %s=%r, using %s", key, raw, default)
        return default
