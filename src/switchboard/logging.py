"""
Switchboard Structured Logging

Stdlib logging with a formatter that lifts well-known request context
(provider, model, request id, ...) out of `extra=` into the output.

Usage:
    from switchboard.logging import get_logger

    logger = get_logger("switchboard.gateway")
    logger.info("Stream opened", extra={"provider": "groq", "model": "llama-3.3-70b-versatile"})

Entry points (API server, CLI) call configure_logging() once at startup:
    configure_logging(level="INFO", json_output=True)
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Extra attributes lifted from LogRecords into the structured output
CONTEXT_FIELDS = (
    "request_id",
    "provider",
    "model",
    "event_type",
    "status_code",
    "attempt",
    "duration_ms",
)


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """Context fields present on `record`, in CONTEXT_FIELDS order."""
    context = {}
    for key in CONTEXT_FIELDS:
        value = getattr(record, key, None)
        if value is not None:
            context[key] = value
    return context


class SwitchboardFormatter(logging.Formatter):
    """One line per record: `[ts] LEVEL name: message | k=v ...` or a JSON object."""

    def __init__(self, json_output: bool = False):
        super().__init__()
        self._json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, timezone.utc).isoformat()
        message = record.getMessage()
        context = record_context(record)
        exception = self.formatException(record.exc_info) if record.exc_info else None

        if self._json_output:
            payload: dict[str, Any] = {
                "timestamp": timestamp,
                "level": record.levelname,
                "logger": record.name,
                "message": message,
                **context,
            }
            if exception:
                payload["exception"] = exception
            return json.dumps(payload, default=str)

        line = f"[{timestamp}] {record.levelname:8s} {record.name}: {message}"
        if context:
            line += " | " + " ".join(f"{k}={v}" for k, v in context.items())
        if exception:
            line += "\n" + exception
        return line


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Install a single stderr handler on the `switchboard` logger.

    Safe to call more than once; the previous handler is replaced.
    Unknown level names fall back to INFO.
    """
    logger = logging.getLogger("switchboard")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(SwitchboardFormatter(json_output=json_output))
    logger.addHandler(handler)
    logger.propagate = False


def get_logger(name: str = "switchboard") -> logging.Logger:
    return logging.getLogger(name)
