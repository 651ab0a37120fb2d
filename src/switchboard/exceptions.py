"""
Switchboard Custom Exceptions

Structured exception hierarchy for the gateway.
All Switchboard-specific exceptions inherit from SwitchboardError.

Exception hierarchy:
    SwitchboardError
    +-- UnknownProviderError      (unresolvable provider id, 404)
    +-- UnknownModelError         (no provider lists the model, 404)
    +-- NoProviderAvailableError  (no credential for any candidate)
    +-- UpstreamError             (provider returned an error)
    |   +-- UpstreamTimeoutError  (provider call exceeded its deadline)
    +-- FrameParseError           (one malformed stream frame, dropped)
    +-- GatewayAPIError           (API layer error)
"""

from __future__ import annotations


class SwitchboardError(Exception):
    """Base exception for all Switchboard errors."""

    status_code: int = 500
    code: str = "gateway_error"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class UnknownProviderError(SwitchboardError):
    """Raised when a provider id is not in the registry."""

    status_code = 404
    code = "unknown_provider"

    def __init__(self, provider_id: str, details: dict | None = None):
        super().__init__(
            f"Unknown provider: {provider_id}",
            details={"provider_id": provider_id, **(details or {})},
        )
        self.provider_id = provider_id


class UnknownModelError(SwitchboardError):
    """Raised when no registered provider lists the requested model."""

    status_code = 404
    code = "unknown_model"

    def __init__(self, model: str, details: dict | None = None):
        super().__init__(
            f"Unknown model: {model}",
            details={"model": model, **(details or {})},
        )
        self.model = model


class NoProviderAvailableError(SwitchboardError):
    """Raised when no candidate provider has a configured credential."""

    status_code = 503
    code = "no_provider_available"

    def __init__(self, message: str = "No AI provider configured", details: dict | None = None):
        super().__init__(message, details=details)


class UpstreamError(SwitchboardError):
    """Raised when a provider returns a non-success status or error envelope.

    The message is forwarded to the client, so it must already be
    sanitized of credentials when the error is constructed.
    """

    status_code = 502
    code = "upstream_error"

    def __init__(
        self,
        provider_id: str,
        message: str,
        upstream_status: int | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            f"Provider '{provider_id}' error: {message}",
            details={
                "provider_id": provider_id,
                "upstream_status": upstream_status,
                **(details or {}),
            },
        )
        self.provider_id = provider_id
        self.upstream_status = upstream_status


class UpstreamTimeoutError(UpstreamError):
    """Raised when a provider request times out."""

    status_code = 504
    code = "upstream_timeout"


class FrameParseError(SwitchboardError):
    """Raised for a single malformed upstream frame.

    Never propagated past the stream normalizer: the frame is dropped.
    """

    code = "frame_parse_error"

    def __init__(self, message: str, frame: str = "", details: dict | None = None):
        super().__init__(message, details={"frame": frame[:200], **(details or {})})
        self.frame = frame


class GatewayAPIError(SwitchboardError):
    """Raised for API layer errors (FastAPI endpoints)."""

    code = "bad_request"

    def __init__(self, message: str, status_code: int = 400, details: dict | None = None):
        super().__init__(
            message,
            details={"status_code": status_code, **(details or {})},
        )
        self.status_code = status_code
