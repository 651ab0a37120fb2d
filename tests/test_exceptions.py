"""Tests for Switchboard custom exceptions.

Covers the exception hierarchy, HTTP status mapping and structured
error information.
"""

import pytest

from switchboard.exceptions import (
    FrameParseError,
    GatewayAPIError,
    NoProviderAvailableError,
    SwitchboardError,
    UnknownModelError,
    UnknownProviderError,
    UpstreamError,
    UpstreamTimeoutError,
)


class TestSwitchboardError:
    def test_base_error(self):
        err = SwitchboardError("something went wrong")
        assert str(err) == "something went wrong"
        assert err.details == {}
        assert err.status_code == 500

    def test_base_error_with_details(self):
        err = SwitchboardError("failed", details={"key": "value"})
        assert err.details == {"key": "value"}


class TestLookupErrors:
    def test_unknown_provider(self):
        err = UnknownProviderError("mistral")
        assert err.message == "Unknown provider: mistral"
        assert err.provider_id == "mistral"
        assert err.status_code == 404
        assert err.code == "unknown_provider"

    def test_unknown_model(self):
        err = UnknownModelError("gpt-9")
        assert "gpt-9" in str(err)
        assert err.details["model"] == "gpt-9"
        assert err.status_code == 404


class TestNoProviderAvailableError:
    def test_default_message(self):
        err = NoProviderAvailableError()
        assert err.message == "No AI provider configured"
        assert err.status_code == 503
        assert err.code == "no_provider_available"


class TestUpstreamError:
    def test_creation(self):
        err = UpstreamError("openai", "Rate limited", upstream_status=429)
        assert err.message == "Provider 'openai' error: Rate limited"
        assert err.provider_id == "openai"
        assert err.upstream_status == 429
        assert err.details["upstream_status"] == 429
        assert err.status_code == 502

    def test_timeout_is_upstream_error(self):
        err = UpstreamTimeoutError("groq", "timed out after 60s")
        assert isinstance(err, UpstreamError)
        assert err.status_code == 504
        assert err.code == "upstream_timeout"


class TestFrameParseError:
    def test_frame_truncated_in_details(self):
        err = FrameParseError("bad frame", frame="x" * 500)
        assert err.frame == "x" * 500
        assert len(err.details["frame"]) == 200


class TestGatewayAPIError:
    def test_default_status(self):
        assert GatewayAPIError("Message required").status_code == 400

    def test_custom_status(self):
        err = GatewayAPIError("Not found", status_code=404)
        assert err.status_code == 404
        assert err.details["status_code"] == 404


@pytest.mark.parametrize("exc_class", [
    UnknownProviderError,
    UnknownModelError,
    NoProviderAvailableError,
    UpstreamError,
    UpstreamTimeoutError,
    FrameParseError,
    GatewayAPIError,
])
def test_all_inherit_switchboard_error(exc_class):
    assert issubclass(exc_class, SwitchboardError)
