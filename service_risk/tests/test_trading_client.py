"""
Unit tests for the authorized trading API client.
"""

import httpx
import pytest

from service_risk.app.adapters.trading_client import AuthorizedClient, error_from_text
from service_risk.app.domain.models import DelegatedCredential
from shared.errors import (
    DownstreamUnauthorizedError,
    NotFoundError,
    NotOwnerError,
    RateLimitError,
    UnsupportedParametersError,
    UpstreamError,
)
from shared.metrics import MetricsCollector


CREDENTIAL = DelegatedCredential(token="downstream-token", base_url="https://demo.example.com/v1")


class TestErrorFromText:
    """Test cases for trading API error classification."""

    def test_access_denied(self):
        error = error_from_text("Access is denied")
        assert isinstance(error, DownstreamUnauthorizedError)
        assert error.code == "TOKEN_EXPIRED"
        assert error.status_code == 401
        assert error.message == "Trading platform token expired. Please reconnect."

    def test_unauthorized_status_without_text(self):
        assert isinstance(error_from_text("", status_code=401), DownstreamUnauthorizedError)

    def test_not_owner_wins_over_status(self):
        error = error_from_text("Should be account owner", status_code=403)
        assert isinstance(error, NotOwnerError)
        assert error.code == "NOT_OWNER"
        assert error.status_code == 403

    def test_unsupported_parameters(self):
        error = error_from_text("Unsupported parameters: foo")
        assert isinstance(error, UnsupportedParametersError)
        assert error.code == "UNSUPPORTED_PARAMS"
        assert error.status_code == 400

    def test_not_found(self):
        assert isinstance(error_from_text("missing", status_code=404), NotFoundError)

    def test_rate_limited(self):
        error = error_from_text("slow down", status_code=429)
        assert isinstance(error, RateLimitError)
        assert error.status_code == 429

    def test_anything_else_is_upstream(self):
        error = error_from_text("Internal failure", status_code=502)
        assert isinstance(error, UpstreamError)
        assert error.status_code == 500
        assert error.message == "502 Internal failure"


class TestAuthorizedClient:
    """Test cases for AuthorizedClient."""

    @pytest.mark.asyncio
    async def test_get_sends_credential_and_params(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["authorization"] = request.headers["Authorization"]
            return httpx.Response(200, json=[{"id": 1}])

        async with AuthorizedClient(CREDENTIAL, transport=httpx.MockTransport(handler)) as client:
            payload = await client.get("/userAccountAutoLiq/deps", {"masterid": "42"})

        assert payload == [{"id": 1}]
        assert seen["url"] == "https://demo.example.com/v1/userAccountAutoLiq/deps?masterid=42"
        assert seen["authorization"] == "Bearer downstream-token"

    @pytest.mark.asyncio
    async def test_post_sends_json(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = request.content
            seen["method"] = request.method
            return httpx.Response(200, json={"ok": True})

        async with AuthorizedClient(CREDENTIAL, transport=httpx.MockTransport(handler)) as client:
            assert await client.post("/userAccountAutoLiq/updateuserautoliq", {"accountId": 42}) == {"ok": True}

        assert seen["method"] == "POST"
        assert b'"accountId"' in seen["body"]

    @pytest.mark.asyncio
    async def test_unauthorized_response(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(401, text="Access is denied"))
        async with AuthorizedClient(CREDENTIAL, transport=transport) as client:
            with pytest.raises(DownstreamUnauthorizedError):
                await client.get("/account/list")

    @pytest.mark.asyncio
    async def test_server_error_response(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="Internal failure"))
        async with AuthorizedClient(CREDENTIAL, transport=transport) as client:
            with pytest.raises(UpstreamError) as exc_info:
                await client.get("/account/list")
        assert "Internal failure" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_transport_error_is_wrapped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        async with AuthorizedClient(CREDENTIAL, transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(UpstreamError) as exc_info:
                await client.get("/account/list")
        assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)

    @pytest.mark.asyncio
    async def test_malformed_body(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
        async with AuthorizedClient(CREDENTIAL, transport=transport) as client:
            with pytest.raises(UpstreamError):
                await client.get("/account/list")

    @pytest.mark.asyncio
    async def test_records_downstream_metrics(self):
        metrics = MetricsCollector("risk-test")
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=[]))
        async with AuthorizedClient(CREDENTIAL, metrics=metrics, transport=transport) as client:
            await client.get("/account/list")

        value = metrics.registry.get_sample_value(
            "downstream_requests_total",
            {"endpoint": "/account/list", "outcome": "ok"},
        )
        assert value == 1.0
