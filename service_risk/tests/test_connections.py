"""
Unit tests for the credential store client and connection resolution.
"""

import httpx
import pytest
from unittest.mock import AsyncMock

from service_risk.app.adapters.credential_store import CredentialStoreClient
from service_risk.app.domain.connections import ConnectionResolver, normalize_base_url
from shared.errors import ExternalServiceError, MissingParameterError, NotFoundError


STORE_URL = "https://store.example.com"


def _store(handler):
    return CredentialStoreClient(
        STORE_URL,
        "service-key",
        transport=httpx.MockTransport(handler),
    )


class TestCredentialStoreClient:
    """Test cases for CredentialStoreClient."""

    @pytest.mark.asyncio
    async def test_lookup_returns_first_row(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            seen["apikey"] = request.headers.get("apikey")
            return httpx.Response(200, json=[{"token": "tok-1", "url": "https://live.example.com"}])

        store = _store(handler)
        record = await store.lookup("user-1", "conn-a")

        assert record == {"token": "tok-1", "url": "https://live.example.com"}
        assert seen["url"].path == "/rest/v1/tdv_access_token"
        assert seen["url"].params["uid"] == "eq.user-1"
        assert seen["url"].params["ref"] == "eq.conn-a"
        assert seen["apikey"] == "service-key"
        await store.close()

    @pytest.mark.asyncio
    async def test_lookup_no_rows(self):
        store = _store(lambda request: httpx.Response(200, json=[]))
        assert await store.lookup("user-1", "conn-a") is None
        await store.close()

    @pytest.mark.asyncio
    async def test_lookup_not_found_status(self):
        store = _store(lambda request: httpx.Response(404))
        assert await store.lookup("user-1", "conn-a") is None
        await store.close()

    @pytest.mark.asyncio
    async def test_lookup_server_error(self):
        store = _store(lambda request: httpx.Response(500, text="boom"))
        with pytest.raises(ExternalServiceError) as exc_info:
            await store.lookup("user-1", "conn-a")
        assert exc_info.value.status_code == 500
        await store.close()

    @pytest.mark.asyncio
    async def test_lookup_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        store = _store(handler)
        with pytest.raises(ExternalServiceError):
            await store.lookup("user-1", "conn-a")
        assert await store.check_health() == "error"
        await store.close()


class TestNormalizeBaseUrl:
    """Test cases for base URL normalization."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://demo.tradovateapi.com", "https://demo.tradovateapi.com/v1"),
            ("https://demo.tradovateapi.com/", "https://demo.tradovateapi.com/v1"),
            ("https://demo.tradovateapi.com/v1", "https://demo.tradovateapi.com/v1"),
            ("https://demo.tradovateapi.com/v1/", "https://demo.tradovateapi.com/v1"),
        ],
    )
    def test_normalize(self, url, expected):
        assert normalize_base_url(url) == expected


class TestConnectionResolver:
    """Test cases for ConnectionResolver."""

    @pytest.fixture
    def store(self):
        store = AsyncMock()
        store.lookup = AsyncMock(return_value={"token": "tok-1", "url": "https://live.example.com"})
        return store

    @pytest.fixture
    def resolver(self, store):
        return ConnectionResolver(store, default_base_url="https://demo.tradovateapi.com")

    @pytest.mark.asyncio
    async def test_resolve_success(self, resolver, store):
        credential = await resolver.resolve("user-1", "conn-a")

        assert credential.token == "tok-1"
        assert credential.base_url == "https://live.example.com/v1"
        store.lookup.assert_called_once_with("user-1", "conn-a")

    @pytest.mark.asyncio
    async def test_token_not_in_repr(self, resolver):
        credential = await resolver.resolve("user-1", "conn-a")
        assert "tok-1" not in repr(credential)

    @pytest.mark.asyncio
    async def test_default_base_url_when_record_has_none(self, resolver, store):
        store.lookup.return_value = {"token": "tok-1", "url": None}
        credential = await resolver.resolve("user-1", "conn-a")
        assert credential.base_url == "https://demo.tradovateapi.com/v1"

    @pytest.mark.asyncio
    async def test_missing_connection_ref(self, resolver, store):
        with pytest.raises(MissingParameterError):
            await resolver.resolve("user-1", "")
        store.lookup.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_connection(self, resolver, store):
        store.lookup.return_value = None
        with pytest.raises(NotFoundError) as exc_info:
            await resolver.resolve("user-1", "conn-x")
        assert exc_info.value.status_code == 404
        assert "conn-x" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_record_without_token(self, resolver, store):
        store.lookup.return_value = {"token": "", "url": "https://live.example.com"}
        with pytest.raises(NotFoundError):
            await resolver.resolve("user-1", "conn-a")

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, resolver, store):
        store.lookup.side_effect = ExternalServiceError("credential_store", "down")
        with pytest.raises(ExternalServiceError):
            await resolver.resolve("user-1", "conn-a")
