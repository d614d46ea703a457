"""
Shared fixtures for Risk Gateway tests.
"""

import json
from typing import Any, Dict, List, Tuple

import httpx
import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

from service_risk.app.adapters.trading_client import AuthorizedClient
from service_risk.app.main import RiskGatewayService


class FakeTradingApi:
    """In-memory stand-in for the trading API, served through ``httpx.MockTransport``.

    ``responses`` maps a path to ``(status, body)``. Calls are recorded as
    ``(method, path, params_or_body)``.
    """

    def __init__(self):
        self.responses: Dict[str, Tuple[int, Any]] = {}
        self.calls: List[Tuple[str, str, Any]] = []
        self.tokens: List[str] = []

    def respond(self, path: str, body: Any, status: int = 200) -> None:
        self.responses[path] = (status, body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.startswith("/v1"):
            path = path[len("/v1"):]

        if request.method == "POST":
            self.calls.append(("POST", path, json.loads(request.content or b"{}")))
        else:
            self.calls.append(("GET", path, dict(request.url.params)))
        self.tokens.append(request.headers.get("Authorization", ""))

        status, body = self.responses.get(path, (200, []))
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def calls_to(self, path: str) -> List[Tuple[str, str, Any]]:
        return [call for call in self.calls if call[1] == path]


@pytest.fixture
def trading_api():
    return FakeTradingApi()


@pytest.fixture
def risk_service(trading_api):
    """RiskGatewayService with identity, credential store and trading API faked out."""
    service = RiskGatewayService()

    service.auth_middleware.identity_verifier = AsyncMock()
    service.auth_middleware.identity_verifier.verify = AsyncMock(return_value="user-123")

    service.connection_resolver.store = AsyncMock()
    service.connection_resolver.store.lookup = AsyncMock(
        return_value={"token": "downstream-token", "url": "https://demo.example.com"}
    )

    service.client_factory = lambda credential: AuthorizedClient(
        credential,
        metrics=service.metrics,
        transport=httpx.MockTransport(trading_api.handler),
    )
    return service


@pytest.fixture
def client(risk_service):
    """Create test client."""
    return TestClient(risk_service.app)


@pytest.fixture
def auth_headers():
    return {"Authorization": "Bearer identity-token"}
