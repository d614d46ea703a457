"""
Risk Gateway service: delegated-credential access to trading-account risk settings.
"""

from typing import Any, Callable, Dict

from fastapi import Request

from shared.base_service import BaseService

from service_risk.app.adapters.credential_store import CredentialStoreClient
from service_risk.app.adapters.trading_client import AuthorizedClient
from service_risk.app.auth.identity import IdentityVerifier
from service_risk.app.caching.settings_cache import SettingsCache
from service_risk.app.domain.accounts import list_accounts
from service_risk.app.domain.auth_middleware import AuthMiddleware
from service_risk.app.domain.connections import ConnectionResolver
from service_risk.app.domain.models import (
    DailyLimitsRequest,
    DelegatedCredential,
    RiskSettingsRequest,
)
from service_risk.app.domain.request_parsing import (
    body_connection_ref,
    parse_account_id,
    parse_body,
    read_json_body,
)
from service_risk.app.domain.risk_settings import RiskSettingsGateway


class RiskGatewayService(BaseService):
    """Risk Gateway service implementation."""

    def __init__(self):
        super().__init__("risk", 4000)

        self.identity_verifier = IdentityVerifier(
            self.config.identity_jwks_url,
            audience=self.config.identity_project_id,
            issuer=self.config.resolved_issuer(),
            refresh_interval=self.config.identity_jwks_refresh_seconds,
        )
        self.credential_store = CredentialStoreClient(
            self.config.credential_store_url,
            self.config.credential_store_key,
            table=self.config.credential_store_table,
            timeout=self.config.credential_store_timeout_seconds,
        )
        self.connection_resolver = ConnectionResolver(
            self.credential_store,
            default_base_url=self.config.default_downstream_url,
            api_version=self.config.downstream_api_version,
        )
        self.auth_middleware = AuthMiddleware(self.identity_verifier, self.connection_resolver)

        self.settings_cache = SettingsCache(
            self.config.settings_cache_ttl_seconds,
            self.config.settings_cache_check_period_seconds,
            metrics=self.metrics,
        )
        self.risk_gateway = RiskSettingsGateway(self.settings_cache)

        # One client per request; replaced in tests to point at a fake trading API.
        self.client_factory: Callable[[DelegatedCredential], AuthorizedClient] = self._build_client

        @self.app.on_event("startup")
        async def _startup():
            self.settings_cache.start()
            await self.identity_verifier.warmup()

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.settings_cache.stop()
            await self.identity_verifier.close()
            await self.credential_store.close()

        self._setup_risk_routes()

        self.app.state.risk_service = self

    def _build_client(self, credential: DelegatedCredential) -> AuthorizedClient:
        return AuthorizedClient(
            credential,
            timeout=self.config.downstream_timeout_seconds,
            metrics=self.metrics,
        )

    def _setup_risk_routes(self):
        """Set up account and risk settings routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "risk",
                "message": "Risk Gateway - delegated-credential risk settings",
                "version": "1.0.0"
            }

        @self.app.get("/accounts")
        async def get_accounts(request: Request) -> Dict[str, Any]:
            """List the trading accounts reachable through the connection."""
            context = await self.auth_middleware.authenticate_request(request)
            async with self.client_factory(context.credential) as client:
                accounts = await list_accounts(client)
            return {"success": True, "accounts": accounts}

        @self.app.get("/risk")
        async def list_risk_settings(request: Request) -> Dict[str, Any]:
            """List every auto-liquidation record visible to the connection."""
            context = await self.auth_middleware.authenticate_request(request)
            async with self.client_factory(context.credential) as client:
                records = await self.risk_gateway.list_all_settings(client)
            return {"success": True, "autoLiqs": [record.to_payload() for record in records]}

        @self.app.get("/risk/{accountId}")
        async def get_risk_settings(request: Request, accountId: str) -> Dict[str, Any]:
            """Return current auto-liquidation settings for an account."""
            context = await self.auth_middleware.authenticate_request(request)
            account_id = parse_account_id(accountId)
            async with self.client_factory(context.credential) as client:
                settings, cached = await self.risk_gateway.get_settings(client, account_id)
            return {
                "success": True,
                "autoLiq": settings.to_payload() if settings else None,
                "cached": cached,
            }

        @self.app.post("/risk/{accountId}")
        async def set_risk_settings(request: Request, accountId: str) -> Dict[str, Any]:
            """Set loss, profit, alert, margin and drawdown limits for an account."""
            body = await read_json_body(request)
            context = await self.auth_middleware.authenticate_request(request, body_connection_ref(body))
            account_id = parse_account_id(accountId)
            payload = parse_body(RiskSettingsRequest, body)
            async with self.client_factory(context.credential) as client:
                settings = await self.risk_gateway.set_settings(client, account_id, payload.to_update())
            return {"success": True, "autoLiq": settings.to_payload()}

        @self.app.post("/risk/{accountId}/daily-limits")
        async def set_daily_limits(request: Request, accountId: str) -> Dict[str, Any]:
            """Set the daily loss limit and daily profit target in one call."""
            body = await read_json_body(request)
            context = await self.auth_middleware.authenticate_request(request, body_connection_ref(body))
            account_id = parse_account_id(accountId)
            payload = parse_body(DailyLimitsRequest, body)
            async with self.client_factory(context.credential) as client:
                settings = await self.risk_gateway.set_daily_limits(
                    client,
                    account_id,
                    payload.daily_loss_limit,
                    payload.daily_profit_target,
                    keep_closed=payload.keep_closed,
                )
            return {"success": True, "autoLiq": settings.to_payload()}

    async def _check_dependencies(self) -> Dict[str, Any]:
        """Check gateway dependencies."""
        return {
            "jwks": await self.identity_verifier.check_health(),
            "credential_store": await self.credential_store.check_health(),
            "settings_cache": self.settings_cache.stats(),
        }


def create_app():
    """Create FastAPI application."""
    service = RiskGatewayService()
    return service.app


if __name__ == "__main__":
    service = RiskGatewayService()
    service.run()
