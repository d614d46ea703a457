"""
Credential store client for the Risk Gateway.

Delegated trading credentials live in a PostgREST table (Supabase) keyed by
the identity subject and the user's connection reference.
"""

from typing import Any, Dict, Optional

import httpx

from shared.errors import ExternalServiceError
from shared.logging import get_logger


class CredentialStoreClient:
    """Keyed lookup of ``{token, url}`` records over the PostgREST API."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        *,
        table: str = "tdv_access_token",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.table = table
        self.logger = get_logger("risk.credential_store")
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={
                "apikey": service_key,
                "Authorization": f"Bearer {service_key}",
                "Accept": "application/json",
            },
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def lookup(self, subject: str, connection_ref: str) -> Optional[Dict[str, Any]]:
        """Return the stored record for ``(subject, connection_ref)`` or ``None``."""
        url = f"{self.base_url}/rest/v1/{self.table}"
        params = {
            "uid": f"eq.{subject}",
            "ref": f"eq.{connection_ref}",
            "select": "token,url",
            "limit": "1",
        }

        try:
            response = await self._client.get(url, params=params)
        except httpx.HTTPError as exc:
            self.logger.error("Credential store unreachable", error=str(exc))
            raise ExternalServiceError(
                service="credential_store",
                message=str(exc) or exc.__class__.__name__,
            ) from exc

        if response.status_code == 200:
            try:
                rows = response.json()
            except ValueError as exc:
                raise ExternalServiceError(
                    service="credential_store",
                    message="Malformed response body",
                ) from exc
            if isinstance(rows, list) and rows and isinstance(rows[0], dict):
                return rows[0]
            self.logger.info("Credential record not found", connection_ref=connection_ref)
            return None

        if response.status_code == 404:
            return None

        self.logger.error(
            "Credential store request failed",
            status_code=response.status_code,
            connection_ref=connection_ref,
        )
        raise ExternalServiceError(
            service="credential_store",
            message=f"Unexpected status {response.status_code}",
            details={"status_code": response.status_code},
        )

    async def check_health(self) -> str:
        """Return 'ok' when the PostgREST endpoint answers."""
        try:
            response = await self._client.get(f"{self.base_url}/rest/v1/")
            return "ok" if response.status_code < 500 else "error"
        except httpx.HTTPError as exc:
            self.logger.error("Credential store health check failed", error=str(exc))
            return "error"
