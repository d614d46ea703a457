"""
Identity token verification against a JSON Web Key Set (JWKS).

The identity provider issues RS256-signed ID tokens (Firebase style). The
verifier only needs the JWKS endpoint, the expected audience (project id) and
issuer; it yields the token subject or raises ``AuthenticationError``.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, Iterable, Optional

import httpx
from jose import ExpiredSignatureError, JWTError, jwt

from shared.errors import AuthenticationError
from shared.logging import get_logger


BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Return the token carried by an ``Authorization: Bearer`` header value."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise AuthenticationError(
            "Missing Authorization: Bearer <identity token>",
            reason="missing",
        )

    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise AuthenticationError("Empty auth token", reason="missing")
    return token


class IdentityVerifier:
    """Verifies identity tokens against a remote JWKS endpoint."""

    def __init__(
        self,
        jwks_url: str,
        audience: Optional[str] = None,
        issuer: Optional[str] = None,
        *,
        refresh_interval: int = 300,
        http_timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.jwks_url = jwks_url
        self.audience = audience
        self.issuer = issuer
        self.refresh_interval = refresh_interval
        self.logger = get_logger("risk.auth.identity")

        self._keys: Optional[Iterable[Dict[str, Any]]] = None
        self._last_refresh: float = 0.0
        self._lock = asyncio.Lock()
        self._client = httpx.AsyncClient(timeout=http_timeout, transport=transport)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def warmup(self) -> None:
        """Eagerly load JWKS metadata so the first request does not pay the cost."""
        try:
            await self._refresh_keys(force=True)
        except Exception as exc:  # pragma: no cover - best-effort warmup
            self.logger.warning("JWKS warmup failed", error=str(exc))

    async def verify(self, token: str) -> str:
        """Validate ``token`` and return its subject.

        Expired, invalid and malformed tokens raise ``AuthenticationError`` with
        the matching ``reason``. Anything else (JWKS endpoint down, unexpected
        payloads) is still an authentication failure but is logged as an error
        with ``reason="unexpected"``.
        """
        try:
            claims = await self._validate_token(token)
        except AuthenticationError:
            raise
        except Exception as exc:
            self.logger.error("Unexpected identity verification failure", error=str(exc), exc_info=True)
            raise AuthenticationError(
                "Authentication failed",
                details={"error": str(exc)},
                reason="unexpected",
            ) from exc

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise AuthenticationError("Identity token missing subject claim", reason="invalid")
        return subject

    async def check_health(self) -> str:
        """Return 'ok' if the JWKS endpoint responds correctly, otherwise 'error'."""
        try:
            await self._refresh_keys(force=False)
            return "ok"
        except Exception as exc:
            self.logger.error("JWKS health check failed", error=str(exc))
            return "error"

    async def _validate_token(self, token: str) -> Dict[str, Any]:
        """Validate the JWT and return its claims."""
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as exc:
            raise AuthenticationError(
                "Invalid or expired auth token",
                details={"error": str(exc)},
                reason="malformed",
            ) from exc

        kid = header.get("kid")
        if not isinstance(kid, str):
            raise AuthenticationError("Identity token header missing key id (kid)", reason="malformed")

        key_data = await self._get_key(kid)
        if not key_data:
            raise AuthenticationError(
                "Invalid or expired auth token",
                details={"kid": kid},
                reason="invalid",
            )

        algorithms = [key_data.get("alg", "RS256")]
        options: Dict[str, Any] = {
            "verify_aud": self.audience is not None,
            "verify_iss": self.issuer is not None,
        }

        try:
            return jwt.decode(
                token,
                key_data,
                algorithms=algorithms,
                audience=self.audience,
                issuer=self.issuer,
                options=options,
            )
        except ExpiredSignatureError as exc:
            raise AuthenticationError(
                "Invalid or expired auth token",
                reason="expired",
            ) from exc
        except JWTError as exc:
            raise AuthenticationError(
                "Invalid or expired auth token",
                details={"error": str(exc)},
                reason="invalid",
            ) from exc

    async def _get_key(self, kid: str) -> Optional[Dict[str, Any]]:
        """Fetch the JWKS and return the key matching the provided kid."""
        await self._refresh_keys(force=False)
        for key in self._keys or []:
            if key.get("kid") == kid:
                return key

        # Key might be rotated; refresh once more eagerly.
        await self._refresh_keys(force=True)
        for key in self._keys or []:
            if key.get("kid") == kid:
                return key
        return None

    async def _refresh_keys(self, *, force: bool) -> None:
        """Refresh the JWKS if the cache is stale."""
        now = time.time()
        if not force and self._keys is not None and (now - self._last_refresh) < self.refresh_interval:
            return

        async with self._lock:
            if not force and self._keys is not None and (time.time() - self._last_refresh) < self.refresh_interval:
                return

            response = await self._client.get(self.jwks_url)
            response.raise_for_status()
            payload = response.json()
            keys = payload.get("keys")
            if not isinstance(keys, list):
                raise ValueError("JWKS response missing 'keys' array")

            self._keys = keys
            self._last_refresh = time.time()
            self.logger.debug("JWKS refreshed", keys_count=len(keys))
