"""
Authorized trading API client.

One instance wraps one delegated credential for the lifetime of a request.
Every failure leaves this module as one of the typed errors in
``shared.errors``; raw transport exceptions never escape.
"""

import time
from typing import Any, Dict, Optional, TYPE_CHECKING

import httpx

from shared.errors import (
    AccessLayerException,
    DownstreamUnauthorizedError,
    NotFoundError,
    NotOwnerError,
    RateLimitError,
    UnsupportedParametersError,
    UpstreamError,
)
from shared.logging import get_logger

from ..domain.models import DelegatedCredential

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


# The trading API has no machine-readable error codes; these phrases are the
# only signal it gives and may change without notice.
ACCESS_DENIED_TEXT = "Access is denied"
NOT_OWNER_TEXT = "Should be account owner"
UNSUPPORTED_PARAMS_TEXT = "Unsupported parameters"


def error_from_text(text: str, *, status_code: Optional[int] = None) -> AccessLayerException:
    """Classify an error text (and status, when known) returned by the trading API."""
    details: Dict[str, Any] = {"downstream_error": text}
    if status_code is not None:
        details["status_code"] = status_code

    if NOT_OWNER_TEXT in text:
        return NotOwnerError(details=details)
    if ACCESS_DENIED_TEXT in text or status_code in (401, 403):
        return DownstreamUnauthorizedError(details=details)
    if UNSUPPORTED_PARAMS_TEXT in text:
        return UnsupportedParametersError(text, details=details)
    if status_code == 404:
        return NotFoundError(text or "Resource not found", details=details, resource="downstream")
    if status_code == 429:
        return RateLimitError(details=details)

    message = f"{status_code} {text}".strip() if status_code is not None else text
    return UpstreamError(message or "Trading API request failed", details=details)


class AuthorizedClient:
    """Performs authenticated GET/POST calls against one trading API base URL."""

    def __init__(
        self,
        credential: DelegatedCredential,
        *,
        timeout: float = 10.0,
        metrics: Optional["MetricsCollector"] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = credential.base_url.rstrip('/')
        self.metrics = metrics
        self.logger = get_logger("risk.trading_client")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {credential.token}",
                "Accept": "application/json",
            },
        )

    async def __aenter__(self) -> "AuthorizedClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET ``path`` and return the decoded JSON payload."""
        return await self._request("GET", path, params=params)

    async def post(self, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        """POST ``body`` as JSON to ``path`` and return the decoded JSON payload."""
        return await self._request("POST", path, json=body or {})

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        start = time.perf_counter()
        outcome = "error"
        try:
            try:
                response = await self._client.request(method, path, **kwargs)
            except httpx.HTTPError as exc:
                self.logger.error("Trading API transport error", method=method, path=path, error=str(exc))
                raise UpstreamError(
                    str(exc) or exc.__class__.__name__,
                    details={"path": path},
                ) from exc

            if not response.is_success:
                error = error_from_text(response.text, status_code=response.status_code)
                outcome = error.code.lower()
                self.logger.warning(
                    "Trading API call failed",
                    method=method,
                    path=path,
                    status_code=response.status_code,
                    code=error.code,
                )
                raise error

            try:
                payload = response.json()
            except ValueError as exc:
                raise UpstreamError(
                    f"Malformed response from {path}",
                    details={"path": path, "status_code": response.status_code},
                ) from exc

            outcome = "ok"
            return payload
        finally:
            if self.metrics:
                self.metrics.record_downstream_call(path, outcome, time.perf_counter() - start)
