"""
Connection resolution: (subject, connection reference) -> delegated credential.
"""

from typing import Optional, TYPE_CHECKING

from shared.errors import MissingParameterError, NotFoundError
from shared.logging import get_logger

from .models import DelegatedCredential

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from ..adapters.credential_store import CredentialStoreClient


def normalize_base_url(url: str, api_version: str = "v1") -> str:
    """Return ``url`` with the API version segment appended when it is missing."""
    base = url.rstrip("/")
    segment = f"/{api_version.strip('/')}"
    if base.endswith(segment):
        return base
    return f"{base}{segment}"


class ConnectionResolver:
    """Looks up the trading credential a user linked under a connection reference."""

    def __init__(
        self,
        store: "CredentialStoreClient",
        *,
        default_base_url: str,
        api_version: str = "v1",
    ):
        self.store = store
        self.default_base_url = default_base_url
        self.api_version = api_version
        self.logger = get_logger("risk.connections")

    async def resolve(self, subject: str, connection_ref: Optional[str]) -> DelegatedCredential:
        if not subject:
            raise MissingParameterError("subject", "Missing authenticated subject")
        if not connection_ref:
            raise MissingParameterError(
                "connectionRef",
                "Missing connectionRef (in payload, query param, or X-Connection-Ref header)",
            )

        record = await self.store.lookup(subject, connection_ref)
        if not record or not record.get("token"):
            raise NotFoundError(
                f"No trading credential found for connection {connection_ref}",
                details={"connection_ref": connection_ref},
                resource="connection",
            )

        base_url = normalize_base_url(record.get("url") or self.default_base_url, self.api_version)
        self.logger.debug("Connection resolved", connection_ref=connection_ref, base_url=base_url)
        return DelegatedCredential(token=record["token"], base_url=base_url)
