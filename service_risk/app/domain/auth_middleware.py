"""
Request authentication for the Risk Gateway.
"""

from typing import Optional, TYPE_CHECKING

from fastapi import Request

from shared.errors import AuthenticationError, MissingParameterError
from shared.logging import get_logger, set_user_context

from ..auth.identity import extract_bearer_token
from .models import RequestContext

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from ..auth.identity import IdentityVerifier
    from .connections import ConnectionResolver


CONNECTION_REF_HEADER = "X-Connection-Ref"


class AuthMiddleware:
    """Turns an inbound request into a ``RequestContext``.

    Order matters: the identity token is verified first, then the connection
    reference is located (body, query string, header), and only then is the
    credential store consulted.
    """

    def __init__(self, identity_verifier: "IdentityVerifier", connection_resolver: "ConnectionResolver"):
        self.identity_verifier = identity_verifier
        self.connection_resolver = connection_resolver
        self.logger = get_logger("risk.auth_middleware")

    async def authenticate_request(self, request: Request, body_connection_ref: Optional[str] = None) -> RequestContext:
        token = extract_bearer_token(request.headers.get("Authorization"))

        try:
            subject = await self.identity_verifier.verify(token)
        except AuthenticationError as e:
            self.logger.warning("Identity verification failed", reason=e.reason)
            raise

        connection_ref = (
            body_connection_ref
            or request.query_params.get("connectionRef")
            or request.headers.get(CONNECTION_REF_HEADER)
        )
        set_user_context(user_id=subject, connection_ref=connection_ref)

        if not connection_ref:
            raise MissingParameterError(
                "connectionRef",
                "Missing connectionRef (in payload, query param, or X-Connection-Ref header)",
            )

        credential = await self.connection_resolver.resolve(subject, connection_ref)
        self.logger.info("Request authenticated")
        return RequestContext(subject=subject, connection_ref=connection_ref, credential=credential)
