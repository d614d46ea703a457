"""
Shared error handling for the Risk Gateway.

Every failure the gateway reports to a caller is one of the exceptions below.
Each carries the HTTP status it maps to and a stable ``code`` so the single
exception handler in ``shared.base_service`` can render the response envelope.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response envelope."""

    success: bool = False
    error: str
    code: Optional[str] = None


class AccessLayerException(Exception):
    """Base exception for gateway services."""

    status_code: int = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(error=self.message, code=self.code)


class AuthenticationError(AccessLayerException):
    """Identity token missing, expired, invalid or unverifiable."""

    status_code = 401

    def __init__(
        self,
        message: str = "Authentication failed",
        details: Optional[Dict[str, Any]] = None,
        *,
        reason: str = "invalid",
    ):
        super().__init__("AUTHENTICATION_ERROR", message, details)
        self.reason = reason


class AuthorizationError(AccessLayerException):
    """Authorization-related errors."""

    status_code = 403

    def __init__(
        self,
        message: str = "Authorization failed",
        details: Optional[Dict[str, Any]] = None,
        *,
        code: str = "AUTHORIZATION_ERROR",
    ):
        super().__init__(code, message, details)


class NotOwnerError(AuthorizationError):
    """The downstream API requires the account owner for this operation."""

    def __init__(
        self,
        message: str = "Insufficient permissions. You are not the account owner.",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details, code="NOT_OWNER")


class ValidationError(AccessLayerException):
    """Validation-related errors."""

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        details: Optional[Dict[str, Any]] = None,
        *,
        code: str = "VALIDATION_ERROR",
    ):
        super().__init__(code, message, details)


class MissingParameterError(ValidationError):
    """A required request parameter was not supplied."""

    def __init__(self, parameter: str, message: Optional[str] = None):
        super().__init__(
            message or f"Missing {parameter}",
            details={"parameter": parameter},
            code="MISSING_PARAMETER",
        )
        self.parameter = parameter


class UnsupportedParametersError(ValidationError):
    """The downstream API rejected one or more of the submitted fields."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, code="UNSUPPORTED_PARAMS")


class NotFoundError(AccessLayerException):
    """A credential record or downstream resource does not exist."""

    status_code = 404

    def __init__(
        self,
        message: str = "Resource not found",
        details: Optional[Dict[str, Any]] = None,
        *,
        resource: str = "resource",
    ):
        super().__init__("NOT_FOUND", message, details)
        self.resource = resource


class ExternalServiceError(AccessLayerException):
    """External service errors."""

    status_code = 500

    def __init__(
        self,
        service: str,
        message: str = "External service error",
        details: Optional[Dict[str, Any]] = None,
        *,
        code: str = "EXTERNAL_SERVICE_ERROR",
    ):
        super().__init__(code, f"{service}: {message}", details)
        self.service = service


class UpstreamError(ExternalServiceError):
    """The trading API failed or returned an explicit error text."""

    def __init__(self, message: str = "Upstream error", details: Optional[Dict[str, Any]] = None):
        AccessLayerException.__init__(self, "UPSTREAM_ERROR", message, details)
        self.service = "trading_api"


class DownstreamUnauthorizedError(AccessLayerException):
    """The delegated trading credential was rejected (expired or revoked)."""

    status_code = 401

    def __init__(
        self,
        message: str = "Trading platform token expired. Please reconnect.",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__("TOKEN_EXPIRED", message, details)


class RateLimitError(AccessLayerException):
    """Rate limiting errors."""

    status_code = 429

    def __init__(self, message: str = "Rate limit exceeded", details: Optional[Dict[str, Any]] = None):
        super().__init__("RATE_LIMITED", message, details)
