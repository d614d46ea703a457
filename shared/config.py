"""
Shared configuration management for the Risk Gateway.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="RISK_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Identity provider (Firebase-style ID tokens)
    identity_jwks_url: str = Field(
        default="https://www.googleapis.com/service_accounts/v1/jwk/securetoken@system.gserviceaccount.com"
    )
    identity_project_id: Optional[str] = Field(default=None)
    identity_issuer: Optional[str] = Field(default=None)
    identity_jwks_refresh_seconds: int = Field(default=300)

    # Credential store (PostgREST / Supabase)
    credential_store_url: str = Field(default="http://localhost:54321")
    credential_store_key: str = Field(default="")
    credential_store_table: str = Field(default="tdv_access_token")
    credential_store_timeout_seconds: float = Field(default=10.0)

    # Downstream trading API
    default_downstream_url: str = Field(default="https://demo.tradovateapi.com")
    downstream_api_version: str = Field(default="v1")
    downstream_timeout_seconds: float = Field(default=10.0)

    # Settings cache
    settings_cache_ttl_seconds: float = Field(default=3600.0)
    settings_cache_check_period_seconds: float = Field(default=600.0)

    def resolved_issuer(self) -> Optional[str]:
        """Return the expected token issuer, derived from the project id when unset."""
        if self.identity_issuer:
            return self.identity_issuer
        if self.identity_project_id:
            return f"https://securetoken.google.com/{self.identity_project_id}"
        return None


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"


def get_config(service_name: str, port: int) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port)
