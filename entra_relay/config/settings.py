"""
Configuration management for both services using Pydantic Settings.

Settings are frozen once loaded and cached with ``lru_cache`` so a single
instance is built at startup and handed to the app factories.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _blank_to_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class DownstreamConfig(BaseModel):
    """``Downstream:*`` section used by the caller service."""

    model_config = ConfigDict(frozen=True)

    base_url: str = Field(
        default="https://localhost:5002/",
        description="Base address of the downstream API",
    )
    scope: Optional[str] = Field(
        default=None,
        description="Scope requested for the downstream API (preferred)",
    )
    resource_id: Optional[str] = Field(
        default=None,
        description="App ID URI of the downstream API, used when scope is not set",
    )

    @field_validator("scope", "resource_id")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class ManagedIdentityConfig(BaseModel):
    """``ManagedIdentity:*`` section used by the caller service."""

    model_config = ConfigDict(frozen=True)

    client_id: Optional[str] = Field(
        default=None,
        description="Client ID of a user-assigned managed identity",
    )

    @field_validator("client_id")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class AzureAdConfig(BaseModel):
    """``AzureAd:*`` section used by the downstream service."""

    model_config = ConfigDict(frozen=True)

    authority: Optional[str] = Field(
        default=None,
        description="Token authority, e.g. https://login.microsoftonline.com/<tenant>/v2.0",
    )
    audience: Optional[str] = Field(
        default=None,
        description="Expected audience (App ID URI) of incoming tokens",
    )
    client_id: Optional[str] = Field(
        default=None,
        description="Application (client) ID, also accepted as audience",
    )

    @field_validator("authority", "audience", "client_id")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)

    @property
    def enabled(self) -> bool:
        """Bearer validation is only active when an authority is configured."""
        return self.authority is not None

    @property
    def openid_config_url(self) -> str:
        """Get the OpenID configuration document URL."""
        return f"{self.authority.rstrip('/')}/.well-known/openid-configuration"

    @property
    def valid_audiences(self) -> List[str]:
        return [aud for aud in (self.audience, self.client_id) if aud]


class ServiceSettings(BaseSettings):
    """
    Settings shared by both services.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Application settings
    app_name: str = Field(default="Entra Relay", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode, also exposes OpenAPI docs")
    https_redirect: bool = Field(default=False, description="Redirect plain HTTP to HTTPS")

    # Server settings
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")

    # CORS settings
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:8000",
        description="Comma-separated list of allowed CORS origins",
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


class CallerSettings(ServiceSettings):
    """
    Settings for the caller service, which relays requests to the downstream API.
    """

    app_name: str = Field(default="Caller API", description="Application name")
    port: int = Field(default=5001, description="Server port")

    downstream: DownstreamConfig = Field(default_factory=DownstreamConfig)
    managed_identity: ManagedIdentityConfig = Field(default_factory=ManagedIdentityConfig)

    request_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for the downstream call",
    )


class DownstreamSettings(ServiceSettings):
    """
    Settings for the downstream service, which validates incoming bearer tokens.
    """

    app_name: str = Field(default="Downstream API", description="Application name")
    port: int = Field(default=5002, description="Server port")

    azure_ad: AzureAdConfig = Field(default_factory=AzureAdConfig)

    # JWKS cache settings
    jwks_cache_ttl: int = Field(
        default=86400,  # 24 hours
        description="Time to live for JWKS cache in seconds",
    )


@lru_cache()
def get_caller_settings() -> CallerSettings:
    """Get the caller service settings instance."""
    return CallerSettings()


@lru_cache()
def get_downstream_settings() -> DownstreamSettings:
    """Get the downstream service settings instance."""
    return DownstreamSettings()
