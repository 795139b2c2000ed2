"""Configuration package initialization."""

from .settings import (
    AzureAdConfig,
    CallerSettings,
    DownstreamConfig,
    DownstreamSettings,
    ManagedIdentityConfig,
    get_caller_settings,
    get_downstream_settings,
)

__all__ = [
    "AzureAdConfig",
    "CallerSettings",
    "DownstreamConfig",
    "DownstreamSettings",
    "ManagedIdentityConfig",
    "get_caller_settings",
    "get_downstream_settings",
]
