"""
Downstream service: serves the weather forecast, protected by Entra ID bearer
tokens when an authority is configured.
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI

from entra_relay.auth import JWTValidator, require_bearer
from entra_relay.config import DownstreamSettings, get_downstream_settings
from entra_relay.models import AuthenticatedUser, WeatherForecast, generate_forecasts
from entra_relay.web import build_app, configure_logging

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[DownstreamSettings] = None,
    jwt_validator: Optional[JWTValidator] = None,
) -> FastAPI:
    """
    Build the downstream service.

    Without AzureAd:Authority no validator is created and the forecast is
    served anonymously. A validator passed in is left open on shutdown.
    """
    settings = settings or get_downstream_settings()
    configure_logging(settings.debug)
    owns_validator = jwt_validator is None

    if jwt_validator is None and settings.azure_ad.enabled:
        jwt_validator = JWTValidator(settings.azure_ad, jwks_cache_ttl=settings.jwks_cache_ttl)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.app_name}...")
        if jwt_validator is None:
            logger.warning("AzureAd:Authority not set; bearer validation is disabled")
        else:
            logger.info(f"Authority: {settings.azure_ad.authority}")
            logger.info(f"Valid audiences: {settings.azure_ad.valid_audiences}")
            if not settings.azure_ad.valid_audiences:
                logger.warning("No AzureAd:Audience or AzureAd:ClientId set; all tokens will be rejected")

        yield

        logger.info("Shutting down application...")
        if owns_validator and jwt_validator is not None:
            await jwt_validator.close()
        logger.info("Application shutdown complete")

    app = build_app(
        settings,
        description="Weather forecast API protected by Entra ID bearer tokens",
        lifespan=lifespan,
    )
    app.state.jwt_validator = jwt_validator

    @app.get(
        "/weatherforecast",
        response_model=List[WeatherForecast],
        name="GetWeatherForecast",
        tags=["Weather"],
    )
    async def get_weather_forecast(
        caller: Optional[AuthenticatedUser] = Depends(require_bearer),
    ):
        """
        Five days of demo forecast data.

        Requires a valid bearer token when validation is enabled.
        """
        if caller is not None:
            logger.debug(f"Forecast requested by {caller.app_id or caller.subject}")
        return generate_forecasts()

    return app


if __name__ == "__main__":
    import uvicorn

    downstream_settings = get_downstream_settings()

    uvicorn.run(
        "entra_relay.downstream:create_app",
        factory=True,
        host=downstream_settings.host,
        port=downstream_settings.port,
        reload=downstream_settings.debug,
        log_level="info",
    )
