"""
Caller service: relays the weather forecast from the downstream API using a
managed identity token.
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

import httpx
from azure.core.credentials_async import AsyncTokenCredential
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from entra_relay.auth import TokenProvider, build_credential, resolve_downstream_scope
from entra_relay.config import CallerSettings, get_caller_settings
from entra_relay.errors import CredentialFailure, InvalidArgument, UpstreamError
from entra_relay.models import WeatherForecast, generate_forecasts
from entra_relay.proxy import DownstreamClient
from entra_relay.web import build_app, configure_logging

logger = logging.getLogger(__name__)

DOWNSTREAM_FORECAST_PATH = "/weatherforecast"


def create_app(
    settings: Optional[CallerSettings] = None,
    credential: Optional[AsyncTokenCredential] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Build the caller service.

    A credential or HTTP client passed in is left open on shutdown; the
    ones created here are closed with the app.
    """
    settings = settings or get_caller_settings()
    configure_logging(settings.debug)
    owns_credential = credential is None
    owns_http_client = http_client is None

    if credential is None:
        credential = build_credential(settings.managed_identity)
    if http_client is None:
        http_client = httpx.AsyncClient(
            base_url=settings.downstream.base_url,
            timeout=settings.request_timeout,
        )

    token_provider = TokenProvider(credential)
    downstream_client = DownstreamClient(http_client, token_provider)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.app_name}...")
        logger.info(f"Downstream base URL: {settings.downstream.base_url}")
        logger.info(f"Downstream scope: {settings.downstream.scope}")
        logger.info(f"Downstream resource ID: {settings.downstream.resource_id}")
        if not (settings.downstream.scope or settings.downstream.resource_id):
            logger.warning("No downstream scope or resource ID configured; /proxyweather will fail")

        yield

        logger.info("Shutting down application...")
        if owns_http_client:
            await http_client.aclose()
        if owns_credential:
            await token_provider.close()
        logger.info("Application shutdown complete")

    app = build_app(
        settings,
        description="Calls the downstream API with a managed identity access token",
        lifespan=lifespan,
    )

    @app.exception_handler(UpstreamError)
    async def upstream_error_handler(request: Request, exc: UpstreamError):
        return JSONResponse(
            status_code=502,
            content={
                "error": "Downstream call failed",
                "detail": str(exc),
                "downstream_status": exc.status_code,
            },
        )

    @app.exception_handler(CredentialFailure)
    async def credential_failure_handler(request: Request, exc: CredentialFailure):
        return JSONResponse(
            status_code=502,
            content={"error": "Token acquisition failed", "detail": str(exc)},
        )

    @app.exception_handler(InvalidArgument)
    async def invalid_argument_handler(request: Request, exc: InvalidArgument):
        logger.error(f"Downstream scope misconfigured: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": "Service misconfigured", "detail": str(exc)},
        )

    @app.get(
        "/weatherforecast",
        response_model=List[WeatherForecast],
        name="GetWeatherForecast",
        tags=["Weather"],
    )
    async def get_weather_forecast():
        """
        Five days of demo forecast data.
        """
        return generate_forecasts()

    @app.get("/proxyweather", name="ProxyWeather", tags=["Weather"])
    async def proxy_weather():
        """
        Fetch the forecast from the downstream API with a bearer token.

        The downstream JSON body is returned byte for byte.
        """
        scope = resolve_downstream_scope(settings.downstream)
        body = await downstream_client.proxy(DOWNSTREAM_FORECAST_PATH, scope)
        return Response(content=body, media_type="application/json")

    return app


if __name__ == "__main__":
    import uvicorn

    caller_settings = get_caller_settings()

    uvicorn.run(
        "entra_relay.caller:create_app",
        factory=True,
        host=caller_settings.host,
        port=caller_settings.port,
        reload=caller_settings.debug,
        log_level="info",
    )
