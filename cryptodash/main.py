# cryptodash/main.py
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cryptodash.api.health import router as health_router
from cryptodash.api.market import router as market_router
from cryptodash.api.proxy import router as proxy_router

from cryptodash.config.logging_config import configure_logging
from cryptodash.config.settings import get_settings
from cryptodash.services.errors import ApiFailure


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    application = FastAPI(title="Crypto Dashboard API")

    # Routers
    application.include_router(health_router)
    application.include_router(market_router)
    application.include_router(proxy_router)

    @application.exception_handler(ApiFailure)
    async def api_failure_handler(_: Request, exc: ApiFailure) -> JSONResponse:
        # status 0 means no upstream response at all
        status = exc.status_code if exc.status_code >= 400 else 502
        return JSONResponse(status_code=status, content=exc.to_envelope())

    return application


app = create_app()
