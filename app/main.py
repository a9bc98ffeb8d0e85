"""
FastAPI application entrypoint for the Yandex.Disk integration service.
"""

from __future__ import annotations

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.routes import router as api_router
from app.clients.yandex_disk import ProviderError, ResourceNotFoundError
from app.clients.yandex_oauth import OAuthTokenNotFoundError, OAuthTokenRefreshError
from app.core.config import get_settings
from app.core.logging import configure_logging

logger = logging.getLogger(__name__)


def _register_error_handlers(app: FastAPI) -> None:
    """Translate integration failures into HTTP responses."""

    @app.exception_handler(OAuthTokenNotFoundError)
    async def _token_missing(request: Request, exc: OAuthTokenNotFoundError) -> JSONResponse:
        return JSONResponse(
            status_code=HTTPStatus.BAD_REQUEST,
            content={"detail": "Yandex not connected"},
        )

    @app.exception_handler(OAuthTokenRefreshError)
    async def _refresh_failed(request: Request, exc: OAuthTokenRefreshError) -> JSONResponse:
        logger.error("Yandex token refresh failed: %s", exc)
        return JSONResponse(
            status_code=HTTPStatus.UNAUTHORIZED,
            content={"detail": "Yandex token refresh failed; reconnect Yandex.Disk."},
        )

    @app.exception_handler(ResourceNotFoundError)
    async def _not_found(request: Request, exc: ResourceNotFoundError) -> JSONResponse:
        return JSONResponse(
            status_code=HTTPStatus.NOT_FOUND,
            content={"detail": "Resource not found on Yandex.Disk", "body": exc.body},
        )

    @app.exception_handler(ProviderError)
    async def _provider_error(request: Request, exc: ProviderError) -> JSONResponse:
        logger.error(
            "Yandex.Disk %s failed for %s",
            exc.operation or "request",
            request.url.path,
            extra={"status": exc.status, "body": exc.body},
        )
        return JSONResponse(
            status_code=HTTPStatus.BAD_GATEWAY,
            content={
                "detail": str(exc),
                "provider_status": exc.status,
                "body": exc.body,
            },
        )


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Yandex.Disk Task Storage Bridge",
        version="0.1.0",
        description="Provisions, publishes and archives task folders on Yandex.Disk.",
    )
    _register_error_handlers(app)
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
