"""
FastAPI application entry point.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from vibeagent_api.config import Settings, get_settings
from vibeagent_api.dependencies import build_document_store
from vibeagent_api.errors import (
    ENDPOINT_NOT_FOUND_MESSAGE,
    INTERNAL_ERROR_MESSAGE,
    INVALID_BODY_MESSAGE,
    ApiError,
)
from vibeagent_api.routes import router
from vibeagent_api.store import DocumentStore

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(
    store: DocumentStore | None = None, settings: Settings | None = None
) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title="Vibeagent API", version="0.1.0")
    app.state.settings = settings
    app.state.store = store if store is not None else build_document_store(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["*"],
    )
    app.include_router(router, prefix=settings.api_prefix)

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError):
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        logger.info("Rejected body for %s %s: %s", request.method, request.url.path, exc)
        return _error(status.HTTP_400_BAD_REQUEST, INVALID_BODY_MESSAGE)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        # Unknown paths and unsupported methods both read as "no such endpoint".
        if exc.status_code in (
            status.HTTP_404_NOT_FOUND,
            status.HTTP_405_METHOD_NOT_ALLOWED,
        ):
            return _error(status.HTTP_404_NOT_FOUND, ENDPOINT_NOT_FOUND_MESSAGE)
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "Error handling %s %s", request.method, request.url.path, exc_info=exc
        )
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE)

    return app


logging.basicConfig(
    level=getattr(logging, get_settings().log_level.upper(), logging.INFO)
)
app = create_app()
