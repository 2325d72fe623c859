"""
FastAPI application entrypoint for the Afterwave artist platform.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from afterwave.api.routes import router as api_router
from afterwave.core.config import get_settings
from afterwave.core.errors import DomainError
from afterwave.core.logging import configure_logging
from afterwave.dependencies import get_feed_index, get_record_store
from afterwave.services.posts import drain_background_tasks
from afterwave.stores import CredentialStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Register auth clients and make sure the feed index exists."""
    settings = get_settings()
    CredentialStore(get_record_store()).ensure_clients(settings.auth.client_policies)
    try:
        await get_feed_index().ensure_index()
    except DomainError as exc:
        logger.warning("Feed index is not ready: %s", exc)
    yield
    await drain_background_tasks()


async def _domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    return JSONResponse(status_code=int(exc.status_code), content={"detail": exc.message})


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "invalid request") if errors else "invalid request"
    return JSONResponse(status_code=HTTPStatus.BAD_REQUEST, content={"detail": message})


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=HTTPStatus.INTERNAL_SERVER_ERROR, content={"detail": "internal error"}
    )


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Afterwave",
        version="0.1.0",
        description="REST API for artist pages, follows and the collated feed.",
        lifespan=lifespan,
    )
    app.add_exception_handler(DomainError, _domain_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
    app.include_router(api_router, prefix="/v1")
    return app


app = create_app()

__all__ = ["app", "create_app"]
