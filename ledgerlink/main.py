"""
FastAPI application entrypoint for the QuickBooks connection service.
"""

from __future__ import annotations

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ledgerlink.api.routes import callback_router, router as api_router
from ledgerlink.core.config import get_settings
from ledgerlink.core.errors import LedgerLinkError
from ledgerlink.core.logging import configure_logging

logger = logging.getLogger(__name__)


async def ledgerlink_error_handler(request: Request, exc: LedgerLinkError) -> JSONResponse:
    logger.info("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted(
        {".".join(str(part) for part in error["loc"][1:]) for error in exc.errors()}
    )
    return JSONResponse(
        status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
        content={"error": f"Invalid request: {', '.join(fields) or 'malformed body'}"},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception on %s: %s", request.url.path, exc, exc_info=exc)
    return JSONResponse(
        status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="LedgerLink",
        version="0.1.0",
        description="Connects client ledgers to QuickBooks Online over OAuth2.",
    )
    app.add_exception_handler(LedgerLinkError, ledgerlink_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.include_router(api_router, prefix="/api")
    app.include_router(callback_router)
    return app


app = create_app()

__all__ = ["app", "create_app"]
