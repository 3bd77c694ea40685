"""
Global exception handlers that keep the ``{ok: false, ...}`` envelope on
requests that never reach a route body.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from cms_backend.env import EnvValidationError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "ok": False,
                "message": "Invalid request body",
                "error": _describe_validation_errors(exc),
            },
        )

    @app.exception_handler(EnvValidationError)
    async def env_error_handler(request: Request, exc: EnvValidationError):
        logger.error("Environment invalid while serving %s: %s", request.url.path, exc.errors)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "ok": False,
                "message": "Server environment is not configured",
                "error": "; ".join(exc.errors),
            },
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all; never leaks internal details."""
        logger.error(
            "Unhandled exception on %s: %s", request.url.path, exc, exc_info=True
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "message": "Internal server error"},
        )


def _describe_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(loc) for loc in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg', 'invalid')}")
    return "; ".join(parts)
