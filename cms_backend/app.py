"""
FastAPI application entry point for the content backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from cms_backend.config import get_settings
from cms_backend.env import validate_startup_env
from cms_backend.error_handlers import register_error_handlers
from cms_backend.routes import router


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    validate_startup_env()

    app = FastAPI(title="Community Site Content Backend", version="0.1.0")
    register_error_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
