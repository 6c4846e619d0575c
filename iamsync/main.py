"""FastAPI application entry point.

Wiring only: logging, container, lifespan, exception handlers, routers.
Settings are loaded inside create_app() so tests can set env (and clear
the get_settings cache) before calling it.
"""

from fastapi import FastAPI

from iamsync.api.v1 import api_router
from iamsync.core.config import get_settings
from iamsync.core.container import build_container
from iamsync.core.exception_handlers import register_exception_handlers
from iamsync.core.lifespan import create_lifespan
from iamsync.shared.telemetry.logging import setup_logging


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    settings = get_settings()
    setup_logging()
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=create_lifespan,
    )
    app.state.container = build_container(settings)

    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api/v1")
    return app


app = create_app()
