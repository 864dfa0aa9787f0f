"""FastAPI application factory.

Routes only read: settings come from web.deps.get_app_settings and every
response is built from core firmware_autobuild functions.
"""

from __future__ import annotations

from fastapi import FastAPI

from firmware_autobuild import __version__
from web.routers import catalog, config, health, state


def create_app() -> FastAPI:
    """Build the status API with all routers mounted."""
    application = FastAPI(
        title="Firmware Autobuild API",
        description="Read-only view of build definitions and release tracking state",
        version=__version__,
    )

    application.include_router(health.router, tags=["health"])
    application.include_router(config.router, prefix="/config", tags=["config"])
    application.include_router(catalog.router, prefix="/builds", tags=["builds"])
    application.include_router(state.router, prefix="/state", tags=["state"])

    return application


# Instance served by uvicorn web.app:app
app = create_app()
