"""Router modules for FastAPI web API."""

from web.routers import catalog, config, health, state

__all__ = ["catalog", "config", "health", "state"]
