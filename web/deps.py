"""Settings dependency for FastAPI.

Route handlers receive settings through dependency injection so tests can
point the API at temporary directories with app.dependency_overrides.
"""

from __future__ import annotations

from firmware_autobuild.config import Settings, get_settings


def get_app_settings() -> Settings:
    """Provide the application settings for a request.

    Returns:
        Settings loaded from the environment.
    """
    return get_settings()
