"""FastAPI status API for firmware_autobuild.

This module provides a read-only HTTP view of the configuration, the
build catalog and the per-channel tracking state.

All business logic is delegated to core modules in firmware_autobuild/.
"""

from web.app import app, create_app

__all__ = ["app", "create_app"]
