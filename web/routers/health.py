"""Liveness and discovery endpoints."""

from typing import Any

from fastapi import APIRouter

from firmware_autobuild import __version__
from firmware_autobuild.types import Channel

router = APIRouter()


@router.get("/health")
def health() -> dict[str, str]:
    """Report that the API is up, with the package version."""
    return {"status": "ok", "version": __version__}


@router.get("/")
def root() -> dict[str, Any]:
    """Describe the API and link to the catalog and tracking state.

    Returns:
        API name, version, known channels and resource links.
    """
    return {
        "name": "Firmware Autobuild API",
        "version": __version__,
        "channels": [channel.value for channel in Channel],
        "links": {
            "config": "/config",
            "builds": "/builds",
            "state": {channel.value: f"/state/{channel.value}" for channel in Channel},
        },
    }
