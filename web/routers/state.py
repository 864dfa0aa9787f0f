"""Tracking state endpoints.

- GET /state/{channel} - Tracking file of a channel and its load status
"""

from typing import Any

from fastapi import APIRouter, Depends

from firmware_autobuild.config import Settings
from firmware_autobuild.tracking import load_state, state_path
from firmware_autobuild.types import Channel
from web.deps import get_app_settings

router = APIRouter()


@router.get("/{channel}")
def get_state(
    channel: Channel, settings: Settings = Depends(get_app_settings)
) -> dict[str, Any]:
    """Get the tracking state of a channel.

    A missing or unreadable tracking file is reported through ``status``
    rather than as an HTTP error, since both are valid bootstrap states.

    Returns:
        Load status, error (if corrupt) and the tracked builds.
    """
    result = load_state(settings.state_dir, channel)
    return {
        "channel": channel.value,
        "path": str(state_path(settings.state_dir, channel)),
        "status": result.status.value,
        "error": result.error,
        "builds": {
            name: record.model_dump(mode="json", by_alias=True, exclude_none=True)
            for name, record in (result.state or {}).items()
        },
    }
