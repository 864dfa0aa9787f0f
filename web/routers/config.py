"""Configuration endpoints."""

from typing import Any

from fastapi import APIRouter, Depends

from firmware_autobuild.config import Settings
from web.deps import get_app_settings

router = APIRouter()


@router.get("")
def get_config(settings: Settings = Depends(get_app_settings)) -> dict[str, Any]:
    """Get effective configuration.

    The GitHub token is reported as set or not, never echoed.

    Returns:
        Current configuration as JSON.
    """
    return {
        "builds_dir": str(settings.builds_dir),
        "state_dir": str(settings.state_dir),
        "work_dir": str(settings.work_dir),
        "upstream_repo": settings.upstream_repo,
        "nightly_branch": settings.nightly_branch,
        "release_repo": settings.release_repo,
        "github_token_set": settings.github_token is not None,
        "dry_run": settings.dry_run,
        "checkpoint_uploads": settings.checkpoint_uploads,
        "digest_algorithm": settings.digest_algorithm,
        "log_level": settings.log_level,
        "http_timeout": settings.http_timeout,
        "download_timeout": settings.download_timeout,
        "build_timeout": settings.build_timeout,
    }
