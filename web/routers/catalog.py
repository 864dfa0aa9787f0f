"""Build catalog endpoints.

- GET /builds - List build definitions in catalog order
- GET /builds/{name} - Get one build definition
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http_status

from firmware_autobuild.catalog import (
    BuildCatalog,
    CatalogEntry,
    CatalogError,
    load_builds,
)
from firmware_autobuild.config import Settings
from web.deps import get_app_settings

router = APIRouter()


def _entry_to_dict(entry: CatalogEntry) -> dict[str, Any]:
    """Convert a catalog entry to a dictionary."""
    definition = entry.definition
    return {
        "name": entry.name,
        "active": definition.active,
        "only": definition.only.value if definition.only else None,
        "min_version": definition.min_version,
        "platformio_env": definition.platformio_env,
        "description": definition.description,
    }


def _load(settings: Settings) -> BuildCatalog:
    try:
        return load_builds(settings.builds_dir)
    except CatalogError as e:
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"code": e.code, "message": str(e)},
        ) from e


@router.get("")
def list_builds(settings: Settings = Depends(get_app_settings)) -> list[dict[str, Any]]:
    """List build definitions.

    Returns:
        Build definitions sorted by name.
    """
    return [_entry_to_dict(entry) for entry in _load(settings)]


@router.get("/{name:path}")
def get_build(
    name: str, settings: Settings = Depends(get_app_settings)
) -> dict[str, Any]:
    """Get a build definition by name.

    Raises:
        HTTPException: 404 if no build has that name.
    """
    entry = _load(settings).get(name)
    if entry is None:
        raise HTTPException(
            status_code=http_status.HTTP_404_NOT_FOUND,
            detail=f"Build not found: {name}",
        )
    result = _entry_to_dict(entry)
    result["meta"] = entry.definition.meta.model_dump()
    return result
