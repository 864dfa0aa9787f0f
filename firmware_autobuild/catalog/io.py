"""Build definition loading.

This module reads build definition files (YAML or JSON) from the builds
directory and validates them into an ordered BuildCatalog.
"""

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from firmware_autobuild.catalog.models import BuildCatalog, CatalogEntry
from firmware_autobuild.catalog.schema import BuildDefinition

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")
JSON_SUFFIXES = (".json",)
SUPPORTED_SUFFIXES = YAML_SUFFIXES + JSON_SUFFIXES


class CatalogError(Exception):
    """Raised when a build definition cannot be loaded."""

    def __init__(
        self, message: str, path: Path | None = None, code: str = "catalog_error"
    ) -> None:
        super().__init__(message)
        self.path = path
        self.code = code


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dict.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML content as a dictionary (empty for an empty file).

    Raises:
        yaml.YAMLError: If the file is not valid YAML.
        ValueError: If the document is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a YAML mapping, got {type(data).__name__}")
    return data


def load_json(path: Path) -> dict[str, Any]:
    """Load a JSON file and return its contents as a dict.

    Raises:
        json.JSONDecodeError: If the file is not valid JSON.
        ValueError: If the document is not an object.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def load_build_definition(path: Path) -> BuildDefinition:
    """Load and validate one build definition file.

    File format is determined by extension (.yaml, .yml for YAML,
    .json for JSON).

    Args:
        path: Path to the definition file.

    Returns:
        Validated BuildDefinition.

    Raises:
        CatalogError: If the file cannot be parsed or fails validation.
    """
    suffix = path.suffix.lower()
    try:
        if suffix in YAML_SUFFIXES:
            data = load_yaml(path)
        elif suffix in JSON_SUFFIXES:
            data = load_json(path)
        else:
            raise CatalogError(
                f"Unsupported file extension '{suffix}'. Use .yaml, .yml, or .json",
                path=path,
                code="unsupported_extension",
            )
    except (yaml.YAMLError, json.JSONDecodeError, ValueError, OSError) as e:
        raise CatalogError(
            f"Failed to read build definition {path}: {e}",
            path=path,
            code="invalid_format",
        ) from e

    try:
        return BuildDefinition.model_validate(data)
    except ValidationError as e:
        raise CatalogError(
            f"Invalid build definition {path}: {e}",
            path=path,
            code="validation_error",
        ) from e


def discover_definition_files(builds_dir: Path) -> list[Path]:
    """List definition files under a directory, sorted by relative path."""
    if not builds_dir.is_dir():
        return []
    return sorted(
        (
            p
            for p in builds_dir.rglob("*")
            if p.is_file() and p.suffix.lower() in SUPPORTED_SUFFIXES
        ),
        key=lambda p: p.relative_to(builds_dir).as_posix(),
    )


def load_builds(builds_dir: Path) -> BuildCatalog:
    """Load every build definition under a directory.

    Build names are the POSIX paths of the files relative to the builds
    directory. A missing directory yields an empty catalog.

    Args:
        builds_dir: Directory containing build definition files.

    Returns:
        BuildCatalog ordered by build name.

    Raises:
        CatalogError: If any definition file is invalid.
    """
    if not builds_dir.is_dir():
        logger.warning("Builds directory does not exist: %s", builds_dir)
        return BuildCatalog()

    entries: list[CatalogEntry] = []
    for path in discover_definition_files(builds_dir):
        definition = load_build_definition(path)
        name = path.relative_to(builds_dir).as_posix()
        entries.append(CatalogEntry(name=name, path=path, definition=definition))
        logger.debug("Loaded build definition %s", name)

    logger.info("Loaded %d build definition(s) from %s", len(entries), builds_dir)
    return BuildCatalog(entries=entries)


__all__ = [
    "CatalogError",
    "discover_definition_files",
    "load_build_definition",
    "load_builds",
    "load_json",
    "load_yaml",
]
