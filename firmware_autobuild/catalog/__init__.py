"""Build catalog module.

This module handles:
- Build definition schema validation
- Loading definition files into an ordered catalog
"""

from firmware_autobuild.catalog.io import CatalogError, load_builds
from firmware_autobuild.catalog.models import BuildCatalog, CatalogEntry
from firmware_autobuild.catalog.schema import BuildDefinition, BuildMetaSchema

__all__ = [
    "BuildCatalog",
    "BuildDefinition",
    "BuildMetaSchema",
    "CatalogEntry",
    "CatalogError",
    "load_builds",
]
