"""Catalog containers.

The catalog is an explicit ordered sequence of entries so that decisions,
builds and uploads always happen in the same order for the same inputs.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

from firmware_autobuild.catalog.schema import BuildDefinition


@dataclass(frozen=True)
class CatalogEntry:
    """A build definition together with the file it was loaded from.

    Attributes:
        name: Stable build name (POSIX path relative to the builds root).
        path: Path of the definition file; its content is fingerprinted.
        definition: Validated build definition.
    """

    name: str
    path: Path
    definition: BuildDefinition


@dataclass
class BuildCatalog:
    """Ordered collection of catalog entries."""

    entries: list[CatalogEntry] = field(default_factory=list)

    def __post_init__(self) -> None:
        names = [entry.name for entry in self.entries]
        if len(names) != len(set(names)):
            raise ValueError("catalog entries must have unique names")

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, name: object) -> bool:
        return any(entry.name == name for entry in self.entries)

    @property
    def names(self) -> list[str]:
        """Build names in catalog order."""
        return [entry.name for entry in self.entries]

    def get(self, name: str) -> CatalogEntry | None:
        """Look up an entry by build name."""
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None


__all__ = ["BuildCatalog", "CatalogEntry"]
