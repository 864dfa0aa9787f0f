"""Tests for build catalog loading."""

import json

import pytest

from firmware_autobuild.catalog.io import (
    CatalogError,
    discover_definition_files,
    load_build_definition,
    load_builds,
)
from firmware_autobuild.catalog.models import BuildCatalog, CatalogEntry
from firmware_autobuild.catalog.schema import BuildDefinition
from firmware_autobuild.types import Channel


class TestLoadBuildDefinition:
    """Tests for load_build_definition."""

    def test_yaml(self, write_build):
        """Should load a YAML definition."""
        path = write_build("ender3.yaml", {"only": "stable", "min_version": "2.1.0"})
        definition = load_build_definition(path)
        assert definition.only == Channel.STABLE
        assert definition.min_version == "2.1.0"

    def test_yml_extension(self, write_build):
        """Should accept the .yml extension."""
        path = write_build("ender3.yml", {"active": False})
        assert load_build_definition(path).active is False

    def test_json(self, builds_dir):
        """Should load a JSON definition."""
        path = builds_dir / "board.json"
        path.write_text(json.dumps({"platformio_env": "mega2560"}))
        assert load_build_definition(path).platformio_env == "mega2560"

    def test_empty_yaml(self, builds_dir):
        """An empty YAML file should be a default definition."""
        path = builds_dir / "empty.yaml"
        path.write_text("")
        assert load_build_definition(path) == BuildDefinition()

    def test_unsupported_extension(self, builds_dir):
        """Should reject other extensions."""
        path = builds_dir / "board.toml"
        path.write_text("active = true")
        with pytest.raises(CatalogError) as exc_info:
            load_build_definition(path)
        assert exc_info.value.code == "unsupported_extension"

    def test_invalid_yaml(self, builds_dir):
        """Should report malformed YAML as invalid_format."""
        path = builds_dir / "broken.yaml"
        path.write_text("active: [unclosed")
        with pytest.raises(CatalogError) as exc_info:
            load_build_definition(path)
        assert exc_info.value.code == "invalid_format"
        assert exc_info.value.path == path

    def test_non_mapping(self, builds_dir):
        """Should reject a document that is not a mapping."""
        path = builds_dir / "list.json"
        path.write_text("[1, 2]")
        with pytest.raises(CatalogError) as exc_info:
            load_build_definition(path)
        assert exc_info.value.code == "invalid_format"

    def test_validation_error(self, write_build):
        """Should report schema violations as validation_error."""
        path = write_build("bad.yaml", {"only": "weekly"})
        with pytest.raises(CatalogError) as exc_info:
            load_build_definition(path)
        assert exc_info.value.code == "validation_error"


class TestDiscoverDefinitionFiles:
    """Tests for discover_definition_files."""

    def test_recursive_and_sorted(self, builds_dir, write_build):
        """Should find nested files sorted by relative path."""
        write_build("zeta.yaml")
        write_build("creality/ender3.yml")
        write_build("alpha.json")
        (builds_dir / "README.md").write_text("docs")

        files = discover_definition_files(builds_dir)
        names = [p.relative_to(builds_dir).as_posix() for p in files]
        assert names == ["alpha.json", "creality/ender3.yml", "zeta.yaml"]

    def test_missing_directory(self, tmp_path):
        """Should return nothing for a missing directory."""
        assert discover_definition_files(tmp_path / "nope") == []


class TestLoadBuilds:
    """Tests for load_builds."""

    def test_names_and_order(self, builds_dir, write_build):
        """Entries should be named by relative path, in sorted order."""
        write_build("b.yaml")
        write_build("a/x.yaml")
        catalog = load_builds(builds_dir)

        assert isinstance(catalog, BuildCatalog)
        assert catalog.names == ["a/x.yaml", "b.yaml"]
        entry = catalog.get("a/x.yaml")
        assert entry is not None
        assert entry.path == builds_dir / "a" / "x.yaml"

    def test_missing_directory(self, tmp_path):
        """A missing directory should give an empty catalog."""
        catalog = load_builds(tmp_path / "missing")
        assert len(catalog) == 0

    def test_invalid_file_aborts(self, builds_dir, write_build):
        """One invalid file should fail the whole load."""
        write_build("good.yaml")
        (builds_dir / "bad.yaml").write_text("- not a mapping")
        with pytest.raises(CatalogError):
            load_builds(builds_dir)


class TestBuildCatalog:
    """Tests for BuildCatalog container."""

    def test_duplicate_names_rejected(self, tmp_path):
        """Two entries with the same name should be refused."""
        entry = CatalogEntry("a.yaml", tmp_path / "a.yaml", BuildDefinition())
        with pytest.raises(ValueError, match="unique"):
            BuildCatalog([entry, entry])

    def test_container_protocol(self, tmp_path):
        """Should support len, iteration, membership and lookup."""
        entries = [
            CatalogEntry("a.yaml", tmp_path / "a.yaml", BuildDefinition()),
            CatalogEntry("b.yaml", tmp_path / "b.yaml", BuildDefinition()),
        ]
        catalog = BuildCatalog(entries)
        assert len(catalog) == 2
        assert list(catalog) == entries
        assert "b.yaml" in catalog
        assert "c.yaml" not in catalog
        assert catalog.get("c.yaml") is None
