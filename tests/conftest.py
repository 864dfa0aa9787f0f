"""Shared fixtures for firmware_autobuild tests."""

import os
from datetime import datetime, timezone
from pathlib import Path

import pytest
import yaml

from firmware_autobuild.types import RunClock


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Keep host configuration out of the tests."""
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    for name in list(os.environ):
        if name.startswith("FW_AUTOBUILD_"):
            monkeypatch.delenv(name, raising=False)
    # Settings read .env from the working directory
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def clock() -> RunClock:
    """A fixed run clock: 2024-03-05 14:07:09 UTC."""
    return RunClock(datetime(2024, 3, 5, 14, 7, 9, tzinfo=timezone.utc))


@pytest.fixture
def builds_dir(tmp_path) -> Path:
    """Empty builds directory."""
    path = tmp_path / "builds"
    path.mkdir()
    return path


@pytest.fixture
def write_build(builds_dir):
    """Write a YAML build definition and return its path."""

    def _write(name: str, data: dict | None = None) -> Path:
        path = builds_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(data or {}), encoding="utf-8")
        return path

    return _write
