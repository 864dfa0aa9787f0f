"""Publish-phase data structures."""

from dataclasses import dataclass
from pathlib import Path

from firmware_autobuild.types import Action


@dataclass
class Asset:
    """A built artifact waiting to be uploaded.

    Assets exist only while a channel is being published.

    Attributes:
        build_name: Build that produced the artifact.
        filename: Rendered asset filename.
        artifact_path: Local path of the built artifact.
        action: create or update.
        asset_id: Previously uploaded asset replaced by an update. The id
            of the new upload is recorded on the decision instead.
    """

    build_name: str
    filename: str
    artifact_path: Path
    action: Action
    asset_id: int | None = None


@dataclass
class ReleaseTarget:
    """A created remote release that assets are uploaded to.

    Attributes:
        release_id: Remote release identifier.
        tag_name: Tag the release was created with.
        upload_url: URL assets are posted to.
        html_url: Browser URL of the release, if known.
    """

    release_id: int
    tag_name: str
    upload_url: str
    html_url: str | None = None


__all__ = ["Asset", "ReleaseTarget"]
