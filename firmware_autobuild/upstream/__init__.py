"""Upstream firmware source: latest versions and source trees per channel."""

from firmware_autobuild.upstream.fetch import (
    DownloadError,
    ExtractionError,
    fetch_source,
)
from firmware_autobuild.upstream.resolver import GitHubVersionResolver, ResolverError

__all__ = [
    "DownloadError",
    "ExtractionError",
    "GitHubVersionResolver",
    "ResolverError",
    "fetch_source",
]
