"""Upstream source retrieval.

Builds run against a pristine copy of the upstream tree: the tarball of
the release tag (stable) or of the nightly branch head is streamed to a
temporary file next to the source root and unpacked into
``<source_root>/<channel>``, replacing whatever a previous run left there.
"""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
import tempfile
from pathlib import Path, PurePosixPath

import httpx

from firmware_autobuild.types import Channel

logger = logging.getLogger(__name__)

# GitHub archive download host
CODELOAD_BASE = "https://codeload.github.com"

# Timeout for downloads (seconds)
DOWNLOAD_TIMEOUT = 1800

STREAM_CHUNK_SIZE = 256 * 1024


class DownloadError(Exception):
    """Raised when the upstream archive cannot be downloaded."""

    def __init__(self, message: str, code: str = "download_error") -> None:
        super().__init__(message)
        self.code = code


class ExtractionError(Exception):
    """Raised when the upstream archive cannot be unpacked."""

    def __init__(self, message: str, code: str = "extraction_error") -> None:
        super().__init__(message)
        self.code = code


def build_source_url(
    repo: str,
    channel: Channel,
    version: str,
    nightly_branch: str,
    base_url: str = CODELOAD_BASE,
) -> str:
    """Build the tarball URL of the upstream source for a channel.

    Stable sources are fetched by release tag, nightly sources from the
    head of the nightly branch.

    Args:
        repo: Upstream repository (owner/name).
        channel: Channel being built.
        version: Latest version on the channel (the tag for stable).
        nightly_branch: Branch tracked by the nightly channel.
        base_url: Archive download host.

    Returns:
        Tarball URL.
    """
    if channel == Channel.STABLE:
        ref = f"refs/tags/{version}"
    else:
        ref = f"refs/heads/{nightly_branch}"
    return f"{base_url.rstrip('/')}/{repo}/tar.gz/{ref}"


def download_archive(
    client: httpx.Client,
    url: str,
    dest_path: Path,
    timeout: float = DOWNLOAD_TIMEOUT,
) -> int:
    """Stream an archive to disk.

    Args:
        client: HTTPX client instance.
        url: Archive URL (redirects are followed).
        dest_path: File receiving the archive.
        timeout: Download timeout in seconds.

    Returns:
        Number of bytes written.

    Raises:
        DownloadError: If the request fails.
    """
    logger.info("Downloading %s", url)
    written = 0
    try:
        with client.stream(
            "GET", url, timeout=timeout, follow_redirects=True
        ) as response:
            response.raise_for_status()
            with dest_path.open("wb") as f:
                for chunk in response.iter_bytes(STREAM_CHUNK_SIZE):
                    written += f.write(chunk)
    except httpx.HTTPStatusError as e:
        raise DownloadError(
            f"{url} returned {e.response.status_code}",
            code="http_error",
        ) from e
    except httpx.TimeoutException as e:
        raise DownloadError(f"Timed out downloading {url}", code="timeout") from e
    except httpx.RequestError as e:
        raise DownloadError(
            f"Could not download {url}: {e}", code="network_error"
        ) from e

    logger.debug("Wrote %d bytes to %s", written, dest_path)
    return written


def _check_member(member: tarfile.TarInfo) -> None:
    path = PurePosixPath(member.name)
    if path.is_absolute() or ".." in path.parts:
        raise ExtractionError(
            f"Refusing to extract {member.name}: path traversal detected",
            code="path_traversal",
        )


def extract_archive(archive_path: Path, dest_dir: Path) -> Path:
    """Unpack a gzipped source tarball.

    GitHub tarballs wrap the tree in one ``<repo>-<ref>`` directory; when
    that is the case the wrapped directory is returned.

    Args:
        archive_path: Path to the archive file.
        dest_dir: Destination directory.

    Returns:
        Root of the unpacked source tree.

    Raises:
        ExtractionError: If the archive is empty, unsafe or unreadable.
    """
    logger.info("Unpacking %s into %s", archive_path.name, dest_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)

    try:
        with tarfile.open(archive_path, "r:gz") as tar:
            members = tar.getmembers()
            if not members:
                raise ExtractionError(
                    f"Archive {archive_path} is empty", code="empty_archive"
                )
            for member in members:
                _check_member(member)
            tar.extractall(dest_dir, filter="data")
    except tarfile.TarError as e:
        raise ExtractionError(
            f"Cannot read {archive_path}: {e}", code="tar_error"
        ) from e
    except OSError as e:
        raise ExtractionError(
            f"Cannot unpack {archive_path}: {e}", code="os_error"
        ) from e

    entries = list(dest_dir.iterdir())
    if len(entries) == 1 and entries[0].is_dir():
        return entries[0]
    return dest_dir


def fetch_source(
    client: httpx.Client,
    repo: str,
    channel: Channel,
    version: str,
    source_root: Path,
    nightly_branch: str,
    base_url: str = CODELOAD_BASE,
    timeout: float = DOWNLOAD_TIMEOUT,
) -> Path:
    """Download and unpack the upstream source for a channel.

    Args:
        client: HTTPX client instance.
        repo: Upstream repository (owner/name).
        channel: Channel being built.
        version: Latest version on the channel.
        source_root: Directory holding per-channel source trees.
        nightly_branch: Branch tracked by the nightly channel.
        base_url: Archive download host.
        timeout: Download timeout in seconds.

    Returns:
        Root of the unpacked source tree.

    Raises:
        DownloadError: If the download fails.
        ExtractionError: If unpacking fails.
    """
    url = build_source_url(repo, channel, version, nightly_branch, base_url)
    channel_dir = source_root / channel.value
    if channel_dir.exists():
        shutil.rmtree(channel_dir)
    source_root.mkdir(parents=True, exist_ok=True)

    fd, name = tempfile.mkstemp(dir=source_root, prefix=".src-", suffix=".tar.gz")
    archive = Path(name)
    os.close(fd)
    try:
        size = download_archive(client, url, archive, timeout=timeout)
        logger.info("Fetched %s source %s (%d bytes)", channel.value, version, size)
        return extract_archive(archive, channel_dir)
    finally:
        archive.unlink(missing_ok=True)


__all__ = [
    "CODELOAD_BASE",
    "DownloadError",
    "ExtractionError",
    "build_source_url",
    "download_archive",
    "extract_archive",
    "fetch_source",
]
