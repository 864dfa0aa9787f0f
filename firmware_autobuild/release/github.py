"""GitHub Releases client.

Each channel publish creates one release, uploads the built assets to
it and deletes the asset an update replaces. Requests go through a
shared httpx.Client; every transport or HTTP failure is raised as
ReleaseApiError.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from firmware_autobuild import __version__
from firmware_autobuild.release.models import Asset, ReleaseTarget
from firmware_autobuild.types import Action, Channel

logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"

# Timeout for API requests (seconds)
API_TIMEOUT = 60


class ReleaseApiError(Exception):
    """Raised when a release API call fails."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str = "release_api_error",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code


def github_headers(token: str | None) -> dict[str, str]:
    """Build the headers sent with every GitHub API request."""
    headers = {
        "Accept": "application/vnd.github+json",
        "User-Agent": f"firmware-autobuild/{__version__}",
        "X-GitHub-Api-Version": "2022-11-28",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def release_tag(version: str, channel: Channel, timestamp: str) -> str:
    """Compose the tag of a channel release."""
    return f"{channel.value}-{version}-{timestamp}"


def strip_url_template(url: str) -> str:
    """Drop the RFC 6570 suffix GitHub appends to upload URLs."""
    return url.split("{", 1)[0]


class GitHubReleaseClient:
    """Create releases and upload assets on a GitHub repository.

    Args:
        repo: Repository receiving the releases (owner/name).
        token: API token with contents write permission.
        api_url: Base URL of the REST API.
        timeout: Request timeout in seconds.
        client: Optional pre-configured httpx.Client (owned by the caller).
    """

    def __init__(
        self,
        repo: str | None,
        token: str | None,
        api_url: str = GITHUB_API_BASE,
        timeout: float = API_TIMEOUT,
        client: httpx.Client | None = None,
    ) -> None:
        self.repo = repo
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    def __enter__(self) -> GitHubReleaseClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying client if this instance created it."""
        if self._owns_client:
            self._client.close()

    def _require_credentials(self) -> str:
        if not self.repo:
            raise ReleaseApiError(
                "No release repository configured (FW_AUTOBUILD_RELEASE_REPO)",
                code="missing_repo",
            )
        if not self.token:
            raise ReleaseApiError(
                "No GitHub token configured (GITHUB_TOKEN)",
                code="missing_token",
            )
        return self.repo

    def _request(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        headers = github_headers(self.token)
        headers.update(kwargs.pop("headers", {}))
        try:
            response = self._client.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            raise ReleaseApiError(
                f"HTTP error on {method} {url}: "
                f"{e.response.status_code} {e.response.reason_phrase}",
                status_code=e.response.status_code,
                code="http_error",
            ) from e
        except httpx.TimeoutException as e:
            raise ReleaseApiError(
                f"Timeout on {method} {url}",
                code="timeout",
            ) from e
        except httpx.RequestError as e:
            raise ReleaseApiError(
                f"Network error on {method} {url}: {e}",
                code="network_error",
            ) from e

    def create_release(
        self, version: str, channel: Channel, timestamp: str
    ) -> ReleaseTarget:
        """Create the release a channel's assets are uploaded to.

        Args:
            version: Upstream version being published.
            channel: Channel being published.
            timestamp: Run timestamp used in the tag (YYYYMMDDHHMM).

        Returns:
            ReleaseTarget holding the upload URL.

        Raises:
            ReleaseApiError: If the release cannot be created.
        """
        repo = self._require_credentials()
        tag = release_tag(version, channel, timestamp)
        payload = {
            "tag_name": tag,
            "name": f"{channel.value.capitalize()} {version} ({timestamp})",
            "body": f"Automated {channel.value} build of upstream {version}.",
            "draft": False,
            "prerelease": channel == Channel.NIGHTLY,
        }
        logger.info("Creating release %s on %s", tag, repo)
        response = self._request(
            "POST", f"{self.api_url}/repos/{repo}/releases", json=payload
        )
        try:
            data = response.json()
            return ReleaseTarget(
                release_id=int(data["id"]),
                tag_name=data.get("tag_name", tag),
                upload_url=strip_url_template(data["upload_url"]),
                html_url=data.get("html_url"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ReleaseApiError(
                f"Unexpected release response for {tag}: {e}",
                code="invalid_response",
            ) from e

    def delete_asset(self, asset_id: int) -> bool:
        """Delete a previously uploaded asset.

        Returns:
            True if deleted, False if it no longer existed.

        Raises:
            ReleaseApiError: On any failure other than 404.
        """
        repo = self._require_credentials()
        try:
            self._request(
                "DELETE", f"{self.api_url}/repos/{repo}/releases/assets/{asset_id}"
            )
        except ReleaseApiError as e:
            if e.status_code == 404:
                logger.warning("Asset %d already gone", asset_id)
                return False
            raise
        logger.info("Deleted replaced asset %d", asset_id)
        return True

    def upload_asset(self, target: ReleaseTarget, asset: Asset) -> int:
        """Upload an asset to a release.

        An update first removes the asset it replaces so each build keeps a
        single published binary.

        Args:
            target: Release to upload to.
            asset: Asset to upload.

        Returns:
            Identifier of the uploaded asset.

        Raises:
            ReleaseApiError: If the upload fails.
        """
        self._require_credentials()
        if asset.action == Action.UPDATE and asset.asset_id is not None:
            self.delete_asset(asset.asset_id)

        logger.info("Uploading %s to %s", asset.filename, target.tag_name)
        content = asset.artifact_path.read_bytes()
        response = self._request(
            "POST",
            target.upload_url,
            params={"name": asset.filename},
            content=content,
            headers={"Content-Type": "application/octet-stream"},
        )
        try:
            return int(response.json()["id"])
        except (KeyError, TypeError, ValueError) as e:
            raise ReleaseApiError(
                f"Unexpected upload response for {asset.filename}: {e}",
                code="invalid_response",
            ) from e


__all__ = [
    "API_TIMEOUT",
    "GITHUB_API_BASE",
    "GitHubReleaseClient",
    "ReleaseApiError",
    "github_headers",
    "release_tag",
    "strip_url_template",
]
