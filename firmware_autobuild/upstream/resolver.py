"""Latest upstream version resolution.

The stable version is the tag of the upstream repository's latest
release. The nightly version identifies the head commit of the nightly
branch, so every upstream commit produces a new nightly version.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from firmware_autobuild.release.github import GITHUB_API_BASE, github_headers
from firmware_autobuild.types import Channel

logger = logging.getLogger(__name__)

# Timeout for API requests (seconds)
RESOLVE_TIMEOUT = 30

# Length of the abbreviated commit hash in nightly versions
SHORT_SHA_LENGTH = 7


class ResolverError(Exception):
    """Raised when the latest upstream version cannot be determined."""

    def __init__(self, message: str, code: str = "resolver_error") -> None:
        super().__init__(message)
        self.code = code


def nightly_version(branch: str, sha: str) -> str:
    """Compose the nightly version string for a branch head."""
    return f"{branch}-{sha[:SHORT_SHA_LENGTH]}"


class GitHubVersionResolver:
    """Resolve stable and nightly versions from a GitHub repository.

    Args:
        repo: Upstream repository (owner/name).
        nightly_branch: Branch tracked by the nightly channel.
        client: HTTPX client instance.
        token: Optional API token (raises the rate limit).
        api_url: Base URL of the REST API.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        repo: str,
        nightly_branch: str,
        client: httpx.Client,
        token: str | None = None,
        api_url: str = GITHUB_API_BASE,
        timeout: float = RESOLVE_TIMEOUT,
    ) -> None:
        self.repo = repo
        self.nightly_branch = nightly_branch
        self.client = client
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def _get_json(self, url: str) -> dict[str, Any]:
        logger.debug("Fetching %s", url)
        try:
            response = self.client.get(
                url, headers=github_headers(self.token), timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise ResolverError(
                f"HTTP error fetching {url}: {e.response.status_code}",
                code="http_error",
            ) from e
        except httpx.TimeoutException as e:
            raise ResolverError(f"Timeout fetching {url}", code="timeout") from e
        except httpx.RequestError as e:
            raise ResolverError(
                f"Network error fetching {url}: {e}", code="network_error"
            ) from e
        except ValueError as e:
            raise ResolverError(
                f"Invalid JSON from {url}: {e}", code="invalid_response"
            ) from e
        if not isinstance(data, dict):
            raise ResolverError(
                f"Expected a JSON object from {url}", code="invalid_response"
            )
        return data

    def latest_stable(self) -> str:
        """Return the tag of the latest upstream release.

        Raises:
            ResolverError: If the release cannot be fetched.
        """
        data = self._get_json(f"{self.api_url}/repos/{self.repo}/releases/latest")
        tag = data.get("tag_name")
        if not isinstance(tag, str) or not tag:
            raise ResolverError(
                f"Latest release of {self.repo} has no tag_name",
                code="invalid_response",
            )
        logger.info("Latest stable version: %s", tag)
        return tag

    def latest_nightly(self) -> str:
        """Return the version of the nightly branch head.

        Raises:
            ResolverError: If the branch head cannot be fetched.
        """
        data = self._get_json(
            f"{self.api_url}/repos/{self.repo}/commits/{self.nightly_branch}"
        )
        sha = data.get("sha")
        if not isinstance(sha, str) or len(sha) < SHORT_SHA_LENGTH:
            raise ResolverError(
                f"Head of {self.repo}@{self.nightly_branch} has no sha",
                code="invalid_response",
            )
        version = nightly_version(self.nightly_branch, sha)
        logger.info("Latest nightly version: %s", version)
        return version

    def latest(self, channel: Channel) -> str:
        """Return the latest version for a channel."""
        if channel == Channel.STABLE:
            return self.latest_stable()
        return self.latest_nightly()


__all__ = [
    "GitHubVersionResolver",
    "ResolverError",
    "nightly_version",
]
