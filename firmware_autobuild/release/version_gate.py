"""Minimum-version gating for stable builds.

Upstream stable versions do not always follow semver; Marlin tags carry
an extra numeric segment (2.1.1.1). The latest version is therefore
coerced to MAJOR.MINOR.PATCH before it is compared with a build's
``min_version``, which itself must be valid semver.
"""

from __future__ import annotations

import logging
import re

from packaging.version import Version

from firmware_autobuild.types import Channel

logger = logging.getLogger(__name__)

SEMVER_PATTERN = re.compile(
    r"^v?"
    r"(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)

# First run of up to three dot-separated numbers, not glued to other digits
COERCE_PATTERN = re.compile(
    r"(?:^|\D)(\d{1,16})(?:\.(\d{1,16}))?(?:\.(\d{1,16}))?(?=$|\D)"
)


class ConfigurationError(Exception):
    """Raised when a build definition holds an unusable value."""

    def __init__(
        self,
        message: str,
        build_name: str | None = None,
        code: str = "configuration_error",
    ) -> None:
        super().__init__(message)
        self.build_name = build_name
        self.code = code


def is_valid_semver(value: str) -> bool:
    """Check whether a string is a valid semantic version."""
    return bool(SEMVER_PATTERN.match(value.strip()))


def coerce_version(value: str) -> str | None:
    """Coerce a loose version string to MAJOR.MINOR.PATCH.

    Missing components become zero and anything after the third numeric
    component is dropped, so ``2.1.1.1`` becomes ``2.1.1`` and ``v2``
    becomes ``2.0.0``.

    Returns:
        Coerced version, or None when the string holds no number.
    """
    match = COERCE_PATTERN.search(value)
    if match is None:
        return None
    major, minor, patch = (int(part or 0) for part in match.groups())
    return f"{major}.{minor}.{patch}"


def _core(version: str) -> Version:
    match = SEMVER_PATTERN.match(version.strip())
    if match is None:
        raise ValueError(f"not a semver string: {version}")
    return Version(".".join(match.groups()[:3]))


def is_below_min_version(latest_version: str, min_version: str) -> bool:
    """Check whether a coerced latest version is strictly below a minimum.

    The coerced latest version never has a pre-release part, so it is
    below the minimum exactly when its MAJOR.MINOR.PATCH core is.

    Args:
        latest_version: Upstream version, any format.
        min_version: Valid semver minimum.

    Returns:
        True when the build must be skipped. A latest version that cannot
        be coerced never gates.
    """
    coerced = coerce_version(latest_version)
    if coerced is None:
        logger.debug("Cannot coerce %s, not gating", latest_version)
        return False
    return _core(coerced) < _core(min_version)


def check_min_version(
    build_name: str,
    min_version: str | None,
    latest_version: str,
    channel: Channel,
) -> bool:
    """Decide whether a build passes the minimum-version gate.

    The gate only applies to the stable channel, but a set ``min_version``
    is validated on every channel so a broken definition fails the run
    whichever channel reaches it first.

    Args:
        build_name: Build being evaluated (for error reporting).
        min_version: The build's minimum version, if any.
        latest_version: Latest upstream version on the channel.
        channel: Channel being evaluated.

    Returns:
        True if the build should be considered, False if it is gated.

    Raises:
        ConfigurationError: If min_version is not valid semver.
    """
    if not min_version:
        return True
    if not is_valid_semver(min_version):
        raise ConfigurationError(
            f"{build_name}->min_version: {min_version} is not a valid semver string",
            build_name=build_name,
            code="invalid_min_version",
        )
    if channel != Channel.STABLE:
        return True
    return not is_below_min_version(latest_version, min_version)


__all__ = [
    "ConfigurationError",
    "check_min_version",
    "coerce_version",
    "is_below_min_version",
    "is_valid_semver",
]
