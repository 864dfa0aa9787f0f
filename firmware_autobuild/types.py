"""Shared type definitions for firmware_autobuild.

This module contains enums and small dataclasses shared across
subpackages to avoid circular imports.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


class Channel(str, Enum):
    """Release track with its own tracking state and gating rules."""

    STABLE = "stable"
    NIGHTLY = "nightly"


class Action(str, Enum):
    """Classification of a build for the current run."""

    CREATE = "create"
    UPDATE = "update"
    IGNORE = "ignore"


class LoadStatus(str, Enum):
    """Outcome of loading a channel's tracking file."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    CORRUPT = "corrupt"


@dataclass(frozen=True)
class RunClock:
    """Time values captured once per run.

    Every asset and the release of a run share these values so the
    rendered filenames and the release tag agree with each other.

    Attributes:
        now: Moment the run started (UTC).
    """

    now: datetime

    @classmethod
    def start(cls) -> "RunClock":
        """Capture the current time."""
        return cls(now=datetime.now(timezone.utc))

    @property
    def current_date(self) -> str:
        """Date as YYYYMMDD."""
        return self.now.strftime("%Y%m%d")

    @property
    def current_datetime(self) -> str:
        """Date and time as YYYYMMDDHHMM, used to tag releases."""
        return self.now.strftime("%Y%m%d%H%M")

    @property
    def timestamp(self) -> int:
        """Seconds since the epoch."""
        return int(self.now.timestamp())


__all__ = [
    "Action",
    "Channel",
    "LoadStatus",
    "RunClock",
]
