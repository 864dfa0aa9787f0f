"""Tracking state models.

A tracking file holds, per build name, what was last published on a
channel. The JSON keys (``md5``, ``assetId``) are kept stable so tracker
files written by earlier runs stay readable.
"""

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, RootModel

from firmware_autobuild.types import LoadStatus


class TrackedBuild(BaseModel):
    """Persisted record of one build from the previous run.

    Attributes:
        version: Last published upstream version.
        content_digest: Digest of the definition file at the last action.
        asset_id: Remote asset identifier, if an asset was uploaded.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    version: str
    content_digest: str = Field(alias="md5")
    asset_id: int | None = Field(default=None, alias="assetId")


class TrackingFile(RootModel[dict[str, TrackedBuild]]):
    """Serialized form of a channel's tracking state."""


TrackingState = dict[str, TrackedBuild]


@dataclass
class StateLoadResult:
    """Result of loading a channel's tracking file.

    Only a FOUND result carries a state. NOT_FOUND and CORRUPT both send
    classification into bootstrap mode.

    Attributes:
        status: Load outcome.
        state: Loaded state when status is FOUND.
        error: Description of the problem when status is CORRUPT.
    """

    status: LoadStatus
    state: TrackingState | None = None
    error: str | None = None

    @classmethod
    def found(cls, state: TrackingState) -> "StateLoadResult":
        return cls(status=LoadStatus.FOUND, state=state)

    @classmethod
    def not_found(cls) -> "StateLoadResult":
        return cls(status=LoadStatus.NOT_FOUND)

    @classmethod
    def corrupt(cls, error: str) -> "StateLoadResult":
        return cls(status=LoadStatus.CORRUPT, error=error)

    @property
    def is_bootstrap(self) -> bool:
        """True when no usable prior state exists."""
        return self.status != LoadStatus.FOUND

    def get(self, name: str) -> TrackedBuild | None:
        """Return the prior record for a build, if any."""
        if self.state is None:
            return None
        return self.state.get(name)


__all__ = ["StateLoadResult", "TrackedBuild", "TrackingFile", "TrackingState"]
