"""Release publishing for classified builds.

This module turns a channel's Classification into published assets:
- Runs the build processor for every create/update decision
- Renders asset filenames from the definition's templates
- Creates one release and uploads the assets to it, in catalog order
- Persists the channel's new tracking state

Nothing is written when running dry or when no build produced an
artifact. An upload failure propagates and leaves the tracking file as
it was, unless checkpointing is enabled, in which case every upload that
succeeded before the failure is already recorded.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Protocol

from firmware_autobuild.catalog.schema import BuildDefinition
from firmware_autobuild.release.detector import Classification
from firmware_autobuild.release.models import Asset, ReleaseTarget
from firmware_autobuild.release.templating import (
    DEFAULT_EXTENSION,
    generate_uid,
    render_filename,
)
from firmware_autobuild.tracking.models import TrackingState
from firmware_autobuild.tracking.store import copy_state, save_state
from firmware_autobuild.types import Channel, RunClock

logger = logging.getLogger(__name__)


class BuildProcessor(Protocol):
    """Turns a build definition into an artifact."""

    def process(
        self,
        build_name: str,
        definition: BuildDefinition,
        channel: Channel,
        version: str,
    ) -> Path | None:
        """Build and return the artifact path, or None if nothing was built."""
        ...


class ReleaseApi(Protocol):
    """Remote release hosting."""

    def create_release(
        self, version: str, channel: Channel, timestamp: str
    ) -> ReleaseTarget: ...

    def upload_asset(self, target: ReleaseTarget, asset: Asset) -> int: ...


class PublishOutcome(str, Enum):
    """How a publish call ended."""

    PUBLISHED = "published"
    DRY_RUN = "dry_run"
    NO_ARTIFACTS = "no_artifacts"


@dataclass
class PublishResult:
    """Result of publishing one channel.

    Attributes:
        channel: Channel that was published.
        outcome: How the publish ended.
        assets: Assets built this run.
        uploaded: Asset id assigned to each uploaded build, in upload order.
        release: Release created, if any.
        state: Tracking state written, if any.
        state_path: Path of the written tracking file, if any.
    """

    channel: Channel
    outcome: PublishOutcome
    assets: list[Asset] = field(default_factory=list)
    uploaded: dict[str, int] = field(default_factory=dict)
    release: ReleaseTarget | None = None
    state: TrackingState | None = None
    state_path: Path | None = None

    @property
    def persisted(self) -> bool:
        """True when a tracking file was written."""
        return self.state_path is not None


def collect_assets(
    classification: Classification,
    processor: BuildProcessor,
    clock: RunClock,
    extension: str = DEFAULT_EXTENSION,
    uid_func: Callable[[], str] = generate_uid,
) -> list[Asset]:
    """Build every actionable decision and collect the resulting assets.

    Decisions whose build produced nothing stay in the classification but
    get no asset.

    Args:
        classification: Channel decisions.
        processor: Build processor.
        clock: Time values of the current run.
        extension: Extension enforced on asset filenames.
        uid_func: Source of per-asset disambiguators.

    Returns:
        Assets in catalog order.

    Raises:
        Exception: Whatever the processor raises aborts the publish.
    """
    channel = classification.channel
    version = classification.latest_version
    assets: list[Asset] = []

    for decision in classification.actionable:
        logger.info("Building %s", decision.name)
        artifact_path = processor.process(
            decision.name, decision.definition, channel, version
        )
        if artifact_path is None:
            logger.info("No artifact produced for %s", decision.name)
            continue

        template = decision.definition.meta.template_for(channel)
        filename = render_filename(
            template, version, clock, uid=uid_func(), extension=extension
        )
        logger.debug(
            "Add asset: build=%s filename=%s path=%s asset_id=%s",
            decision.name,
            filename,
            artifact_path,
            decision.asset_id,
        )
        assets.append(
            Asset(
                build_name=decision.name,
                filename=filename,
                artifact_path=artifact_path,
                action=decision.action,
                asset_id=decision.asset_id,
            )
        )

    return assets


def publish(
    classification: Classification,
    processor: BuildProcessor,
    release_api: ReleaseApi,
    state_dir: Path,
    clock: RunClock | None = None,
    dry_run: bool = False,
    checkpoint_uploads: bool = False,
    prior_state: TrackingState | None = None,
    extension: str = DEFAULT_EXTENSION,
    uid_func: Callable[[], str] = generate_uid,
) -> PublishResult:
    """Build, release and record a channel's actionable builds.

    Args:
        classification: Channel decisions from classify().
        processor: Build processor.
        release_api: Release hosting client.
        state_dir: Directory holding the tracking files.
        clock: Time values of the run; captured now if omitted.
        dry_run: Stop after building.
        checkpoint_uploads: Write tracking state after every upload.
        prior_state: State loaded at run start, the base for checkpoints.
        extension: Extension enforced on asset filenames.
        uid_func: Source of per-asset disambiguators.

    Returns:
        PublishResult describing what happened.

    Raises:
        Exception: Processor and release API failures propagate; the
            final tracking write is skipped.
    """
    if clock is None:
        clock = RunClock.start()
    channel = classification.channel
    version = classification.latest_version

    assets = collect_assets(
        classification, processor, clock, extension=extension, uid_func=uid_func
    )

    if dry_run:
        logger.info(
            "Dry run: %d asset(s) built for %s, nothing published",
            len(assets),
            channel.value,
        )
        return PublishResult(channel, PublishOutcome.DRY_RUN, assets=assets)

    if not assets:
        logger.info("No artifacts for %s, tracking state untouched", channel.value)
        return PublishResult(channel, PublishOutcome.NO_ARTIFACTS)

    logger.info("Creating %s release for %s", channel.value, version)
    release = release_api.create_release(version, channel, clock.current_datetime)

    checkpoint = copy_state(prior_state)
    uploaded: dict[str, int] = {}
    for asset in assets:
        asset_id = release_api.upload_asset(release, asset)
        uploaded[asset.build_name] = asset_id
        decision = classification.decisions[asset.build_name]
        decision.asset_id = asset_id
        logger.info("Uploaded %s (asset %s)", asset.filename, asset_id)
        if checkpoint_uploads:
            checkpoint[asset.build_name] = decision.to_tracked()
            save_state(state_dir, channel, checkpoint)

    state = classification.to_state()
    path = save_state(state_dir, channel, state)
    return PublishResult(
        channel,
        PublishOutcome.PUBLISHED,
        assets=assets,
        uploaded=uploaded,
        release=release,
        state=state,
        state_path=path,
    )


__all__ = [
    "BuildProcessor",
    "PublishOutcome",
    "PublishResult",
    "ReleaseApi",
    "collect_assets",
    "publish",
]
