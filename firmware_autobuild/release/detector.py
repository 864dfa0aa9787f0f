"""Change detection for scheduled builds.

This module classifies every catalog build for one channel as
create, update or ignore by comparing the latest upstream version and
the definition file's content digest with the previous run's tracking
state. See classify() for the rules.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from firmware_autobuild.catalog.models import BuildCatalog, CatalogEntry
from firmware_autobuild.catalog.schema import BuildDefinition
from firmware_autobuild.release.hasher import compute_content_digest
from firmware_autobuild.release.version_gate import check_min_version
from firmware_autobuild.tracking.models import (
    StateLoadResult,
    TrackedBuild,
    TrackingState,
)
from firmware_autobuild.types import Action, Channel

logger = logging.getLogger(__name__)

DigestFunc = Callable[[Path], str]


@dataclass
class Decision:
    """Classification of one build for the current run.

    A decision becomes the build's next TrackedBuild once the transient
    fields (definition, action) are stripped.

    Attributes:
        name: Build name.
        version: Version recorded for the build.
        content_digest: Digest recorded for the build.
        definition: Build definition (transient).
        action: What the publisher must do (transient).
        asset_id: Remote asset carried forward or assigned by an upload.
    """

    name: str
    version: str
    content_digest: str
    definition: BuildDefinition
    action: Action
    asset_id: int | None = None

    @property
    def needs_publish(self) -> bool:
        """True for create and update decisions."""
        return self.action != Action.IGNORE

    def to_tracked(self) -> TrackedBuild:
        """Strip the transient fields."""
        return TrackedBuild(
            version=self.version,
            content_digest=self.content_digest,
            asset_id=self.asset_id,
        )


@dataclass
class Classification:
    """Decisions for one channel, in catalog order.

    Attributes:
        channel: Channel that was classified.
        latest_version: Upstream version the decisions were made against.
        decisions: Decision per build name. Gated builds, and disabled
            builds without a prior record, are absent.
    """

    channel: Channel
    latest_version: str
    decisions: dict[str, Decision] = field(default_factory=dict)

    @property
    def all_ignored(self) -> bool:
        """True when no decision requires work (vacuously for no decisions)."""
        return all(d.action == Action.IGNORE for d in self.decisions.values())

    @property
    def actionable(self) -> list[Decision]:
        """Decisions requiring a build, in catalog order."""
        return [d for d in self.decisions.values() if d.needs_publish]

    def to_state(self) -> TrackingState:
        """Tracking state the decisions would persist as."""
        return {name: d.to_tracked() for name, d in self.decisions.items()}


def _classify_enabled(
    entry: CatalogEntry,
    latest_version: str,
    digest: str,
    previous: TrackedBuild | None,
) -> Decision:
    definition = entry.definition
    if previous is None:
        logger.info("[new build added] %s", entry.name)
        return Decision(entry.name, latest_version, digest, definition, Action.CREATE)

    if previous.version != latest_version:
        logger.info(
            "[needs update] %s (%s -> %s)",
            entry.name,
            previous.version,
            latest_version,
        )
        return Decision(entry.name, latest_version, digest, definition, Action.CREATE)

    if previous.content_digest != digest:
        logger.info("[build changed] %s", entry.name)
        return Decision(
            entry.name,
            latest_version,
            digest,
            definition,
            Action.UPDATE,
            asset_id=previous.asset_id,
        )

    logger.info("[up-to-date] %s", entry.name)
    return Decision(
        entry.name,
        latest_version,
        digest,
        definition,
        Action.IGNORE,
        asset_id=previous.asset_id,
    )


def classify(
    latest_version: str,
    channel: Channel,
    catalog: BuildCatalog,
    prior: StateLoadResult,
    digest_func: DigestFunc | None = None,
) -> Classification:
    """Classify every catalog build for a channel.

    Rules, first match wins:

    1. Disabled or restricted to the other channel: ignore, recorded at
       the latest version and current digest with the prior asset id.
       Without a prior record the build is left out of the result.
    2. Stable build below its ``min_version``: left out of the result.
       An invalid ``min_version`` aborts classification.
    3. No prior record: create.
    4. Prior record for another version: create, without an asset id.
    5. Same version, different digest: update, keeping the asset id.
    6. Otherwise: ignore, keeping the asset id.

    A prior state that was not found or could not be parsed behaves as
    if no build had a prior record.

    Args:
        latest_version: Latest upstream version for the channel.
        channel: Channel being classified.
        catalog: Build catalog.
        prior: Result of loading the channel's tracking state.
        digest_func: Fingerprint function for definition files.

    Returns:
        Classification with decisions in catalog order.

    Raises:
        ConfigurationError: If a build has an invalid ``min_version``.
    """
    if digest_func is None:
        digest_func = compute_content_digest

    if prior.is_bootstrap:
        logger.info(
            "Checking builds for %s release %s (no prior state: %s)",
            channel.value,
            latest_version,
            prior.status.value,
        )
    else:
        logger.info(
            "Checking builds for %s release %s", channel.value, latest_version
        )

    result = Classification(channel=channel, latest_version=latest_version)

    for entry in catalog:
        definition = entry.definition
        previous = prior.get(entry.name)

        if not definition.is_enabled_for(channel):
            if previous is None:
                logger.info("[disabled] %s", entry.name)
                continue
            digest = digest_func(entry.path)
            logger.info("[disabled] %s", entry.name)
            result.decisions[entry.name] = Decision(
                entry.name,
                latest_version,
                digest,
                definition,
                Action.IGNORE,
                asset_id=previous.asset_id,
            )
            continue

        if not check_min_version(
            entry.name, definition.min_version, latest_version, channel
        ):
            logger.info(
                "[ignored] %s (requires %s)", entry.name, definition.min_version
            )
            continue

        digest = digest_func(entry.path)
        result.decisions[entry.name] = _classify_enabled(
            entry, latest_version, digest, previous
        )

    return result


__all__ = ["Classification", "Decision", "DigestFunc", "classify"]
