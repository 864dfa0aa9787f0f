"""Scheduled run orchestration.

One run resolves the latest upstream version of every requested channel,
loads the build catalog, classifies the catalog against each channel's
tracking state and, for channels with work, fetches the upstream source,
builds and publishes. Channels are processed in order (stable, then
nightly) and a failure aborts the run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Protocol

import httpx

from firmware_autobuild.builds.processor import PlatformIOProcessor
from firmware_autobuild.catalog.io import load_builds
from firmware_autobuild.config import Settings
from firmware_autobuild.release.detector import Classification, classify
from firmware_autobuild.release.github import GitHubReleaseClient
from firmware_autobuild.release.hasher import compute_content_digest
from firmware_autobuild.release.publisher import (
    BuildProcessor,
    PublishResult,
    ReleaseApi,
    publish,
)
from firmware_autobuild.tracking.models import StateLoadResult
from firmware_autobuild.tracking.store import load_state
from firmware_autobuild.types import Channel, RunClock
from firmware_autobuild.upstream.fetch import fetch_source
from firmware_autobuild.upstream.resolver import GitHubVersionResolver

logger = logging.getLogger(__name__)

SourceFetcher = Callable[[Channel, str], Path]


class VersionResolver(Protocol):
    """Source of the latest upstream version per channel."""

    def latest(self, channel: Channel) -> str: ...


@dataclass
class Collaborators:
    """External services a run talks to."""

    resolver: VersionResolver
    processor: BuildProcessor
    release_api: ReleaseApi
    fetch_source: SourceFetcher


@dataclass
class ChannelPlan:
    """Classification of the catalog for one channel.

    Attributes:
        channel: Channel that was classified.
        prior: Tracking state loaded at run start.
        classification: Decisions for the channel.
    """

    channel: Channel
    prior: StateLoadResult
    classification: Classification

    @property
    def latest_version(self) -> str:
        return self.classification.latest_version

    @property
    def has_work(self) -> bool:
        return not self.classification.all_ignored


@dataclass
class RunSummary:
    """What a run decided and did."""

    catalog_size: int = 0
    plans: list[ChannelPlan] = field(default_factory=list)
    results: list[PublishResult] = field(default_factory=list)

    @property
    def nothing_to_do(self) -> bool:
        """True when the catalog was empty or every decision is ignore."""
        return self.catalog_size == 0 or not any(p.has_work for p in self.plans)


def _token(settings: Settings) -> str | None:
    if settings.github_token is None:
        return None
    return settings.github_token.get_secret_value()


def _fetch_and_register(
    client: httpx.Client,
    settings: Settings,
    processor: PlatformIOProcessor,
    channel: Channel,
    version: str,
) -> Path:
    source_dir = fetch_source(
        client,
        settings.upstream_repo,
        channel,
        version,
        settings.source_dir,
        settings.nightly_branch,
        timeout=settings.download_timeout,
    )
    processor.set_source(channel, source_dir)
    return source_dir


def default_collaborators(settings: Settings, client: httpx.Client) -> Collaborators:
    """Wire the GitHub and PlatformIO collaborators from settings.

    Args:
        settings: Application settings.
        client: HTTPX client shared by every remote call.

    Returns:
        Collaborators for a real run.
    """
    token = _token(settings)
    processor = PlatformIOProcessor(
        assets_dir=settings.assets_dir,
        logs_dir=settings.logs_dir,
        platformio_command=settings.platformio_command,
        timeout=settings.build_timeout,
    )
    return Collaborators(
        resolver=GitHubVersionResolver(
            settings.upstream_repo,
            settings.nightly_branch,
            client,
            token=token,
            api_url=settings.github_api_url,
            timeout=settings.http_timeout,
        ),
        processor=processor,
        release_api=GitHubReleaseClient(
            settings.release_repo,
            token,
            api_url=settings.github_api_url,
            timeout=settings.http_timeout,
            client=client,
        ),
        fetch_source=partial(_fetch_and_register, client, settings, processor),
    )


@contextmanager
def open_collaborators(settings: Settings) -> Iterator[Collaborators]:
    """Yield default collaborators sharing one HTTP client."""
    with httpx.Client(timeout=settings.http_timeout) as client:
        yield default_collaborators(settings, client)


def _digest_func(settings: Settings) -> Callable[[Path], str]:
    return partial(compute_content_digest, algorithm=settings.digest_algorithm)


def plan_release_cycle(
    settings: Settings,
    resolver: VersionResolver,
    channels: Sequence[Channel] = tuple(Channel),
) -> RunSummary:
    """Resolve versions and classify the catalog, without side effects.

    Args:
        settings: Application settings.
        resolver: Version resolver.
        channels: Channels to plan, processed in the given order.

    Returns:
        RunSummary with one plan per channel and no publish results.

    Raises:
        ResolverError: If a latest version cannot be determined.
        CatalogError: If a build definition is invalid.
        ConfigurationError: If a build has an invalid min_version.
    """
    latest = {channel: resolver.latest(channel) for channel in channels}
    for channel, version in latest.items():
        logger.info("Latest %s version: %s", channel.value, version)

    catalog = load_builds(settings.builds_dir)
    summary = RunSummary(catalog_size=len(catalog))
    if not catalog:
        logger.info("No build definitions in %s", settings.builds_dir)
        return summary

    digest_func = _digest_func(settings)
    for channel in channels:
        prior = load_state(settings.state_dir, channel)
        classification = classify(
            latest[channel], channel, catalog, prior, digest_func=digest_func
        )
        summary.plans.append(ChannelPlan(channel, prior, classification))

    return summary


def run_release_cycle(
    settings: Settings,
    collaborators: Collaborators,
    channels: Sequence[Channel] = tuple(Channel),
    dry_run: bool | None = None,
    clock: RunClock | None = None,
) -> RunSummary:
    """Run one scheduled build and release cycle.

    Args:
        settings: Application settings.
        collaborators: External services.
        channels: Channels to process, in order.
        dry_run: Override settings.dry_run.
        clock: Time values of the run; captured now if omitted.

    Returns:
        RunSummary including the publish result of every channel with work.

    Raises:
        Exception: Any collaborator failure aborts the run. Tracking files
            of channels published before the failure are kept.
    """
    if dry_run is None:
        dry_run = settings.dry_run
    if clock is None:
        clock = RunClock.start()

    summary = plan_release_cycle(settings, collaborators.resolver, channels)
    if summary.nothing_to_do:
        logger.info("Nothing to do")
        return summary

    for plan in summary.plans:
        if not plan.has_work:
            logger.info("%s: all builds up-to-date", plan.channel.value)
            continue

        logger.info(
            "%s: %d build(s) to process",
            plan.channel.value,
            len(plan.classification.actionable),
        )
        collaborators.fetch_source(plan.channel, plan.latest_version)
        result = publish(
            plan.classification,
            collaborators.processor,
            collaborators.release_api,
            settings.state_dir,
            clock=clock,
            dry_run=dry_run,
            checkpoint_uploads=settings.checkpoint_uploads,
            prior_state=plan.prior.state,
            extension=settings.artifact_extension,
        )
        summary.results.append(result)

    return summary


__all__ = [
    "ChannelPlan",
    "Collaborators",
    "RunSummary",
    "SourceFetcher",
    "VersionResolver",
    "default_collaborators",
    "open_collaborators",
    "plan_release_cycle",
    "run_release_cycle",
]
