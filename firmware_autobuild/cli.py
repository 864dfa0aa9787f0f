"""Thin CLI wrapper for firmware_autobuild.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.markup import escape

from firmware_autobuild import __version__
from firmware_autobuild.builds.processor import BuildExecutionError
from firmware_autobuild.catalog.io import CatalogError
from firmware_autobuild.config import Settings, get_settings, print_settings_json
from firmware_autobuild.log import configure_logging
from firmware_autobuild.release.detector import Classification
from firmware_autobuild.release.github import ReleaseApiError
from firmware_autobuild.release.publisher import PublishOutcome
from firmware_autobuild.release.version_gate import ConfigurationError
from firmware_autobuild.runner import (
    RunSummary,
    open_collaborators,
    plan_release_cycle,
    run_release_cycle,
)
from firmware_autobuild.tracking.store import load_state, state_path
from firmware_autobuild.types import Action, Channel, LoadStatus
from firmware_autobuild.upstream.fetch import DownloadError, ExtractionError
from firmware_autobuild.upstream.resolver import ResolverError

app = typer.Typer(
    name="autobuild",
    help="Firmware autobuild - detect changed builds and publish releases",
    no_args_is_help=True,
)
console = Console()

RUN_ERRORS = (
    BuildExecutionError,
    CatalogError,
    ConfigurationError,
    DownloadError,
    ExtractionError,
    ReleaseApiError,
    ResolverError,
)

_ACTION_STYLES = {
    Action.CREATE: "green",
    Action.UPDATE: "yellow",
    Action.IGNORE: "dim",
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"firmware-autobuild version {__version__}")
        raise typer.Exit()


def _fail(error: Exception) -> typer.Exit:
    code = getattr(error, "code", None)
    prefix = f"Error ({code})" if code else "Error"
    console.print(f"[red]{prefix}: {escape(str(error))}[/red]", highlight=False)
    return typer.Exit(code=1)


def _selected_channels(channels: list[Channel] | None) -> list[Channel]:
    if not channels:
        return list(Channel)
    return [c for c in Channel if c in channels]


def _load_settings(dry_run: bool = False) -> Settings:
    settings = get_settings()
    if dry_run:
        settings = settings.model_copy(update={"dry_run": True})
    configure_logging(settings.log_level)
    return settings


def classification_to_dict(classification: Classification) -> dict[str, Any]:
    """Convert a classification to a JSON-serializable dict."""
    return {
        "channel": classification.channel.value,
        "latest_version": classification.latest_version,
        "all_ignored": classification.all_ignored,
        "decisions": {
            name: {
                "action": decision.action.value,
                "version": decision.version,
                "content_digest": decision.content_digest,
                "asset_id": decision.asset_id,
            }
            for name, decision in classification.decisions.items()
        },
    }


def summary_to_dict(summary: RunSummary) -> dict[str, Any]:
    """Convert a run summary to a JSON-serializable dict."""
    return {
        "nothing_to_do": summary.nothing_to_do,
        "catalog_size": summary.catalog_size,
        "channels": [
            {
                **classification_to_dict(plan.classification),
                "prior_state": plan.prior.status.value,
            }
            for plan in summary.plans
        ],
        "results": [
            {
                "channel": result.channel.value,
                "outcome": result.outcome.value,
                "persisted": result.persisted,
                "release": result.release.tag_name if result.release else None,
                "assets": [
                    {
                        "build": asset.build_name,
                        "filename": asset.filename,
                        "replaced_asset_id": asset.asset_id,
                        "asset_id": result.uploaded.get(asset.build_name),
                    }
                    for asset in result.assets
                ],
            }
            for result in summary.results
        ],
    }


def _print_plans(summary: RunSummary) -> None:
    if summary.catalog_size == 0:
        console.print("[yellow]No build definitions found[/yellow]")
        return
    for plan in summary.plans:
        classification = plan.classification
        console.print(
            f"[bold]{plan.channel.value}[/bold] {plan.latest_version} "
            f"(prior state: {plan.prior.status.value})"
        )
        if not classification.decisions:
            console.print("  (no builds)")
        for name, decision in classification.decisions.items():
            style = _ACTION_STYLES[decision.action]
            console.print(f"  [{style}]{decision.action.value:<7}[/{style}] {name}")


def _print_results(summary: RunSummary) -> None:
    for result in summary.results:
        channel = result.channel.value
        if result.outcome == PublishOutcome.DRY_RUN:
            console.print(
                f"[yellow][DRY RUN] {channel}: built {len(result.assets)} "
                f"asset(s), nothing published[/yellow]"
            )
        elif result.outcome == PublishOutcome.NO_ARTIFACTS:
            console.print(f"[yellow]{channel}: no artifacts produced[/yellow]")
        else:
            tag = result.release.tag_name if result.release else "?"
            console.print(
                f"[green]{channel}: published {len(result.assets)} "
                f"asset(s) to {tag}[/green]"
            )
            for asset in result.assets:
                asset_id = result.uploaded.get(asset.build_name)
                console.print(f"  - {asset.filename} (asset {asset_id})")


ChannelOption = Annotated[
    list[Channel] | None,
    typer.Option(
        "--channel",
        "-c",
        help="Channel to process (can be repeated; default: all)",
        case_sensitive=False,
    ),
]

JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output as JSON"),
]


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Firmware autobuild - detect changed builds and publish releases."""


@app.command()
def config(json_output: JsonOption = False) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        typer.echo(print_settings_json(settings))
        return

    release_repo = settings.release_repo or "(not set)"
    token = "(set)" if settings.github_token else "(not set)"
    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]Paths:[/bold]")
    console.print(f"  Builds directory:    {settings.builds_dir}")
    console.print(f"  State directory:     {settings.state_dir}")
    console.print(f"  Work directory:      {settings.work_dir}")
    console.print()
    console.print("[bold]Repositories:[/bold]")
    console.print(f"  Upstream:            {settings.upstream_repo}")
    console.print(f"  Nightly branch:      {settings.nightly_branch}")
    console.print(f"  Release repository:  {release_repo}")
    console.print(f"  GitHub token:        {token}")
    console.print()
    console.print("[bold]Operational:[/bold]")
    console.print(f"  Dry run:             {settings.dry_run}")
    console.print(f"  Checkpoint uploads:  {settings.checkpoint_uploads}")
    console.print(f"  Digest algorithm:    {settings.digest_algorithm}")
    console.print(f"  Log level:           {settings.log_level}")
    console.print()
    console.print("[bold]Timeouts (seconds):[/bold]")
    console.print(f"  HTTP timeout:        {settings.http_timeout}")
    console.print(f"  Download timeout:    {settings.download_timeout}")
    console.print(f"  Build timeout:       {settings.build_timeout}")


@app.command()
def run(
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", "-n", help="Build only, publish nothing"),
    ] = False,
    channels: ChannelOption = None,
    json_output: JsonOption = False,
) -> None:
    """Build changed firmware and publish it.

    Builds whose definition and upstream version are unchanged since the
    last run are skipped. Exits 0 when there is nothing to do.
    """
    settings = _load_settings(dry_run)
    selected = _selected_channels(channels)

    try:
        with open_collaborators(settings) as collaborators:
            summary = run_release_cycle(settings, collaborators, channels=selected)
    except RUN_ERRORS as e:
        raise _fail(e) from None

    if json_output:
        typer.echo(json.dumps(summary_to_dict(summary), indent=2))
        return

    _print_plans(summary)
    if summary.nothing_to_do:
        console.print("[green]Nothing to do[/green]")
        return
    _print_results(summary)


@app.command()
def plan(
    channels: ChannelOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show what a run would build, without building anything."""
    settings = _load_settings()
    selected = _selected_channels(channels)

    try:
        with open_collaborators(settings) as collaborators:
            summary = plan_release_cycle(settings, collaborators.resolver, selected)
    except RUN_ERRORS as e:
        raise _fail(e) from None

    if json_output:
        typer.echo(json.dumps(summary_to_dict(summary), indent=2))
        return

    _print_plans(summary)
    if summary.nothing_to_do:
        console.print("[green]Nothing to do[/green]")


@app.command()
def latest(
    channels: ChannelOption = None,
) -> None:
    """Show the latest upstream version of each channel."""
    settings = _load_settings()
    selected = _selected_channels(channels)

    try:
        with open_collaborators(settings) as collaborators:
            versions = {c: collaborators.resolver.latest(c) for c in selected}
    except ResolverError as e:
        raise _fail(e) from None

    for channel, version in versions.items():
        console.print(f"{channel.value}: {version}")


state_app = typer.Typer(help="Inspect tracking state")
app.add_typer(state_app, name="state")


@state_app.command("show")
def state_show(
    channel: Annotated[
        Channel,
        typer.Argument(help="Channel to inspect", case_sensitive=False),
    ],
    json_output: JsonOption = False,
) -> None:
    """Show the tracking state of a channel."""
    settings = get_settings()
    result = load_state(settings.state_dir, channel)
    path = state_path(settings.state_dir, channel)

    if json_output:
        records = {
            name: record.model_dump(mode="json", by_alias=True, exclude_none=True)
            for name, record in (result.state or {}).items()
        }
        output = {
            "channel": channel.value,
            "path": str(path),
            "status": result.status.value,
            "error": result.error,
            "builds": records,
        }
        typer.echo(json.dumps(output, indent=2))
        return

    if result.status == LoadStatus.NOT_FOUND:
        console.print(f"[yellow]No tracking file at {path}[/yellow]")
        return
    if result.status == LoadStatus.CORRUPT:
        console.print(f"[red]Tracking file {path} is unreadable: {result.error}[/red]")
        raise typer.Exit(code=1)

    state = result.state or {}
    console.print(f"[bold]{channel.value}[/bold] ({path}, {len(state)} build(s))")
    for name, record in state.items():
        asset = record.asset_id if record.asset_id is not None else "-"
        console.print(
            f"  {name}: version={record.version} "
            f"digest={record.content_digest} asset={asset}"
        )


__all__ = ["app"]
