"""PlatformIO build processor.

Each build definition names a PlatformIO environment. The processor runs
`platformio run -e <env>` inside the fetched upstream source of the
channel, keeps the console output as a per-build log and copies the
resulting firmware into the assets directory.
"""

from __future__ import annotations

import logging
import os
import re
import shlex
import shutil
import subprocess
import time
from pathlib import Path, PurePosixPath

from firmware_autobuild.catalog.schema import BuildDefinition
from firmware_autobuild.types import Channel

logger = logging.getLogger(__name__)

# Default build timeout (seconds)
BUILD_TIMEOUT = 3600

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.\-]+")


class BuildExecutionError(Exception):
    """Raised when a firmware build cannot be completed."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        code: str = "build_error",
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.code = code


def safe_build_name(build_name: str) -> str:
    """Turn a build name into a string usable as a file name."""
    stem = str(PurePosixPath(build_name).with_suffix(""))
    return _UNSAFE_CHARS.sub("_", stem).strip("_") or "build"


def compose_build_command(
    definition: BuildDefinition,
    platformio_command: str = "platformio",
) -> list[str]:
    """Compose the `platformio run` command for a definition.

    Args:
        definition: Build definition (must have a platformio_env).
        platformio_command: PlatformIO executable.

    Returns:
        Command as list of strings suitable for subprocess.

    Raises:
        ValueError: If the definition has no platformio_env.
    """
    if not definition.platformio_env:
        raise ValueError("build definition has no platformio_env")
    return [*shlex.split(platformio_command), "run", "-e", definition.platformio_env]


def run_build(
    command: list[str],
    cwd: Path,
    log_path: Path,
    timeout: int | None = None,
    extra_env: dict[str, str] | None = None,
) -> int:
    """Run a build command with its output captured in a log file.

    Args:
        command: Command to run.
        cwd: Working directory (the upstream source tree).
        log_path: File receiving the command output.
        timeout: Build timeout in seconds (None = no timeout).
        extra_env: Variables added to the inherited environment.

    Returns:
        Exit code of the command.

    Raises:
        BuildExecutionError: If the command times out or cannot be started.
    """
    log_path.parent.mkdir(parents=True, exist_ok=True)
    cmd_str = shlex.join(command)
    env = {**os.environ, **extra_env} if extra_env else None
    logger.info("Running %s", cmd_str)
    logger.debug("Working directory: %s, log: %s", cwd, log_path)

    started = time.monotonic()
    with log_path.open("w") as log_file:
        print(f"$ {cmd_str}", file=log_file, flush=True)
        try:
            completed = subprocess.run(
                command,
                cwd=cwd,
                stdout=log_file,
                stderr=subprocess.STDOUT,
                timeout=timeout,
                env=env,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            print(f"\n[timed out after {timeout}s]", file=log_file)
            raise BuildExecutionError(
                f"{cmd_str} timed out after {timeout}s (log: {log_path})",
                code="build_timeout",
            ) from e
        except OSError as e:
            raise BuildExecutionError(
                f"Cannot run {command[0]}: {e}",
                code="execution_error",
            ) from e

        elapsed = time.monotonic() - started
        print(f"\n[exit {completed.returncode} after {elapsed:.1f}s]", file=log_file)

    logger.debug("%s exited with %d", cmd_str, completed.returncode)
    return completed.returncode


def find_artifact(source_dir: Path, env_name: str, pattern: str) -> Path | None:
    """Locate the firmware produced for a PlatformIO environment.

    Args:
        source_dir: Upstream source tree the build ran in.
        env_name: PlatformIO environment.
        pattern: Glob matched inside ``.pio/build/<env>``.

    Returns:
        First matching file in name order, or None.
    """
    build_dir = source_dir / ".pio" / "build" / env_name
    if not build_dir.is_dir():
        return None
    matches = sorted(p for p in build_dir.glob(pattern) if p.is_file())
    return matches[0] if matches else None


class PlatformIOProcessor:
    """Build firmware for definitions with a PlatformIO environment.

    Sources are registered per channel with set_source() once they have
    been fetched. Definitions without ``platformio_env`` produce no
    artifact.

    Args:
        assets_dir: Directory receiving built artifacts.
        logs_dir: Directory receiving build logs.
        platformio_command: PlatformIO executable.
        timeout: Build timeout in seconds.
    """

    def __init__(
        self,
        assets_dir: Path,
        logs_dir: Path,
        platformio_command: str = "platformio",
        timeout: int | None = BUILD_TIMEOUT,
    ) -> None:
        self.assets_dir = assets_dir
        self.logs_dir = logs_dir
        self.platformio_command = platformio_command
        self.timeout = timeout
        self.source_dirs: dict[Channel, Path] = {}

    def set_source(self, channel: Channel, source_dir: Path) -> None:
        """Register the source tree builds of a channel run in."""
        self.source_dirs[channel] = source_dir

    def process(
        self,
        build_name: str,
        definition: BuildDefinition,
        channel: Channel,
        version: str,
    ) -> Path | None:
        """Build one definition.

        Args:
            build_name: Build name.
            definition: Build definition.
            channel: Channel being built.
            version: Upstream version being built.

        Returns:
            Path of the collected artifact, or None when the definition
            builds nothing or the build left no matching file.

        Raises:
            BuildExecutionError: If the build fails.
        """
        if not definition.platformio_env:
            logger.info("%s has no platformio_env, nothing to build", build_name)
            return None

        source_dir = self.source_dirs.get(channel)
        if source_dir is None:
            raise BuildExecutionError(
                f"No {channel.value} source available for {build_name}",
                code="missing_source",
            )

        safe_name = safe_build_name(build_name)
        log_path = self.logs_dir / channel.value / f"{safe_name}.log"
        command = compose_build_command(definition, self.platformio_command)
        exit_code = run_build(
            command,
            source_dir,
            log_path,
            timeout=self.timeout,
            extra_env={
                "AUTOBUILD_BUILD_NAME": build_name,
                "AUTOBUILD_CHANNEL": channel.value,
                "AUTOBUILD_VERSION": version,
            },
        )
        if exit_code != 0:
            logger.error("Build of %s failed, see %s", build_name, log_path)
            raise BuildExecutionError(
                f"{build_name}: build failed with exit code {exit_code} "
                f"(log: {log_path})",
                exit_code=exit_code,
                code="build_failed",
            )

        artifact = find_artifact(
            source_dir, definition.platformio_env, definition.artifact_glob
        )
        if artifact is None:
            logger.warning(
                "%s built but no file matches %s", build_name, definition.artifact_glob
            )
            return None

        dest_dir = self.assets_dir / channel.value
        dest_dir.mkdir(parents=True, exist_ok=True)
        dest = dest_dir / f"{safe_name}{artifact.suffix}"
        shutil.copy2(artifact, dest)
        logger.info("Collected %s for %s", dest, build_name)
        return dest


__all__ = [
    "BUILD_TIMEOUT",
    "BuildExecutionError",
    "PlatformIOProcessor",
    "compose_build_command",
    "find_artifact",
    "run_build",
    "safe_build_name",
]
