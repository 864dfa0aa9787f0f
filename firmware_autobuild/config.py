"""Runtime configuration.

Every setting can come from an FW_AUTOBUILD_* environment variable or a
.env file; command-line flags such as --dry-run take precedence.
"""

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the FW_AUTOBUILD_
    prefix. CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="FW_AUTOBUILD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Paths
    builds_dir: Path = Field(
        default=Path("builds"),
        description="Directory containing build definition files",
    )
    state_dir: Path = Field(
        default=Path("."),
        description="Directory holding the per-channel tracking files",
    )
    work_dir: Path = Field(
        default=Path("dist"),
        description="Scratch directory for sources, logs and built assets",
    )

    # Upstream and release hosting
    upstream_repo: str = Field(
        default="MarlinFirmware/Marlin",
        description="Upstream firmware repository (owner/name)",
    )
    nightly_branch: str = Field(
        default="bugfix-2.1.x",
        description="Upstream branch tracked by the nightly channel",
    )
    release_repo: str | None = Field(
        default=None,
        description="Repository receiving the releases (owner/name)",
    )
    github_token: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("FW_AUTOBUILD_GITHUB_TOKEN", "GITHUB_TOKEN"),
        description="Token used for the GitHub REST API",
    )
    github_api_url: str = Field(
        default="https://api.github.com",
        description="Base URL of the GitHub REST API",
    )

    # Operational modes
    dry_run: bool = Field(
        default=False,
        description="Build only - do not create releases or write tracking state",
    )
    checkpoint_uploads: bool = Field(
        default=False,
        description="Rewrite tracking state after every successful upload",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Artifacts
    digest_algorithm: Literal["md5", "sha256"] = Field(
        default="md5",
        description="Digest used to fingerprint build definition files",
    )
    artifact_extension: str = Field(
        default=".bin",
        description="Extension appended to rendered asset filenames",
    )
    platformio_command: str = Field(
        default="platformio",
        description="PlatformIO executable used by the build processor",
    )

    # Timeouts (in seconds)
    http_timeout: int = Field(
        default=60,
        ge=1,
        description="Timeout for GitHub API requests",
    )
    download_timeout: int = Field(
        default=1800,
        ge=60,
        description="Timeout for upstream source downloads",
    )
    build_timeout: int = Field(
        default=3600,
        ge=60,
        description="Timeout for a single firmware build",
    )

    @property
    def assets_dir(self) -> Path:
        """Directory receiving built artifacts."""
        return self.work_dir / "assets"

    @property
    def logs_dir(self) -> Path:
        """Directory receiving build logs."""
        return self.work_dir / "logs"

    @property
    def source_dir(self) -> Path:
        """Directory receiving extracted upstream sources."""
        return self.work_dir / "source"


def get_settings() -> Settings:
    """Load settings from the environment."""
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    The GitHub token is masked by pydantic's SecretStr serialization.

    Args:
        settings: Settings to render; loaded from the environment if None.

    Returns:
        Indented JSON document.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
