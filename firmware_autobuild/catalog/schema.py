"""Pydantic models for build definition validation.

A build definition file describes one distributable firmware: how its
asset is named on each channel, whether it is active, which channel it
is restricted to, and the minimum upstream version it supports.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from firmware_autobuild.types import Channel


class BuildMetaSchema(BaseModel):
    """Per-channel asset filename templates.

    Attributes:
        stable_name: Filename template used on the stable channel.
        nightly_name: Filename template used on the nightly channel.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    stable_name: str = Field(
        default="{{marlin_version}}-{{current_date}}-{{uid}}",
        min_length=1,
        description="Filename template for stable releases",
    )
    nightly_name: str = Field(
        default="nightly-{{current_date}}-{{uid}}",
        min_length=1,
        description="Filename template for nightly releases",
    )

    def template_for(self, channel: Channel) -> str:
        """Return the filename template for a channel."""
        if channel == Channel.STABLE:
            return self.stable_name
        return self.nightly_name


class BuildDefinition(BaseModel):
    """A named build definition loaded from the catalog.

    Unknown keys are kept so definitions can carry configuration that
    only the build processor understands.

    Attributes:
        active: False disables the build on every channel.
        only: Restrict the build to a single channel.
        min_version: Minimum stable version (semver) the build supports.
        meta: Filename templates.
        description: Optional human-readable description.
        platformio_env: PlatformIO environment to build.
        artifact_glob: Pattern locating the firmware in the build output.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    active: bool = Field(default=True, description="Whether the build is enabled")
    only: Channel | None = Field(
        default=None, description="Restrict the build to one channel"
    )
    min_version: str | None = Field(
        default=None, description="Minimum stable version (semver)"
    )
    meta: BuildMetaSchema = Field(
        default_factory=BuildMetaSchema, description="Filename templates"
    )
    description: str | None = Field(default=None, description="Description")
    platformio_env: str | None = Field(
        default=None, description="PlatformIO environment to build"
    )
    artifact_glob: str = Field(
        default="firmware*.bin",
        min_length=1,
        description="Glob locating the built firmware",
    )

    @field_validator("min_version", mode="before")
    @classmethod
    def stringify_min_version(cls, v: object) -> object:
        """Accept YAML numbers such as 2.1 as version strings."""
        if isinstance(v, (int, float)):
            return str(v)
        return v

    @field_validator("platformio_env")
    @classmethod
    def validate_platformio_env(cls, v: str | None) -> str | None:
        """Validate the environment name has no whitespace."""
        if v is None:
            return v
        if not v.strip() or any(c.isspace() for c in v):
            raise ValueError(f"platformio_env must be a single word, got '{v}'")
        return v

    def is_enabled_for(self, channel: Channel) -> bool:
        """Check whether the build participates in a channel."""
        if self.active is False:
            return False
        return self.only is None or self.only == channel


__all__ = ["BuildDefinition", "BuildMetaSchema"]
