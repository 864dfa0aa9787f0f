"""Firmware builds run with PlatformIO inside the fetched upstream source."""

from firmware_autobuild.builds.processor import BuildExecutionError, PlatformIOProcessor

__all__ = ["BuildExecutionError", "PlatformIOProcessor"]
