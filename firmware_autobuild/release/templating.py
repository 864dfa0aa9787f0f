"""Asset filename rendering.

Filename templates come from a build definition's ``meta`` section and
may contain these placeholders:

- ``{{marlin_version}}`` / ``{{version}}``: upstream version
- ``{{current_date}}``: run date as YYYYMMDD
- ``{{timestamp}}``: run time in seconds since the epoch
- ``{{uid}}``: random 6-digit number, new for every asset

Unrecognized placeholders are left untouched.
"""

from __future__ import annotations

import random
import re

from firmware_autobuild.types import RunClock

DEFAULT_EXTENSION = ".bin"

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([a-z_]+)\s*\}\}")

UID_MIN = 100000
UID_MAX = 999999


def generate_uid(rng: random.Random | None = None) -> str:
    """Return a random 6-digit disambiguator."""
    source = rng if rng is not None else random
    return str(source.randint(UID_MIN, UID_MAX))


def render_filename(
    template: str,
    version: str,
    clock: RunClock,
    uid: str | None = None,
    extension: str = DEFAULT_EXTENSION,
) -> str:
    """Render an asset filename from a template.

    Args:
        template: Filename template.
        version: Upstream version string.
        clock: Time values of the current run.
        uid: Disambiguator; a random one is generated if omitted.
        extension: Extension appended unless the name already ends with it.

    Returns:
        Rendered filename ending with the extension exactly once.
    """
    values = {
        "marlin_version": version,
        "version": version,
        "current_date": clock.current_date,
        "timestamp": str(clock.timestamp),
        "uid": uid if uid is not None else generate_uid(),
    }

    def _substitute(match: re.Match[str]) -> str:
        return values.get(match.group(1), match.group(0))

    filename = PLACEHOLDER_PATTERN.sub(_substitute, template)
    if extension and not filename.endswith(extension):
        filename += extension
    return filename


__all__ = ["DEFAULT_EXTENSION", "generate_uid", "render_filename"]
