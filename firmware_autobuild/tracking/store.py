"""Tracking state storage.

One JSON file per channel (``last_stable.json``, ``last_nightly.json``).
Loading never raises for a missing or malformed file; the outcome is
reported through StateLoadResult instead. Saving replaces the file
atomically so an interrupted write cannot leave a truncated tracker.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path

from pydantic import ValidationError

from firmware_autobuild.tracking.models import (
    StateLoadResult,
    TrackedBuild,
    TrackingFile,
    TrackingState,
)
from firmware_autobuild.types import Channel

logger = logging.getLogger(__name__)


def state_path(state_dir: Path, channel: Channel) -> Path:
    """Return the tracking file path for a channel."""
    return state_dir / f"last_{channel.value}.json"


def load_state(state_dir: Path, channel: Channel) -> StateLoadResult:
    """Load a channel's tracking state.

    Args:
        state_dir: Directory holding the tracking files.
        channel: Channel whose state to load.

    Returns:
        FOUND with the state, NOT_FOUND when the file does not exist, or
        CORRUPT when it cannot be read or parsed.
    """
    path = state_path(state_dir, channel)
    if not path.is_file():
        logger.info("No tracking file for %s at %s", channel.value, path)
        return StateLoadResult.not_found()

    try:
        raw = path.read_text(encoding="utf-8")
        state = TrackingFile.model_validate_json(raw).root
    except (OSError, UnicodeDecodeError, ValidationError) as e:
        logger.warning(
            "Tracking file %s is unreadable, treating as first run: %s", path, e
        )
        return StateLoadResult.corrupt(str(e))

    logger.debug("Loaded %d tracked build(s) from %s", len(state), path)
    return StateLoadResult.found(state)


def serialize_state(state: Mapping[str, TrackedBuild]) -> str:
    """Render a tracking state as the on-disk JSON document."""
    data = {
        name: record.model_dump(by_alias=True, exclude_none=True)
        for name, record in state.items()
    }
    return json.dumps(data, indent=4) + "\n"


def save_state(
    state_dir: Path, channel: Channel, state: Mapping[str, TrackedBuild]
) -> Path:
    """Write a channel's tracking state, replacing the previous file.

    The document is written to a temporary file in the same directory and
    moved into place with os.replace.

    Args:
        state_dir: Directory holding the tracking files.
        channel: Channel whose state to write.
        state: Full state to persist.

    Returns:
        Path of the written tracking file.
    """
    state_dir.mkdir(parents=True, exist_ok=True)
    path = state_path(state_dir, channel)
    content = serialize_state(state)

    with tempfile.NamedTemporaryFile(
        "w",
        encoding="utf-8",
        dir=state_dir,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
    ) as tmp_file:
        tmp_path = Path(tmp_file.name)
        try:
            tmp_file.write(content)
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
        except Exception:
            tmp_file.close()
            tmp_path.unlink(missing_ok=True)
            raise

    try:
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise

    logger.info("Wrote %d tracked build(s) to %s", len(state), path)
    return path


def copy_state(state: TrackingState | None) -> TrackingState:
    """Return a shallow copy of a state, or an empty state."""
    return dict(state) if state else {}


__all__ = ["copy_state", "load_state", "save_state", "serialize_state", "state_path"]
