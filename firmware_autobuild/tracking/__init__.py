"""Tracking state module.

This module handles:
- The persisted per-channel record of what was last published
- Loading with an explicit found / not found / corrupt outcome
- Atomic replacement of tracking files
"""

from firmware_autobuild.tracking.models import (
    StateLoadResult,
    TrackedBuild,
    TrackingState,
)
from firmware_autobuild.tracking.store import load_state, save_state, state_path

__all__ = [
    "StateLoadResult",
    "TrackedBuild",
    "TrackingState",
    "load_state",
    "save_state",
    "state_path",
]
