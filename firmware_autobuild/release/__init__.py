"""Change detection and release publishing.

This module handles:
- Content digests of build definition files
- Minimum-version gating
- Classifying builds as create / update / ignore
- Asset filename rendering
- Building, releasing and recording actionable builds
"""

from firmware_autobuild.release.detector import Classification, Decision, classify
from firmware_autobuild.release.models import Asset, ReleaseTarget
from firmware_autobuild.release.publisher import PublishOutcome, PublishResult, publish
from firmware_autobuild.release.version_gate import ConfigurationError

__all__ = [
    "Asset",
    "Classification",
    "ConfigurationError",
    "Decision",
    "PublishOutcome",
    "PublishResult",
    "ReleaseTarget",
    "classify",
    "publish",
]
