"""Firmware Autobuild - scheduled firmware builds published as dated releases.

This package decides, per build definition and per release channel, which
firmware artifacts must be (re)built, runs those builds, and publishes the
results as releases while tracking what was last published.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
