"""Content fingerprinting for build definition files."""

from __future__ import annotations

import hashlib
from pathlib import Path

# Default chunk size for hashing
HASH_CHUNK_SIZE = 64 * 1024  # 64KB

DEFAULT_ALGORITHM = "md5"


def compute_content_digest(
    file_path: Path,
    algorithm: str = DEFAULT_ALGORITHM,
    chunk_size: int = HASH_CHUNK_SIZE,
) -> str:
    """Compute the hex digest of a file's content.

    MD5 is the default so digests match tracker files written by earlier
    runs; it only detects edits and is not used for integrity.

    Args:
        file_path: Path to the file.
        algorithm: hashlib algorithm name (md5 or sha256).
        chunk_size: Size of chunks for streaming hash.

    Returns:
        Hex digest.
    """
    digest = hashlib.new(algorithm, usedforsecurity=False)
    with file_path.open("rb") as f:
        while chunk := f.read(chunk_size):
            digest.update(chunk)
    return digest.hexdigest()


__all__ = ["DEFAULT_ALGORITHM", "HASH_CHUNK_SIZE", "compute_content_digest"]
