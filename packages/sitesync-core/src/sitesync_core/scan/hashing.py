"""SHA-256 content hashing."""

from __future__ import annotations

import hashlib
from pathlib import Path

ALGORITHM = "sha256"

# Read size for streamed hashing; files are never loaded whole.
CHUNK_SIZE = 64 * 1024


def compute_hash(content: bytes) -> str:
    """SHA-256 of *content* as 64 lowercase hex characters."""
    return hashlib.sha256(content).hexdigest()


def compute_file_hash(path: Path) -> str:
    """Stream a file from disk and return its SHA-256 hex digest.

    Produces exactly ``compute_hash(path.read_bytes())`` without buffering
    the whole file. No line-ending or encoding normalisation is applied.
    """
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()
