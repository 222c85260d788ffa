"""Data models produced by a directory scan."""

from __future__ import annotations

import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sitesync_core.errors import PathRejected

_DIGEST_RE = re.compile(r"[a-f0-9]{64}")


def check_digest(v: str) -> str:
    """Validator shared by every model that carries a content digest."""
    if not _DIGEST_RE.fullmatch(v):
        raise ValueError(f"hash must be 64-char lowercase hex, got {v!r}")
    return v


def check_canonical(v: str) -> str:
    if not v.startswith("/"):
        raise ValueError(f"path must start with '/', got {v!r}")
    return v


class FileRecord(BaseModel):
    """Canonical metadata for one local file, scoped to a single scan."""

    model_config = ConfigDict(frozen=True)

    path: str
    hash: str
    size: int = Field(ge=0)
    content_type: str
    # Absolute location on disk; needed for upload, not part of the metadata.
    source: Path | None = Field(default=None, exclude=True, repr=False)

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        return check_canonical(v)

    @field_validator("hash")
    @classmethod
    def validate_hash(cls, v: str) -> str:
        return check_digest(v)


class ScanResult(BaseModel):
    """Output of one scan: records keyed by canonical path, sorted."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    root: str
    files: dict[str, FileRecord] = Field(default_factory=dict)
    rejected: list[PathRejected] = Field(default_factory=list)
    ignored: int = 0

    @property
    def total_size(self) -> int:
        return sum(f.size for f in self.files.values())
