"""Remote state and diff models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sitesync_core.scan.models import check_canonical, check_digest


class ResourceRecord(BaseModel):
    """A resource previously published to a collection."""

    model_config = ConfigDict(frozen=True)

    path: str
    content_locator: str
    hash: str
    size: int = Field(ge=0)
    content_type: str | None = None

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        return check_canonical(v)

    @field_validator("hash")
    @classmethod
    def validate_hash(cls, v: str) -> str:
        return check_digest(v)


class DiffResult(BaseModel):
    """Local vs. remote comparison. The four tuples are disjoint and sorted."""

    model_config = ConfigDict(frozen=True)

    added: tuple[str, ...] = ()
    updated: tuple[str, ...] = ()
    deleted: tuple[str, ...] = ()
    unchanged: tuple[str, ...] = ()

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.updated or self.deleted)

    @property
    def to_upload(self) -> tuple[str, ...]:
        """Paths whose content must be stored before the plan can be built."""
        return tuple(sorted(self.added + self.updated))
