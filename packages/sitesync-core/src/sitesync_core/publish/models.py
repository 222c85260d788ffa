"""Ledger mutations and the publish plan that groups them."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sitesync_core.scan.models import check_canonical, check_digest


class _Mutation(BaseModel):
    model_config = ConfigDict(frozen=True)


class _PathMutation(_Mutation):
    path: str

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        return check_canonical(v)


class Create(_Mutation):
    """Create a new collection. Always submitted alone (phase 1)."""

    kind: Literal["create"] = "create"
    collection: str = "site"  # collection type on the ledger
    name: str = Field(min_length=1)


class AddResource(_PathMutation):
    kind: Literal["add"] = "add"
    locator: str
    hash: str
    size: int = Field(ge=0)
    content_type: str

    @field_validator("hash")
    @classmethod
    def validate_hash(cls, v: str) -> str:
        return check_digest(v)


class UpdateResource(_PathMutation):
    kind: Literal["update"] = "update"
    locator: str
    hash: str
    size: int = Field(ge=0)

    @field_validator("hash")
    @classmethod
    def validate_hash(cls, v: str) -> str:
        return check_digest(v)


class DeleteResource(_PathMutation):
    kind: Literal["delete"] = "delete"


Mutation = Annotated[
    Union[Create, AddResource, UpdateResource, DeleteResource],
    Field(discriminator="kind"),
]


class PartialMetadataSkip(BaseModel):
    """A changed path left out of a plan because it has no content locator.

    Surfaced as a warning, never raised.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    reason: str


class PublishPlan(BaseModel):
    """Ordered mutations for one collection, built once and never replayed."""

    model_config = ConfigDict(frozen=True)

    collection_id: str | None = None
    mutations: tuple[Mutation, ...] = ()
    skipped: tuple[PartialMetadataSkip, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.mutations

    def batches(self, size: int) -> Iterator[tuple[Mutation, ...]]:
        """Split the mutations into transaction-sized chunks, order preserved."""
        if size <= 0:
            raise ValueError(f"batch size must be positive, got {size}")
        for start in range(0, len(self.mutations), size):
            yield self.mutations[start:start + size]

    def counts(self) -> dict[str, int]:
        out = {"add": 0, "update": 0, "delete": 0, "create": 0}
        for m in self.mutations:
            out[m.kind] += 1
        return out
