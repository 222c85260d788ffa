"""Ledger interface and the tagged results every adapter decodes into."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Annotated, Literal, Protocol, Union, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from sitesync_core.publish.models import Mutation
from sitesync_core.sync.models import ResourceRecord


class Created(BaseModel):
    """A collection was created; the capability authorises later mutations."""

    model_config = ConfigDict(frozen=True)

    status: Literal["created"] = "created"
    collection_id: str = Field(min_length=1)
    capability_id: str = Field(min_length=1)
    digest: str | None = None


class Mutated(BaseModel):
    """A mutation transaction was applied.

    ``noop`` counts add/update mutations whose target already held the
    proposed hash.
    """

    model_config = ConfigDict(frozen=True)

    status: Literal["mutated"] = "mutated"
    collection_id: str
    applied: int = Field(default=0, ge=0)
    noop: int = Field(default=0, ge=0)
    digest: str | None = None


class Failed(BaseModel):
    """The ledger rejected the call. Nothing was applied."""

    model_config = ConfigDict(frozen=True)

    status: Literal["failed"] = "failed"
    operation: str
    reason: str


LedgerResult = Annotated[Union[Created, Mutated, Failed], Field(discriminator="status")]


class ResourcePage(BaseModel):
    """One page of a collection's resources."""

    resources: list[ResourceRecord] = Field(default_factory=list)
    next_cursor: str | None = None


@runtime_checkable
class Ledger(Protocol):
    """Capability-gated collection store."""

    async def create_collection(self, name: str) -> Created | Failed: ...

    async def add_resource(
        self,
        capability_id: str,
        collection_id: str,
        path: str,
        locator: str,
        hash: str,
        size: int,
        content_type: str,
    ) -> Mutated | Failed: ...

    async def update_resource(
        self,
        capability_id: str,
        collection_id: str,
        path: str,
        locator: str,
        hash: str,
        size: int,
    ) -> Mutated | Failed: ...

    async def delete_resource(
        self, capability_id: str, collection_id: str, path: str
    ) -> Mutated | Failed: ...

    async def delete_resources(
        self, capability_id: str, collection_id: str, paths: Sequence[str]
    ) -> Mutated | Failed: ...

    async def list_resources(
        self, collection_id: str, cursor: str | None = None, limit: int = 50
    ) -> ResourcePage: ...

    async def submit(
        self,
        capability_id: str,
        collection_id: str,
        mutations: Sequence[Mutation],
    ) -> Mutated | Failed:
        """Apply *mutations* as one all-or-nothing transaction.

        Add/update of a path whose remote hash already equals the proposed
        hash must be a no-op; the engine relies on this for safe retries.
        """
        ...
