"""Immutable progress events emitted by the orchestrator, in order."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from sitesync_core.orchestrator.orphans import OrphanRecord


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)


class Scanning(_Event):
    kind: Literal["scanning"] = "scanning"
    directory: str


class Diffing(_Event):
    kind: Literal["diffing"] = "diffing"
    local_count: int
    remote_count: int


class Uploading(_Event):
    kind: Literal["uploading"] = "uploading"
    done: int = Field(ge=0)
    total: int = Field(ge=0)


class Committing(_Event):
    kind: Literal["committing"] = "committing"
    mutations: int


class Done(_Event):
    kind: Literal["done"] = "done"
    collection_id: str | None
    added: int = 0
    updated: int = 0
    deleted: int = 0


class Failed(_Event):
    kind: Literal["failed"] = "failed"
    reason: str
    orphans: tuple[OrphanRecord, ...] = ()


class Warning(_Event):  # noqa: A001
    """Non-fatal: a rejected path or a skipped mutation."""

    kind: Literal["warning"] = "warning"
    message: str


ProgressEvent = Annotated[
    Union[Scanning, Diffing, Uploading, Committing, Done, Failed, Warning],
    Field(discriminator="kind"),
]
