"""Content store interface and models."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ContentLocator(BaseModel):
    """Opaque reference to stored bytes.

    ``end_epoch`` is the store-owned expiry: after it lapses the content may
    disappear, and any resource still pointing at it goes dark.
    """

    model_config = ConfigDict(frozen=True)

    blob_id: str = Field(min_length=1)
    end_epoch: int | None = None
    already_existed: bool = False

    @field_validator("blob_id")
    @classmethod
    def validate_blob_id(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("blob_id cannot be empty or whitespace")
        return v


def blob_id_of(locator: ContentLocator | str) -> str:
    """Accept a full locator or its bare blob id."""
    return locator.blob_id if isinstance(locator, ContentLocator) else locator


@runtime_checkable
class ContentStore(Protocol):
    """Content-addressed blob storage."""

    async def put(self, data: bytes) -> ContentLocator: ...

    async def get(self, locator: ContentLocator | str) -> bytes: ...
