"""Tracks uploaded content so a failed attempt can report what it left behind."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict

from sitesync_core.interfaces.content_store import ContentLocator

logger = logging.getLogger(__name__)


class OrphanRecord(BaseModel):
    """Stored content that no committed resource references.

    It stays retrievable until ``expiry`` (the store's end epoch) and can be
    reused by a retried commit without uploading again.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    content_locator: str
    expiry: int | None = None


class FailureTracker:
    """Per-attempt record of locators obtained but not yet committed."""

    def __init__(self) -> None:
        self._pending: dict[str, ContentLocator] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def record(self, path: str, locator: ContentLocator) -> None:
        self._pending[path] = locator

    def committed(self, paths: Iterable[str]) -> None:
        """Drop locators now referenced by a committed transaction."""
        for path in paths:
            self._pending.pop(path, None)

    @property
    def locators(self) -> dict[str, ContentLocator]:
        return dict(self._pending)

    def orphans(self) -> tuple[OrphanRecord, ...]:
        records = tuple(
            OrphanRecord(path=p, content_locator=loc.blob_id, expiry=loc.end_epoch)
            for p, loc in sorted(self._pending.items())
        )
        for r in records:
            logger.warning(
                "Orphaned content %s for %s (expires at epoch %s)",
                r.content_locator, r.path, r.expiry,
            )
        return records
