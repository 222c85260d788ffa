"""In-process content store for tests and dry runs."""

from __future__ import annotations

import logging

from sitesync_core.errors import ContentStoreError
from sitesync_core.interfaces.content_store import ContentLocator, blob_id_of
from sitesync_core.scan.hashing import compute_hash

logger = logging.getLogger(__name__)


class MemoryContentStore:
    """Content-addressed dict store with epoch-based expiry bookkeeping."""

    def __init__(self, epochs: int = 1, current_epoch: int = 0) -> None:
        self.epochs = epochs
        self.current_epoch = current_epoch
        self._blobs: dict[str, bytes] = {}
        self._expiry: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._blobs)

    def __contains__(self, blob_id: object) -> bool:
        return blob_id in self._blobs

    async def put(self, data: bytes) -> ContentLocator:
        blob_id = compute_hash(data)
        end_epoch = self.current_epoch + self.epochs
        existed = blob_id in self._blobs
        if existed:
            end_epoch = max(end_epoch, self._expiry[blob_id])
        self._blobs[blob_id] = bytes(data)
        self._expiry[blob_id] = end_epoch
        logger.debug("Stored blob %s (%d bytes, until epoch %d)", blob_id, len(data), end_epoch)
        return ContentLocator(blob_id=blob_id, end_epoch=end_epoch, already_existed=existed)

    async def get(self, locator: ContentLocator | str) -> bytes:
        blob_id = blob_id_of(locator)
        if blob_id not in self._blobs:
            raise ContentStoreError("get", f"unknown blob {blob_id}")
        if self._expiry[blob_id] < self.current_epoch:
            raise ContentStoreError("get", f"blob {blob_id} expired at epoch {self._expiry[blob_id]}")
        return self._blobs[blob_id]

    def advance_epoch(self, n: int = 1) -> None:
        """Move the clock forward and drop blobs whose storage lapsed."""
        self.current_epoch += n
        lapsed = [b for b, end in self._expiry.items() if end < self.current_epoch]
        for blob_id in lapsed:
            del self._blobs[blob_id]
            del self._expiry[blob_id]
        if lapsed:
            logger.info("Epoch %d: %d blob(s) expired", self.current_epoch, len(lapsed))
