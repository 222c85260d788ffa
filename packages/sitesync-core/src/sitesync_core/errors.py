"""Exception taxonomy for the deployment engine.

Every fatal error carries enough context (path, locator, collection id) for
an operator to remediate by hand. Orphaned uploads travel on the exception so
callers can report them without inspecting engine internals.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sitesync_core.orchestrator.orphans import OrphanRecord


class SiteSyncError(Exception):
    """Base class for all sitesync errors."""


class ConfigError(SiteSyncError, ValueError):
    """Config file could not be parsed or failed validation."""


class PathRejected(SiteSyncError, ValueError):
    """An untrusted path-like string failed validation.

    Non-fatal: scanners collect these and keep going.
    """

    def __init__(self, raw: str, reason: str) -> None:
        self.raw = raw
        self.reason = reason
        # Truncate so a 10k-char attack string doesn't flood the logs
        shown = raw if len(raw) <= 120 else raw[:117] + "..."
        super().__init__(f"rejected {shown!r}: {reason}")


class ScanIoError(SiteSyncError):
    """Reading the local tree failed. Raised before any network effect."""

    def __init__(self, path: str, cause: Exception) -> None:
        self.path = path
        super().__init__(f"scan failed at {path}: {cause}")
        self.__cause__ = cause


class RemoteFetchError(SiteSyncError):
    """Fetching the remote resource set failed. Nothing was uploaded."""

    def __init__(self, collection_id: str, cause: Exception) -> None:
        self.collection_id = collection_id
        super().__init__(f"failed to fetch resources of {collection_id}: {cause}")
        self.__cause__ = cause


class UploadError(SiteSyncError):
    """An upload failed; locators obtained before the failure are orphans."""

    def __init__(
        self,
        path: str,
        cause: Exception,
        orphans: tuple[OrphanRecord, ...] = (),
    ) -> None:
        self.path = path
        self.orphans = orphans
        super().__init__(
            f"upload of {path} failed: {cause} ({len(orphans)} orphaned upload(s))"
        )
        self.__cause__ = cause


class CommitError(SiteSyncError):
    """Submitting the publish plan failed after uploads succeeded.

    The orphaned locators stay valid until their expiry epoch, so the commit
    can be retried without re-uploading.
    """

    def __init__(
        self,
        collection_id: str | None,
        cause: Exception,
        orphans: tuple[OrphanRecord, ...] = (),
        capability_id: str | None = None,
    ) -> None:
        self.collection_id = collection_id
        self.capability_id = capability_id
        self.orphans = orphans
        target = collection_id or "<new collection>"
        super().__init__(
            f"commit to {target} failed: {cause} ({len(orphans)} orphaned upload(s))"
        )
        self.__cause__ = cause


class ContentStoreError(SiteSyncError):
    """Adapter-level content store failure."""

    def __init__(self, operation: str, cause: Exception | str) -> None:
        self.operation = operation
        super().__init__(f"content store {operation} failed: {cause}")
        if isinstance(cause, Exception):
            self.__cause__ = cause


class LedgerError(SiteSyncError):
    """Adapter-level ledger failure."""

    def __init__(self, operation: str, cause: Exception | str) -> None:
        self.operation = operation
        super().__init__(f"ledger {operation} failed: {cause}")
        if isinstance(cause, Exception):
            self.__cause__ = cause


class StateError(SiteSyncError):
    """The deployment state file is unreadable or malformed."""

    def __init__(self, path: str, cause: Exception) -> None:
        self.path = path
        super().__init__(f"bad deployment state in {path}: {cause}")
        self.__cause__ = cause
