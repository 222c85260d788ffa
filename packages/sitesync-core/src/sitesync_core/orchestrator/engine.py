"""Sync orchestrator: scan, diff, upload, commit.

One attempt walks ``scanning -> diffing -> uploading -> committing -> done``
and drops to ``failed`` from any non-terminal state. Each transition emits an
immutable progress event to the ``on_event`` callback.

Nothing is retried automatically. Content uploaded before a failure is
reported as orphaned (see FailureTracker) and left for the operator; the
store expires it on its own schedule.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping, Sequence
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from sitesync_core.config.models import SiteSyncConfig
from sitesync_core.errors import (
    CommitError,
    LedgerError,
    PathRejected,
    RemoteFetchError,
    SiteSyncError,
    UploadError,
)
from sitesync_core.interfaces.content_store import ContentLocator, ContentStore
from sitesync_core.interfaces.ledger import Created, Failed, Ledger, Mutated
from sitesync_core.orchestrator import events
from sitesync_core.orchestrator.orphans import FailureTracker, OrphanRecord
from sitesync_core.publish.models import DeleteResource, PublishPlan
from sitesync_core.publish.planner import (
    build_create_plan,
    build_populate_plan,
    build_update_plan,
)
from sitesync_core.scan.models import FileRecord, ScanResult
from sitesync_core.scan.scanner import DirectoryScanner
from sitesync_core.sync.differ import diff
from sitesync_core.sync.models import DiffResult, ResourceRecord

logger = logging.getLogger(__name__)

EventCallback = Callable[[events.ProgressEvent], None]


class SyncState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    DIFFING = "diffing"
    UPLOADING = "uploading"
    COMMITTING = "committing"
    DONE = "done"
    FAILED = "failed"


_TERMINAL = {SyncState.DONE, SyncState.FAILED}


class SyncOutcome(BaseModel):
    """Result of a successful deploy or sync."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    collection_id: str | None
    capability_id: str | None = None
    diff: DiffResult
    plan: PublishPlan
    orphans: tuple[OrphanRecord, ...] = ()
    warnings: tuple[str, ...] = ()
    rejected: tuple[PathRejected, ...] = ()
    file_count: int = 0
    total_size: int = 0


class SyncOrchestrator:
    """Drives one deployment attempt at a time per collection."""

    def __init__(
        self,
        content_store: ContentStore,
        ledger: Ledger,
        config: SiteSyncConfig | None = None,
        on_event: EventCallback | None = None,
        scanner: DirectoryScanner | None = None,
    ) -> None:
        self.content_store = content_store
        self.ledger = ledger
        self.config = config or SiteSyncConfig()
        self.on_event = on_event
        self.scanner = scanner or DirectoryScanner(self.config.scan)
        self.state = SyncState.IDLE
        self._locks: dict[str, asyncio.Lock] = {}
        self._warnings: list[str] = []
        # Last completed attempt; set even when the caller was cancelled mid-commit
        self.outcome: SyncOutcome | None = None

    # ------------------------------------------------------------------
    # Events and state
    # ------------------------------------------------------------------

    def _emit(self, event: events.ProgressEvent) -> None:
        if self.on_event is None:
            return
        try:
            self.on_event(event)
        except Exception:
            logger.exception("Progress callback failed on %s event", event.kind)

    def _enter(self, state: SyncState, event: events.ProgressEvent) -> None:
        logger.info("Sync state: %s -> %s", self.state.value, state.value)
        self.state = state
        self._emit(event)

    def _warn(self, message: str) -> None:
        self._warnings.append(message)
        self._emit(events.Warning(message=message))

    def _fail(self, reason: str, orphans: tuple[OrphanRecord, ...]) -> None:
        if self.state in _TERMINAL:
            return
        logger.error("Sync failed in %s: %s", self.state.value, reason)
        self.state = SyncState.FAILED
        self._emit(events.Failed(reason=reason, orphans=orphans))

    def _lock_for(self, collection_id: str) -> asyncio.Lock:
        lock = self._locks.get(collection_id)
        if lock is None:
            lock = self._locks[collection_id] = asyncio.Lock()
        return lock

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def _scan(self, directory: Path) -> ScanResult:
        self._enter(SyncState.SCANNING, events.Scanning(directory=str(directory)))
        result = await self.scanner.scan(directory)
        for rejected in result.rejected:
            self._warn(str(rejected))
        return result

    async def _fetch_remote(self, collection_id: str) -> dict[str, ResourceRecord]:
        """Drain every page of the collection's resources."""
        remote: dict[str, ResourceRecord] = {}
        cursor: str | None = None
        seen: set[str] = set()
        while True:
            try:
                page = await self.ledger.list_resources(
                    collection_id, cursor=cursor, limit=self.config.ledger.page_size
                )
            except (LedgerError, PathRejected) as e:
                raise RemoteFetchError(collection_id, e) from e
            for record in page.resources:
                remote[record.path] = record
            if page.next_cursor is None:
                break
            if page.next_cursor in seen:
                raise RemoteFetchError(
                    collection_id, LedgerError("list_resources", "cursor repeated")
                )
            seen.add(page.next_cursor)
            cursor = page.next_cursor
        logger.info("Fetched %d remote resource(s) from %s", len(remote), collection_id)
        return remote

    async def _upload_one(
        self, path: str, record: FileRecord, tracker: FailureTracker
    ) -> None:
        if record.source is None:
            raise ValueError(f"file record for {path} has no source on disk")
        data = await asyncio.to_thread(record.source.read_bytes)
        locator = await self.content_store.put(data)
        if locator is None:
            logger.warning("Content store returned no locator for %s", path)
            return
        tracker.record(path, locator)
        logger.debug("Uploaded %s as %s", path, locator.blob_id)

    async def _upload(
        self,
        paths: Sequence[str],
        files: Mapping[str, FileRecord],
        tracker: FailureTracker,
    ) -> dict[str, ContentLocator]:
        total = len(paths)
        self._enter(SyncState.UPLOADING, events.Uploading(done=0, total=total))
        size = self.config.store.upload_batch_size
        try:
            for start in range(0, total, size):
                batch = paths[start:start + size]
                results = await asyncio.gather(
                    *(self._upload_one(p, files[p], tracker) for p in batch),
                    return_exceptions=True,
                )
                for path, outcome in zip(batch, results):
                    if isinstance(outcome, Exception):
                        raise UploadError(path, outcome, tracker.orphans()) from outcome
                    if isinstance(outcome, BaseException):
                        raise outcome
                self._emit(events.Uploading(done=min(start + size, total), total=total))
        except asyncio.CancelledError:
            self._fail("cancelled during upload", tracker.orphans())
            raise
        return tracker.locators

    async def _submit(
        self,
        capability_id: str,
        collection_id: str,
        plan: PublishPlan,
        tracker: FailureTracker,
    ) -> list[Mutated]:
        results: list[Mutated] = []
        for batch in plan.batches(self.config.ledger.max_mutations_per_tx):
            try:
                if all(isinstance(m, DeleteResource) for m in batch):
                    result = await self.ledger.delete_resources(
                        capability_id, collection_id, [m.path for m in batch]
                    )
                else:
                    result = await self.ledger.submit(capability_id, collection_id, batch)
            except (LedgerError, PathRejected) as e:
                raise CommitError(
                    collection_id, e, tracker.orphans(), capability_id=capability_id
                ) from e
            if isinstance(result, Failed):
                raise CommitError(
                    collection_id,
                    LedgerError(result.operation, result.reason),
                    tracker.orphans(),
                    capability_id=capability_id,
                )
            tracker.committed(m.path for m in batch if hasattr(m, "path"))
            results.append(result)
            logger.info(
                "Committed %d mutation(s) to %s (%d no-op)",
                len(batch), collection_id, result.noop,
            )
        return results

    async def _shielded(self, coro):
        """Run a commit to completion even if the caller is cancelled."""
        task = asyncio.ensure_future(coro)
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.done():
                raise
            logger.warning("Cancellation requested mid-commit; letting the commit finish")
            await task
            raise

    def _finish(
        self,
        collection_id: str | None,
        capability_id: str | None,
        result: ScanResult,
        delta: DiffResult,
        plan: PublishPlan,
        tracker: FailureTracker | None = None,
    ) -> SyncOutcome:
        for skip in plan.skipped:
            self._warn(f"skipped {skip.path}: {skip.reason}")
        counts = plan.counts()
        self._enter(
            SyncState.DONE,
            events.Done(
                collection_id=collection_id,
                added=counts["add"],
                updated=counts["update"],
                deleted=counts["delete"],
            ),
        )
        self.outcome = SyncOutcome(
            collection_id=collection_id,
            capability_id=capability_id,
            diff=delta,
            orphans=tracker.orphans() if tracker else (),
            plan=plan,
            warnings=tuple(self._warnings),
            rejected=tuple(result.rejected),
            file_count=len(result.files),
            total_size=result.total_size,
        )
        return self.outcome

    def _begin(self) -> None:
        self.state = SyncState.IDLE
        self._warnings = []
        self.outcome = None

    # ------------------------------------------------------------------
    # Protocols
    # ------------------------------------------------------------------

    async def deploy(self, directory: str | Path, name: str) -> SyncOutcome:
        """Full create: new collection, then one AddResource per local file."""
        self._begin()
        tracker = FailureTracker()
        directory = Path(directory)
        try:
            result = await self._scan(directory)
            self._enter(
                SyncState.DIFFING,
                events.Diffing(local_count=len(result.files), remote_count=0),
            )
            delta = diff(result.files, {})
            if not delta.has_changes:
                self._warn(f"nothing to deploy in {directory}")
                return self._finish(None, None, result, delta, PublishPlan())

            locators = await self._upload(delta.to_upload, result.files, tracker)

            create = build_create_plan(name)
            self._enter(
                SyncState.COMMITTING,
                events.Committing(mutations=len(create.mutations) + len(locators)),
            )
            # Both phases run as one unit: a collection is never left half-populated
            return await self._shielded(
                self._publish(name, result, delta, locators, tracker)
            )
        except SiteSyncError as e:
            self._fail(str(e), getattr(e, "orphans", ()))
            raise

    async def _publish(
        self,
        name: str,
        result: ScanResult,
        delta: DiffResult,
        locators: Mapping[str, ContentLocator],
        tracker: FailureTracker,
    ) -> SyncOutcome:
        created = await self._create(name, tracker)
        plan = build_populate_plan(created.collection_id, result.files, locators)
        async with self._lock_for(created.collection_id):
            await self._submit(created.capability_id, created.collection_id, plan, tracker)
        return self._finish(
            created.collection_id, created.capability_id, result, delta, plan, tracker
        )

    async def _create(self, name: str, tracker: FailureTracker) -> Created:
        try:
            created = await self.ledger.create_collection(name)
        except LedgerError as e:
            raise CommitError(None, e, tracker.orphans()) from e
        if isinstance(created, Failed):
            raise CommitError(
                None, LedgerError(created.operation, created.reason), tracker.orphans()
            )
        logger.info(
            "Created collection %s (capability %s)",
            created.collection_id, created.capability_id,
        )
        return created

    async def sync(
        self, directory: str | Path, collection_id: str, capability_id: str
    ) -> SyncOutcome:
        """Incremental update of an existing collection."""
        self._begin()
        tracker = FailureTracker()
        directory = Path(directory)
        try:
            async with self._lock_for(collection_id):
                result = await self._scan(directory)
                remote = await self._fetch_remote(collection_id)
                self._enter(
                    SyncState.DIFFING,
                    events.Diffing(local_count=len(result.files), remote_count=len(remote)),
                )
                delta = diff(result.files, remote)
                logger.info(
                    "Diff for %s: %d added, %d updated, %d deleted, %d unchanged",
                    collection_id, len(delta.added), len(delta.updated),
                    len(delta.deleted), len(delta.unchanged),
                )
                if not delta.has_changes:
                    plan = PublishPlan(collection_id=collection_id)
                    return self._finish(
                        collection_id, capability_id, result, delta, plan, tracker
                    )

                locators = await self._upload(delta.to_upload, result.files, tracker)
                plan = build_update_plan(collection_id, delta, result.files, locators)
                self._enter(
                    SyncState.COMMITTING, events.Committing(mutations=len(plan.mutations))
                )
                return await self._shielded(
                    self._commit_update(
                        capability_id, collection_id, result, delta, plan, tracker
                    )
                )
        except SiteSyncError as e:
            self._fail(str(e), getattr(e, "orphans", ()))
            raise

    async def _commit_update(
        self,
        capability_id: str,
        collection_id: str,
        result: ScanResult,
        delta: DiffResult,
        plan: PublishPlan,
        tracker: FailureTracker,
    ) -> SyncOutcome:
        if not plan.is_empty:
            await self._submit(capability_id, collection_id, plan, tracker)
        return self._finish(collection_id, capability_id, result, delta, plan, tracker)
