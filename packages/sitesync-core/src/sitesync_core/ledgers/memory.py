"""In-process ledger with capability checks and atomic transactions."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field

from sitesync_core.errors import LedgerError
from sitesync_core.interfaces.ledger import Created, Failed, Mutated, ResourcePage
from sitesync_core.publish.models import (
    AddResource,
    Create,
    DeleteResource,
    Mutation,
    UpdateResource,
)
from sitesync_core.sync.models import ResourceRecord

logger = logging.getLogger(__name__)


class _Abort(Exception):
    """Internal: a mutation was rejected and the transaction rolls back."""


@dataclass
class _Collection:
    name: str
    capability_id: str
    resources: dict[str, ResourceRecord] = field(default_factory=dict)


def _new_id() -> str:
    return "0x" + uuid.uuid4().hex


class MemoryLedger:
    """Dict-backed ledger.

    Mutations are idempotent at the path level: adding or updating a path
    whose stored hash already equals the proposed one changes nothing, and
    deleting an absent path is a no-op. ``submit`` applies all mutations or
    none.
    """

    def __init__(self) -> None:
        self._collections: dict[str, _Collection] = {}
        self.transactions: list[tuple[str, tuple[Mutation, ...]]] = []

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _authorize(self, capability_id: str, collection_id: str) -> _Collection:
        coll = self._collections.get(collection_id)
        if coll is None:
            raise _Abort(f"unknown collection {collection_id}")
        if coll.capability_id != capability_id:
            raise _Abort(f"capability {capability_id} does not control {collection_id}")
        return coll

    @staticmethod
    def _apply(resources: dict[str, ResourceRecord], m: Mutation) -> bool:
        """Apply one mutation in place. Returns False for a no-op."""
        if isinstance(m, AddResource):
            existing = resources.get(m.path)
            if existing is not None:
                if existing.hash == m.hash:
                    return False
                raise _Abort(f"resource {m.path} already exists")
            resources[m.path] = ResourceRecord(
                path=m.path,
                content_locator=m.locator,
                hash=m.hash,
                size=m.size,
                content_type=m.content_type,
            )
            return True
        if isinstance(m, UpdateResource):
            existing = resources.get(m.path)
            if existing is None:
                raise _Abort(f"no resource at {m.path}")
            if existing.hash == m.hash:
                return False
            resources[m.path] = existing.model_copy(
                update={"content_locator": m.locator, "hash": m.hash, "size": m.size}
            )
            return True
        if isinstance(m, DeleteResource):
            return resources.pop(m.path, None) is not None
        if isinstance(m, Create):
            raise _Abort("Create must be submitted through create_collection")
        raise _Abort(f"unsupported mutation {m!r}")

    def _transact(
        self, operation: str, capability_id: str, collection_id: str,
        mutations: Sequence[Mutation],
    ) -> Mutated | Failed:
        try:
            coll = self._authorize(capability_id, collection_id)
            staged = dict(coll.resources)
            applied = sum(1 for m in mutations if self._apply(staged, m))
        except _Abort as e:
            logger.warning("Ledger rejected %s on %s: %s", operation, collection_id, e)
            return Failed(operation=operation, reason=str(e))
        coll.resources = staged
        digest = _new_id()
        self.transactions.append((digest, tuple(mutations)))
        return Mutated(
            collection_id=collection_id,
            applied=applied,
            noop=len(mutations) - applied,
            digest=digest,
        )

    # ------------------------------------------------------------------
    # Ledger protocol
    # ------------------------------------------------------------------

    async def create_collection(self, name: str) -> Created | Failed:
        if not name.strip():
            return Failed(operation="create_collection", reason="name cannot be empty")
        collection_id, capability_id = _new_id(), _new_id()
        self._collections[collection_id] = _Collection(name=name, capability_id=capability_id)
        logger.info("Created collection %s (%s)", collection_id, name)
        return Created(collection_id=collection_id, capability_id=capability_id, digest=_new_id())

    async def add_resource(
        self, capability_id: str, collection_id: str, path: str,
        locator: str, hash: str, size: int, content_type: str,
    ) -> Mutated | Failed:
        m = AddResource(path=path, locator=locator, hash=hash, size=size, content_type=content_type)
        return self._transact("add_resource", capability_id, collection_id, [m])

    async def update_resource(
        self, capability_id: str, collection_id: str, path: str,
        locator: str, hash: str, size: int,
    ) -> Mutated | Failed:
        m = UpdateResource(path=path, locator=locator, hash=hash, size=size)
        return self._transact("update_resource", capability_id, collection_id, [m])

    async def delete_resource(
        self, capability_id: str, collection_id: str, path: str
    ) -> Mutated | Failed:
        return self._transact(
            "delete_resource", capability_id, collection_id, [DeleteResource(path=path)]
        )

    async def delete_resources(
        self, capability_id: str, collection_id: str, paths: Sequence[str]
    ) -> Mutated | Failed:
        return self._transact(
            "delete_resources", capability_id, collection_id,
            [DeleteResource(path=p) for p in paths],
        )

    async def list_resources(
        self, collection_id: str, cursor: str | None = None, limit: int = 50
    ) -> ResourcePage:
        coll = self._collections.get(collection_id)
        if coll is None:
            raise LedgerError("list_resources", f"unknown collection {collection_id}")
        paths = sorted(coll.resources)
        if cursor is not None:
            paths = [p for p in paths if p > cursor]
        page = paths[:limit]
        next_cursor = page[-1] if len(paths) > limit else None
        return ResourcePage(
            resources=[coll.resources[p] for p in page],
            next_cursor=next_cursor,
        )

    async def submit(
        self, capability_id: str, collection_id: str, mutations: Sequence[Mutation]
    ) -> Mutated | Failed:
        return self._transact("submit", capability_id, collection_id, mutations)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def resources(self, collection_id: str) -> dict[str, ResourceRecord]:
        """Snapshot of a collection's current resources."""
        return dict(self._collections[collection_id].resources)
