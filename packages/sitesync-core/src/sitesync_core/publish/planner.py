"""Turn a diff plus uploaded-content locators into a publish plan.

Two protocols are supported:

* full-create: ``build_create_plan`` (phase 1, a lone Create) followed by
  ``build_populate_plan`` (phase 2, one AddResource per local file);
* incremental-update: ``build_update_plan`` from a DiffResult.

Add/update mutations are only emitted for paths that have a content locator.
A changed path without one is recorded as a PartialMetadataSkip instead of
referencing content that was never stored.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from sitesync_core.interfaces.content_store import ContentLocator
from sitesync_core.publish.models import (
    AddResource,
    Create,
    DeleteResource,
    Mutation,
    PartialMetadataSkip,
    PublishPlan,
    UpdateResource,
)
from sitesync_core.scan.models import FileRecord
from sitesync_core.sync.models import DiffResult

logger = logging.getLogger(__name__)

_NO_LOCATOR = "no content locator from upload"
_NO_RECORD = "no local file record"


def build_create_plan(name: str, collection: str = "site") -> PublishPlan:
    """Phase 1 of full-create: a single Create mutation."""
    return PublishPlan(mutations=(Create(collection=collection, name=name),))


def _adds(
    paths: Iterable[str],
    files: Mapping[str, FileRecord],
    locators: Mapping[str, ContentLocator],
    skipped: list[PartialMetadataSkip],
) -> list[Mutation]:
    out: list[Mutation] = []
    for path in sorted(paths):
        record = files.get(path)
        locator = locators.get(path)
        if record is None or locator is None:
            skipped.append(PartialMetadataSkip(
                path=path, reason=_NO_RECORD if record is None else _NO_LOCATOR,
            ))
            continue
        out.append(AddResource(
            path=path,
            locator=locator.blob_id,
            hash=record.hash,
            size=record.size,
            content_type=record.content_type,
        ))
    return out


def _log_skips(skipped: list[PartialMetadataSkip]) -> None:
    for skip in skipped:
        logger.warning("Skipping %s: %s", skip.path, skip.reason)


def build_populate_plan(
    collection_id: str,
    files: Mapping[str, FileRecord],
    locators: Mapping[str, ContentLocator],
) -> PublishPlan:
    """Phase 2 of full-create: add every local file to a fresh collection."""
    skipped: list[PartialMetadataSkip] = []
    mutations = _adds(files.keys(), files, locators, skipped)
    _log_skips(skipped)
    return PublishPlan(
        collection_id=collection_id,
        mutations=tuple(mutations),
        skipped=tuple(skipped),
    )


def build_update_plan(
    collection_id: str,
    diff: DiffResult,
    files: Mapping[str, FileRecord],
    locators: Mapping[str, ContentLocator],
) -> PublishPlan:
    """Incremental update: delete, update, then add; each group sorted by path.

    Unchanged paths produce no mutation.
    """
    skipped: list[PartialMetadataSkip] = []
    mutations: list[Mutation] = [DeleteResource(path=p) for p in sorted(diff.deleted)]

    for path in sorted(diff.updated):
        record = files.get(path)
        locator = locators.get(path)
        if record is None or locator is None:
            skipped.append(PartialMetadataSkip(
                path=path, reason=_NO_RECORD if record is None else _NO_LOCATOR,
            ))
            continue
        mutations.append(UpdateResource(
            path=path,
            locator=locator.blob_id,
            hash=record.hash,
            size=record.size,
        ))

    mutations.extend(_adds(diff.added, files, locators, skipped))
    _log_skips(skipped)
    return PublishPlan(
        collection_id=collection_id,
        mutations=tuple(mutations),
        skipped=tuple(skipped),
    )
