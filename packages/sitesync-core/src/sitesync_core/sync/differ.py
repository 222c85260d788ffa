"""Reconcile local file records against a collection's remote resources."""

from __future__ import annotations

from collections.abc import Mapping

from sitesync_core.scan.models import FileRecord
from sitesync_core.sync.models import DiffResult, ResourceRecord


def diff(
    local: Mapping[str, FileRecord],
    remote: Mapping[str, ResourceRecord],
) -> DiffResult:
    """Compare *local* against *remote* by content hash.

    Size or content-type differences alone never mark a path as updated;
    the hash is the only identity-of-content signal. Pure, no I/O.
    """
    local_keys = set(local)
    remote_keys = set(remote)

    added = sorted(local_keys - remote_keys)
    deleted = sorted(remote_keys - local_keys)
    updated: list[str] = []
    unchanged: list[str] = []

    for p in sorted(local_keys & remote_keys):
        if local[p].hash != remote[p].hash:
            updated.append(p)
        else:
            unchanged.append(p)

    return DiffResult(
        added=tuple(added),
        updated=tuple(updated),
        deleted=tuple(deleted),
        unchanged=tuple(unchanged),
    )
