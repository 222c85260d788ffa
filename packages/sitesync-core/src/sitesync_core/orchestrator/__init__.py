"""Orchestrator: drives scan, diff, upload and commit for one collection."""

from sitesync_core.orchestrator import events
from sitesync_core.orchestrator.engine import SyncOrchestrator, SyncOutcome, SyncState
from sitesync_core.orchestrator.orphans import FailureTracker, OrphanRecord

__all__ = [
    "FailureTracker",
    "OrphanRecord",
    "SyncOrchestrator",
    "SyncOutcome",
    "SyncState",
    "events",
]
