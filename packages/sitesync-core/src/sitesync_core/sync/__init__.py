"""Diff engine: local scan vs. remote collection state."""

from sitesync_core.sync.differ import diff
from sitesync_core.sync.models import DiffResult, ResourceRecord

__all__ = ["DiffResult", "ResourceRecord", "diff"]
