"""Scan-and-hash pipeline for local deploy directories."""

from sitesync_core.scan.content_types import DEFAULT_CONTENT_TYPE, content_type_for
from sitesync_core.scan.hashing import compute_file_hash, compute_hash
from sitesync_core.scan.ignore import IgnoreRules, load_ignore_rules
from sitesync_core.scan.models import FileRecord, ScanResult
from sitesync_core.scan.scanner import (
    DirectoryScanner,
    build_file_record,
    resolve_project_root,
)

__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "DirectoryScanner",
    "FileRecord",
    "IgnoreRules",
    "ScanResult",
    "build_file_record",
    "compute_file_hash",
    "compute_hash",
    "content_type_for",
    "load_ignore_rules",
    "resolve_project_root",
]
