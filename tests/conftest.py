"""Shared test fixtures for sitesync."""

from pathlib import Path

import pytest

from sitesync_core.config.models import (
    LedgerConfig,
    ScanConfig,
    SiteSyncConfig,
    StoreConfig,
)
from sitesync_core.ledgers.memory import MemoryLedger
from sitesync_core.scan.hashing import compute_hash
from sitesync_core.scan.models import FileRecord
from sitesync_core.stores.memory import MemoryContentStore
from sitesync_core.sync.models import ResourceRecord


SITE_FILES = {
    "index.html": b"<h1>home</h1>",
    "about.html": b"<h1>about</h1>",
    "css/site.css": b"body { color: red; }",
    "js/app.js": b"console.log('hi');",
    "img/logo.svg": b"<svg/>",
}


def write_tree(root: Path, files: dict[str, bytes]) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    for rel, data in files.items():
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    return root


def file_record(path: str, data: bytes, content_type: str = "text/html") -> FileRecord:
    return FileRecord(path=path, hash=compute_hash(data), size=len(data), content_type=content_type)


def resource_record(path: str, data: bytes, locator: str = "blob") -> ResourceRecord:
    return ResourceRecord(
        path=path, content_locator=locator, hash=compute_hash(data), size=len(data)
    )


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """A small built site at <tmp>/project/dist."""
    return write_tree(tmp_path / "project" / "dist", SITE_FILES)


@pytest.fixture
def config() -> SiteSyncConfig:
    """Small batches so batching paths are exercised with few files."""
    return SiteSyncConfig(
        scan=ScanConfig(batch_size=2),
        store=StoreConfig(upload_batch_size=2),
        ledger=LedgerConfig(page_size=2, max_mutations_per_tx=3),
    )


@pytest.fixture
def store() -> MemoryContentStore:
    return MemoryContentStore(epochs=5)


@pytest.fixture
def ledger() -> MemoryLedger:
    return MemoryLedger()
