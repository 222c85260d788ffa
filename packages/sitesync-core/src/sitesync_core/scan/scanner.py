"""Directory walker and metadata builder."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from sitesync_core.config.models import ScanConfig
from sitesync_core.errors import PathRejected, ScanIoError
from sitesync_core.paths.validator import to_canonical_path
from sitesync_core.scan.content_types import content_type_for
from sitesync_core.scan.hashing import compute_file_hash
from sitesync_core.scan.ignore import IgnoreRules, load_ignore_rules
from sitesync_core.scan.models import FileRecord, ScanResult

logger = logging.getLogger(__name__)


def build_file_record(path: str, source: Path) -> FileRecord:
    """Stat and hash one file on disk."""
    try:
        size = source.stat().st_size
        digest = compute_file_hash(source)
    except OSError as e:
        raise ScanIoError(str(source), e) from e
    logger.debug("Hashed %s (%d bytes)", path, size)
    return FileRecord(
        path=path,
        hash=digest,
        size=size,
        content_type=content_type_for(path),
        source=source,
    )


def resolve_project_root(directory: Path, config: ScanConfig) -> Path:
    """Project directory for a deploy dir: configured, else its parent."""
    if config.project_root:
        return Path(config.project_root).resolve()
    return Path(directory).resolve().parent


class DirectoryScanner:
    """Walks a deploy directory and emits one FileRecord per publishable file.

    The scan is restartable from scratch and keeps no cursor. Paths that fail
    validation are skipped and reported on ``ScanResult.rejected``; I/O
    errors abort the scan with ScanIoError.
    """

    def __init__(self, config: ScanConfig | None = None) -> None:
        self.config = config or ScanConfig()

    # ------------------------------------------------------------------
    # Ignore rules
    # ------------------------------------------------------------------

    def ignore_rules(self, root: Path, project_root: Path | None = None) -> IgnoreRules:
        """Resolve the project directory and load its ignore rules."""
        if project_root is None:
            project_root = resolve_project_root(root, self.config)
        try:
            return load_ignore_rules(
                project_root.resolve(),
                self.config.ignore_files,
                self.config.ignore_patterns,
            )
        except OSError as e:
            raise ScanIoError(getattr(e, "filename", None) or str(project_root), e) from e

    # ------------------------------------------------------------------
    # Scan
    # ------------------------------------------------------------------

    async def scan(self, root: Path, project_root: Path | None = None) -> ScanResult:
        """Scan *root*, hashing files in bounded batches."""
        root = Path(root).resolve()
        if not root.is_dir():
            raise ScanIoError(str(root), NotADirectoryError(f"not a directory: {root}"))

        rules = self.ignore_rules(root, project_root)
        result = ScanResult(root=str(root))
        pending = self._collect(root, rules, result)

        records: list[FileRecord] = []
        size = self.config.batch_size
        for start in range(0, len(pending), size):
            batch = pending[start:start + size]
            records.extend(
                await asyncio.gather(
                    *(asyncio.to_thread(build_file_record, p, src) for p, src in batch)
                )
            )
            # Let progress reporters run between batches
            await asyncio.sleep(0)

        result.files = {r.path: r for r in sorted(records, key=lambda r: r.path)}
        logger.info(
            "Scanned %s: %d file(s), %d ignored, %d rejected",
            root, len(result.files), result.ignored, len(result.rejected),
        )
        return result

    def scan_sync(self, root: Path, project_root: Path | None = None) -> ScanResult:
        """Blocking wrapper around :meth:`scan`."""
        return asyncio.run(self.scan(root, project_root))

    def _collect(
        self, root: Path, rules: IgnoreRules, result: ScanResult
    ) -> list[tuple[str, Path]]:
        """Walk the tree, filter and validate paths. Nothing is hashed here."""

        def _raise(err: OSError) -> None:
            raise err

        pending: list[tuple[str, Path]] = []
        try:
            for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
                base = Path(dirpath)
                rel_dir = base.relative_to(root).as_posix()
                rel_dir = "" if rel_dir == "." else rel_dir

                kept = []
                for d in sorted(dirnames):
                    rel = f"{rel_dir}/{d}" if rel_dir else d
                    if rules.matches(rel, is_dir=True):
                        result.ignored += 1
                    else:
                        kept.append(d)
                dirnames[:] = kept

                for name in sorted(filenames):
                    rel = f"{rel_dir}/{name}" if rel_dir else name
                    if rules.matches(rel):
                        result.ignored += 1
                        continue
                    full = base / name
                    if full.is_symlink():
                        logger.debug("Not following symlink %s", rel)
                        continue
                    if not full.is_file():
                        continue
                    try:
                        path = to_canonical_path(rel)
                    except PathRejected as e:
                        logger.warning("Skipping %s", e)
                        result.rejected.append(e)
                        continue
                    pending.append((path, full))
        except OSError as e:
            raise ScanIoError(getattr(e, "filename", None) or str(root), e) from e
        return pending
