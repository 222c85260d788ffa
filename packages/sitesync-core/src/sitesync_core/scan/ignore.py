"""Ignore rules: built-in defaults plus a project-local ignore file."""

from __future__ import annotations

import fnmatch
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from sitesync_core.errors import ScanIoError
from sitesync_core.paths.validator import sanitize_ignore_pattern

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IgnoreRule:
    """One fnmatch pattern.

    Patterns containing ``/`` match against the full relative path (or any
    leading directory prefix of it); others match any single path component.
    A trailing ``/`` restricts the rule to directories.
    """

    pattern: str
    dir_only: bool = False

    @classmethod
    def parse(cls, raw: str) -> IgnoreRule:
        if raw.endswith("/"):
            return cls(pattern=raw.rstrip("/"), dir_only=True)
        return cls(pattern=raw)

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        parts = rel_path.split("/")
        # For a file, only its parent components are directories.
        dir_count = len(parts) if is_dir else len(parts) - 1

        if "/" in self.pattern:
            upto = dir_count if self.dir_only else len(parts)
            return any(
                fnmatch.fnmatch("/".join(parts[:i]), self.pattern)
                for i in range(1, upto + 1)
            )

        candidates = parts[:dir_count] if self.dir_only else parts
        return any(fnmatch.fnmatch(part, self.pattern) for part in candidates)


@dataclass
class IgnoreRules:
    """An ordered set of ignore rules with the file they were read from."""

    rules: list[IgnoreRule] = field(default_factory=list)
    source: Path | None = None

    @classmethod
    def from_patterns(cls, patterns: Iterable[str]) -> IgnoreRules:
        return cls(rules=[IgnoreRule.parse(p) for p in patterns])

    def matches(self, rel_path: str, is_dir: bool = False) -> bool:
        """True if *rel_path* (``/``-separated, no leading slash) is ignored."""
        rel_path = rel_path.strip("/")
        return any(rule.matches(rel_path, is_dir) for rule in self.rules)


def read_ignore_file(path: Path, project_dir: Path) -> list[str]:
    """Read and sanitise patterns from one ignore file.

    Raises:
        ScanIoError: if the file is not valid UTF-8.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ScanIoError(str(path), e) from e
    patterns: list[str] = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("!"):
            logger.warning("Negated ignore patterns are not supported: %s", line)
            continue
        safe = sanitize_ignore_pattern(line, project_dir)
        if safe is not None:
            patterns.append(safe)
    return patterns


def load_ignore_rules(
    project_dir: Path,
    ignore_files: Sequence[str],
    defaults: Iterable[str] = (),
) -> IgnoreRules:
    """Build rules from *defaults* plus the first existing file in *ignore_files*.

    The files are alternatives, not layers: if the primary file exists the
    fallback is never read.
    """
    patterns = list(defaults)
    source: Path | None = None
    for name in ignore_files:
        candidate = project_dir / name
        if candidate.is_file():
            source = candidate
            patterns.extend(read_ignore_file(candidate, project_dir))
            logger.debug("Loaded ignore rules from %s", candidate)
            break

    rules = IgnoreRules.from_patterns(patterns)
    rules.source = source
    return rules
