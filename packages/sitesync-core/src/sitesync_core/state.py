"""Project-local deployment state under ``.sitesync/``.

``deployment.json`` remembers which collection (and capability) a project
was deployed to, so later syncs need no ids on the command line.
``orphans.json`` accumulates orphaned uploads from failed attempts for manual
recovery; nothing reads it back automatically.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from sitesync_core.config.models import StateConfig
from sitesync_core.errors import StateError
from sitesync_core.orchestrator.orphans import OrphanRecord

logger = logging.getLogger(__name__)

STATE_FILE = "deployment.json"
ORPHANS_FILE = "orphans.json"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DeploymentState(BaseModel):
    collection_id: str
    capability_id: str
    name: str
    network: str = "testnet"
    deployed_at: datetime = Field(default_factory=_utcnow)
    file_count: int = 0
    total_size: int = 0


class OrphanEntry(BaseModel):
    """An orphan as persisted, with the failure that produced it."""

    path: str
    content_locator: str
    expiry: int | None = None
    collection_id: str | None = None
    reason: str = ""
    recorded_at: datetime = Field(default_factory=_utcnow)


def state_dir(project_dir: Path, config: StateConfig | None = None) -> Path:
    config = config or StateConfig()
    return Path(project_dir) / config.directory


def _write_atomic(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(text)
    tmp.replace(path)


def save_state(
    project_dir: Path, state: DeploymentState, config: StateConfig | None = None
) -> Path:
    path = state_dir(project_dir, config) / STATE_FILE
    _write_atomic(path, state.model_dump_json(indent=2))
    logger.info("Saved deployment state to %s", path)
    return path


def load_state(
    project_dir: Path, config: StateConfig | None = None
) -> DeploymentState | None:
    """Load the saved state, or None when the project was never deployed."""
    path = state_dir(project_dir, config) / STATE_FILE
    if not path.is_file():
        return None
    try:
        return DeploymentState.model_validate_json(path.read_text())
    except (OSError, ValidationError) as e:
        raise StateError(str(path), e) from e


def load_orphans(
    project_dir: Path, config: StateConfig | None = None
) -> list[OrphanEntry]:
    path = state_dir(project_dir, config) / ORPHANS_FILE
    if not path.is_file():
        return []
    try:
        raw = json.loads(path.read_text())
        return [OrphanEntry.model_validate(item) for item in raw]
    except (OSError, json.JSONDecodeError, TypeError, ValidationError) as e:
        raise StateError(str(path), e) from e


def append_orphans(
    project_dir: Path,
    orphans: Iterable[OrphanRecord],
    collection_id: str | None = None,
    reason: str = "",
    config: StateConfig | None = None,
) -> Path | None:
    """Append orphan records to ``orphans.json``. Returns None if there were none."""
    new = [
        OrphanEntry(
            path=o.path,
            content_locator=o.content_locator,
            expiry=o.expiry,
            collection_id=collection_id,
            reason=reason,
        )
        for o in orphans
    ]
    if not new:
        return None
    entries = load_orphans(project_dir, config) + new
    path = state_dir(project_dir, config) / ORPHANS_FILE
    _write_atomic(
        path, json.dumps([e.model_dump(mode="json") for e in entries], indent=2)
    )
    logger.warning("Recorded %d orphaned upload(s) in %s", len(new), path)
    return path
