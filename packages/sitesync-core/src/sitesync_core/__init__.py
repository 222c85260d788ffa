"""sitesync core - incremental content-addressed deployment of static sites."""

from sitesync_core.config import SiteSyncConfig, load_config
from sitesync_core.errors import SiteSyncError
from sitesync_core.orchestrator import SyncOrchestrator, SyncOutcome
from sitesync_core.paths import is_valid_resource_path, validate_resource_path
from sitesync_core.scan import DirectoryScanner
from sitesync_core.sync import diff

__version__ = "0.1.0"

__all__ = [
    "DirectoryScanner",
    "SiteSyncConfig",
    "SiteSyncError",
    "SyncOrchestrator",
    "SyncOutcome",
    "diff",
    "is_valid_resource_path",
    "load_config",
    "validate_resource_path",
]
