from .loader import load_config
from .models import (
    LedgerConfig,
    ScanConfig,
    SiteSyncConfig,
    StateConfig,
    StoreConfig,
    WatchConfig,
)

__all__ = [
    "LedgerConfig",
    "ScanConfig",
    "SiteSyncConfig",
    "StateConfig",
    "StoreConfig",
    "WatchConfig",
    "load_config",
]
