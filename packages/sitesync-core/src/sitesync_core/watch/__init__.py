"""Watch mode: re-sync a deploy directory when it changes."""

from sitesync_core.watch.watcher import SiteWatcher

__all__ = ["SiteWatcher"]
