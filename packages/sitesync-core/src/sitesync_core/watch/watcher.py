"""Debounced directory watcher that triggers a sync once edits settle."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

_IGNORE_PARTS = {".git", "node_modules", "__pycache__", ".sitesync"}


def _should_ignore(path: str) -> bool:
    """Return True if the path contains any ignored directory component."""
    return any(part in _IGNORE_PARTS for part in Path(path).parts)


class _ChangeHandler(FileSystemEventHandler):
    """Marks the tree dirty and records when the last event arrived."""

    def __init__(self, watcher: SiteWatcher) -> None:
        super().__init__()
        self._watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or _should_ignore(event.src_path):
            return
        self._watcher.mark_dirty(event.src_path)


class SiteWatcher:
    """Watches a deploy directory and calls ``on_change`` after a quiet period.

    Bursts of events (editor save patterns, build tools rewriting ``dist/``)
    collapse into one callback fired ``debounce_seconds`` after the last
    event. The callback runs on the watcher's timer thread; an exception
    from it is logged and watching continues.
    """

    def __init__(
        self,
        directory: Path,
        on_change: Callable[[set[str]], None],
        debounce_seconds: float = 2.0,
    ) -> None:
        self.directory = Path(directory).resolve()
        self.debounce_seconds = debounce_seconds
        self._on_change = on_change
        self._lock = threading.Lock()
        self._changed: set[str] = set()
        self._timer: threading.Timer | None = None
        self._observer: Observer | None = None
        self._handler = _ChangeHandler(self)

    @property
    def pending(self) -> set[str]:
        """Paths changed since the last flush."""
        with self._lock:
            return set(self._changed)

    def mark_dirty(self, path: str) -> None:
        with self._lock:
            self._changed.add(path)
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce_seconds, self.flush)
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> None:
        """Hand accumulated changes to the callback and reset."""
        with self._lock:
            changed, self._changed = self._changed, set()
            self._timer = None
        if not changed:
            return
        logger.info("%d change(s) under %s; syncing", len(changed), self.directory)
        try:
            self._on_change(changed)
        except Exception:
            logger.exception("Sync after change failed; still watching %s", self.directory)

    def start(self) -> None:
        """Begin watching the directory recursively."""
        if self._observer is not None:
            return
        self._observer = Observer()
        self._observer.schedule(self._handler, str(self.directory), recursive=True)
        self._observer.start()
        logger.info("Watching %s for changes", self.directory)

    def stop(self) -> None:
        """Stop watching and cancel any pending flush."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=5)
        self._observer = None
        logger.info("Stopped watching %s", self.directory)
