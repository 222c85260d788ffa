"""Tests for the debounced site watcher."""

import logging
import threading
import time
from pathlib import Path

from sitesync_core.watch import SiteWatcher


def _wait_for(predicate, timeout: float = 3.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return False


# ── Debounce (no observer) ──────────────────────────────────────────


class TestDebounce:
    def test_burst_collapses_into_one_callback(self, tmp_path: Path):
        calls: list[set[str]] = []
        watcher = SiteWatcher(tmp_path, calls.append, debounce_seconds=0.1)
        for name in ("a.html", "b.html", "a.html"):
            watcher.mark_dirty(str(tmp_path / name))
        assert watcher.pending == {str(tmp_path / "a.html"), str(tmp_path / "b.html")}

        assert _wait_for(lambda: calls)
        time.sleep(0.2)
        assert len(calls) == 1
        assert calls[0] == {str(tmp_path / "a.html"), str(tmp_path / "b.html")}
        assert watcher.pending == set()

    def test_flush_without_changes_is_silent(self, tmp_path: Path):
        calls: list[set[str]] = []
        SiteWatcher(tmp_path, calls.append).flush()
        assert calls == []

    def test_callback_error_is_logged(self, tmp_path: Path, caplog):
        def boom(changed: set[str]) -> None:
            raise RuntimeError("ledger down")

        watcher = SiteWatcher(tmp_path, boom)
        watcher.mark_dirty(str(tmp_path / "x.html"))
        with caplog.at_level(logging.ERROR):
            watcher.flush()
        assert "Sync after change failed" in caplog.text
        watcher.stop()

    def test_stop_cancels_pending_flush(self, tmp_path: Path):
        calls: list[set[str]] = []
        watcher = SiteWatcher(tmp_path, calls.append, debounce_seconds=0.2)
        watcher.mark_dirty(str(tmp_path / "x.html"))
        watcher.stop()
        time.sleep(0.4)
        assert calls == []


# ── With a live observer ────────────────────────────────────────────


class TestSiteWatcher:
    def test_detects_file_changes(self, tmp_path: Path):
        fired = threading.Event()
        seen: list[set[str]] = []

        def on_change(changed: set[str]) -> None:
            seen.append(changed)
            fired.set()

        watcher = SiteWatcher(tmp_path, on_change, debounce_seconds=0.1)
        watcher.start()
        try:
            # Give the observer a moment to spin up
            time.sleep(0.3)
            (tmp_path / "index.html").write_text("<h1>hi</h1>")
            assert fired.wait(timeout=3.0), "change not detected"
            assert any("index.html" in p for p in seen[0])
        finally:
            watcher.stop()

    def test_ignores_state_dir(self, tmp_path: Path):
        (tmp_path / ".sitesync").mkdir()
        watcher = SiteWatcher(tmp_path, lambda changed: None, debounce_seconds=5)
        watcher.start()
        try:
            time.sleep(0.3)
            (tmp_path / ".sitesync" / "deployment.json").write_text("{}")
            time.sleep(0.5)
            assert not any(".sitesync" in p for p in watcher.pending)
        finally:
            watcher.stop()

    def test_start_is_idempotent(self, tmp_path: Path):
        watcher = SiteWatcher(tmp_path, lambda changed: None)
        watcher.start()
        observer = watcher._observer
        watcher.start()
        assert watcher._observer is observer
        watcher.stop()
        assert watcher._observer is None
