"""Tests for the sitesync CLI commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from conftest import SITE_FILES, write_tree
from sitesync_cli.cli import app
from sitesync_core.interfaces.ledger import Failed
from sitesync_core.ledgers.memory import MemoryLedger
from sitesync_core.state import load_orphans, load_state
from sitesync_core.stores.memory import MemoryContentStore

runner = CliRunner()


@pytest.fixture
def project(tmp_path: Path, monkeypatch) -> Path:
    """A project dir holding dist/; cwd and home are isolated."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path / "fakehome")
    root = tmp_path / "project"
    write_tree(root / "dist", SITE_FILES)
    return root


@pytest.fixture
def shared(monkeypatch):
    """Make every command use the same in-memory store and ledger."""
    store, ledger = MemoryContentStore(epochs=3), MemoryLedger()
    monkeypatch.setattr("sitesync_cli.cli.create_content_store", lambda cfg: store)
    monkeypatch.setattr("sitesync_cli.cli.create_ledger", lambda cfg: ledger)
    return store, ledger


# ── sitesync validate ────────────────────────────────────────────────


def test_validate_accepts_safe_paths():
    result = runner.invoke(app, ["validate", "/index.html", "/css/site.css"])
    assert result.exit_code == 0
    assert result.output.count("OK") == 2


def test_validate_rejects_traversal():
    result = runner.invoke(app, ["validate", "/index.html", "/../etc/passwd"])
    assert result.exit_code == 1
    assert "REJECTED" in result.output


# ── sitesync scan ────────────────────────────────────────────────────


def test_scan_table(project: Path):
    result = runner.invoke(app, ["scan", str(project / "dist")])
    assert result.exit_code == 0
    assert "/index.html" in result.output
    assert "Files (5)" in result.output


def test_scan_json(project: Path):
    (project.parent / "sitesync.yaml").write_text("log_level: error\n")
    result = runner.invoke(app, ["scan", str(project / "dist"), "--json"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert [f["path"] for f in data["files"]] == sorted("/" + p for p in SITE_FILES)
    assert "source" not in data["files"][0]
    assert data["rejected"] == []


def test_scan_missing_directory(project: Path):
    result = runner.invoke(app, ["scan", str(project / "nope")])
    assert result.exit_code == 1
    assert "not a directory" in result.output


# ── sitesync deploy ──────────────────────────────────────────────────


def test_deploy_saves_state(project: Path):
    result = runner.invoke(app, ["deploy", str(project / "dist"), "--name", "demo"])
    assert result.exit_code == 0, result.output
    assert "Sync Summary" in result.output
    state = load_state(project)
    assert state is not None
    assert state.name == "demo"
    assert state.file_count == len(SITE_FILES)


def test_deploy_refuses_when_already_deployed(project: Path):
    runner.invoke(app, ["deploy", str(project / "dist")])
    first = load_state(project).collection_id

    result = runner.invoke(app, ["deploy", str(project / "dist")])
    assert result.exit_code == 1
    assert "Already deployed" in result.output

    result = runner.invoke(app, ["deploy", str(project / "dist"), "--force"])
    assert result.exit_code == 0
    assert load_state(project).collection_id != first


def test_deploy_commit_failure_records_state_and_orphans(project: Path, monkeypatch):
    class NoSubmit(MemoryLedger):
        async def submit(self, capability_id, collection_id, mutations):
            return Failed(operation="submit", reason="out of gas")

    ledger = NoSubmit()
    monkeypatch.setattr("sitesync_cli.cli.create_ledger", lambda cfg: ledger)
    result = runner.invoke(app, ["deploy", str(project / "dist")])
    assert result.exit_code == 1
    assert "orphaned upload" in result.output

    state = load_state(project)
    assert state is not None and state.file_count == 0
    orphans = load_orphans(project)
    assert len(orphans) == len(SITE_FILES)
    assert {o.collection_id for o in orphans} == {state.collection_id}


# ── sitesync sync ────────────────────────────────────────────────────


def test_sync_without_state_fails(project: Path):
    result = runner.invoke(app, ["sync", str(project / "dist")])
    assert result.exit_code == 1
    assert "no deployment recorded" in result.output


def test_sync_applies_changes(project: Path, shared):
    _, ledger = shared
    dist = project / "dist"
    assert runner.invoke(app, ["deploy", str(dist)]).exit_code == 0
    coll = load_state(project).collection_id

    (dist / "about.html").unlink()
    (dist / "new.html").write_bytes(b"<p>new</p>")
    result = runner.invoke(app, ["sync", str(dist)])
    assert result.exit_code == 0, result.output
    assert sorted(ledger.resources(coll)) == [
        "/css/site.css", "/img/logo.svg", "/index.html", "/js/app.js", "/new.html",
    ]


def test_sync_unknown_collection(project: Path):
    result = runner.invoke(app, [
        "sync", str(project / "dist"), "--collection", "0xmissing", "--capability", "0xcap",
    ])
    assert result.exit_code == 1
    assert "failed to fetch" in result.output


def test_bad_config_file_exits(project: Path):
    bad = project.parent / "bad.yaml"
    bad.write_text("store:\n  epochs: 0\n")
    result = runner.invoke(app, ["-c", str(bad), "validate", "/a"])
    assert result.exit_code == 1
    assert "Invalid config" in result.output


# ── sitesync config ──────────────────────────────────────────────────


def test_config_init_then_show(project: Path):
    result = runner.invoke(app, ["config", "init"])
    assert result.exit_code == 0
    assert (project.parent / "sitesync.yaml").is_file()

    result = runner.invoke(app, ["config", "init"])
    assert result.exit_code == 1
    assert "already exists" in result.output

    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 0
    assert "publisher_url" in result.output
