"""Tests for the diff engine."""

from __future__ import annotations

import random

from conftest import file_record, resource_record
from sitesync_core.sync import DiffResult, diff


def _local(**files: bytes):
    return {f"/{k}": file_record(f"/{k}", v) for k, v in files.items()}


def _remote(**files: bytes):
    return {f"/{k}": resource_record(f"/{k}", v) for k, v in files.items()}


# ── Scenarios ────────────────────────────────────────────────────────


def test_first_deploy_everything_added():
    result = diff(_local(a=b"1", b=b"2"), {})
    assert result.added == ("/a", "/b")
    assert result.updated == result.deleted == result.unchanged == ()
    assert result.has_changes


def test_no_changes():
    result = diff(_local(a=b"1"), _remote(a=b"1"))
    assert result.unchanged == ("/a",)
    assert not result.has_changes
    assert result.to_upload == ()


def test_mixed_changes():
    local = _local(keep=b"same", edit=b"new", fresh=b"hello")
    remote = _remote(keep=b"same", edit=b"old", gone=b"bye")
    result = diff(local, remote)
    assert result == DiffResult(
        added=("/fresh",),
        updated=("/edit",),
        deleted=("/gone",),
        unchanged=("/keep",),
    )
    assert result.to_upload == ("/edit", "/fresh")


def test_everything_deleted():
    result = diff({}, _remote(a=b"1", b=b"2"))
    assert result.deleted == ("/a", "/b")
    assert result.to_upload == ()


def test_hash_is_only_signal():
    local = {"/a": file_record("/a", b"x", content_type="text/plain")}
    remote = {"/a": resource_record("/a", b"x").model_copy(update={"size": 999})}
    assert diff(local, remote).unchanged == ("/a",)


def test_outputs_sorted():
    local = _local(c=b"1", a=b"2", b=b"3")
    assert diff(local, {}).added == ("/a", "/b", "/c")


# ── Properties ───────────────────────────────────────────────────────


def test_diff_of_identical_state_is_all_unchanged():
    local = _local(a=b"1", b=b"2", c=b"3")
    remote = {p: resource_record(p, b"").model_copy(update={"hash": r.hash}) for p, r in local.items()}
    result = diff(local, remote)
    assert result.unchanged == tuple(sorted(local))
    assert not result.has_changes


def test_sets_disjoint_and_cover_both_sides():
    rng = random.Random(1234)
    names = [f"f{i}" for i in range(40)]
    for _ in range(50):
        local = {
            f"/{n}": file_record(f"/{n}", bytes([rng.randrange(3)]))
            for n in names if rng.random() < 0.6
        }
        remote = {
            f"/{n}": resource_record(f"/{n}", bytes([rng.randrange(3)]))
            for n in names if rng.random() < 0.6
        }
        r = diff(local, remote)
        groups = [set(r.added), set(r.updated), set(r.deleted), set(r.unchanged)]
        for i, a in enumerate(groups):
            for b in groups[i + 1:]:
                assert not a & b
        assert set(r.added) | set(r.updated) | set(r.unchanged) == set(local)
        assert set(r.deleted) | set(r.updated) | set(r.unchanged) == set(remote)
