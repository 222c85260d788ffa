"""Tests for resource path and ignore pattern validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from sitesync_core.errors import PathRejected
from sitesync_core.paths import (
    MAX_PATH_LENGTH,
    is_valid_resource_path,
    sanitize_ignore_pattern,
    to_canonical_path,
    validate_resource_path,
)


# ── validate_resource_path: accepted ─────────────────────────────────


@pytest.mark.parametrize(
    "raw",
    [
        "/",
        "/index.html",
        "/api/users",
        "/api//users",
        "/search?q=test",
        "/search?a=1&b=2",
        "/page#section",
        "/api/users[0]",
        "/api/{id}",
        "/api/用户",
        "/a%20b.html",
        "/..hidden",
        "/a/./b",
    ],
)
def test_accepts_legitimate_paths(raw: str):
    assert is_valid_resource_path(raw)
    assert validate_resource_path(raw) == raw


def test_accepts_long_path_at_limit():
    raw = "/" + "a" * (MAX_PATH_LENGTH - 1)
    assert len(raw) == MAX_PATH_LENGTH
    assert is_valid_resource_path(raw)


# ── validate_resource_path: rejected ─────────────────────────────────


@pytest.mark.parametrize(
    "raw",
    [
        # traversal
        "../../../etc/passwd",
        "../config.json",
        "/api/../admin",
        "/../admin",
        "/api/..",
        "/api/../admin/users",
        "..//admin",
        # percent-encoding
        "/api/..%2f..%2fadmin",
        "%252e%252e%252f",
        "/api/%2e%2e/admin",
        "%c0%2e%c0%2e/",
        "/a%zz",
        "/trailing%",
        # backslashes and drives
        "..\\..\\..\\etc\\passwd",
        "/api\\..\\admin",
        "\\\\\\etc\\passwd",
        "C:\\Windows\\System32",
        "c:\\windows\\system32",
        "\\\\server\\share",
        "C:/Windows",
        # dots
        "....//....//etc",
        "/a...b",
        "/\uff0e\uff0e/admin",
        "/\u2024\u2024/admin",
        "/\u3002/x",
        # NUL and control bytes
        "/api\x00/../admin",
        "/admin\x00.html",
        "/\x00\x00admin",
        "/a%00b",
        "/line\nbreak",
        "/tab\there",
        "/del\x7f",
        # shell metacharacters
        "/api; rm -rf /",
        "/api | cat /etc/passwd",
        "/api/`whoami`",
        "/api/$HOME",
        "/api/$(cat /etc/passwd)",
        "/API/$(WhOaMi)",
        "/api/<(ls)",
        # combinations
        "../etc; cat passwd",
        "%2e%2e/admin; whoami",
        "admin\x00/../etc",
    ],
)
def test_rejects_hostile_paths(raw: str):
    assert not is_valid_resource_path(raw)
    with pytest.raises(PathRejected):
        validate_resource_path(raw)


def test_rejects_over_length():
    raw = "/" + "a" * MAX_PATH_LENGTH
    with pytest.raises(PathRejected, match="longer than"):
        validate_resource_path(raw)


def test_rejects_long_path_with_hidden_traversal():
    assert not is_valid_resource_path("/" + "a" * 9990 + "/../etc")


def test_rejection_carries_raw_and_reason():
    with pytest.raises(PathRejected) as exc:
        validate_resource_path("/api/$HOME")
    assert exc.value.raw == "/api/$HOME"
    assert "shell" in exc.value.reason


def test_rejection_message_is_truncated():
    raw = "../" * 5000
    with pytest.raises(PathRejected) as exc:
        validate_resource_path(raw)
    assert len(str(exc.value)) < 300


def test_path_rejected_is_value_error():
    with pytest.raises(ValueError):
        validate_resource_path("/../x")


def test_rejects_lone_surrogate():
    # What os.fsdecode yields for a filename that is not valid UTF-8
    with pytest.raises(PathRejected, match="not valid UTF-8"):
        validate_resource_path("/bad\udcffname.txt")


# ── to_canonical_path ────────────────────────────────────────────────


def test_canonical_adds_leading_slash():
    assert to_canonical_path("css/site.css") == "/css/site.css"


def test_canonical_collapses_extra_leading_slashes():
    assert to_canonical_path("//index.html") == "/index.html"


def test_canonical_nfc_normalizes():
    decomposed = "cafe\u0301.html"
    assert to_canonical_path(decomposed) == "/caf\u00e9.html"


def test_canonical_rejects_invalid():
    with pytest.raises(PathRejected):
        to_canonical_path("a;b.html")


# ── sanitize_ignore_pattern ──────────────────────────────────────────


@pytest.mark.parametrize("pattern", ["node_modules", "src/temp", "*.log", "build/", "a" * 1000])
def test_ignore_pattern_accepted(tmp_path: Path, pattern: str):
    assert sanitize_ignore_pattern(pattern, tmp_path) == pattern


@pytest.mark.parametrize(
    "pattern",
    [
        "../../../etc/passwd",
        "../config",
        "./../etc/passwd",
        "..%2f..%2f..%2fetc/passwd",
        "..%2f../etc/passwd",
        "%252e%252e%252f",
        "%2e%2e/..%2f",
        "....//....//etc/passwd",
        "..\\..\\..\\etc\\passwd",
        "foo\\../bar/../etc",
        "..//etc/passwd",
        ".../",
        "/etc/passwd",
        "C:\\Windows\\System32",
        "\\\\share\\folder",
        "/home/../etc/passwd",
        "foo\x00/../etc/passwd",
        "../etc/passwd\x00.txt",
        "\u2024\u2024/etc",
        "%c0%2e%c0%2e/",
        "\uff0e\uff0e/",
        "../" * 5000,
        "a" * 9990 + "/../etc",
        "link/../../etc",
        "normal/path/../../../../../../etc",
        "foo/../bar/../../etc",
    ],
)
def test_ignore_pattern_rejected(tmp_path: Path, pattern: str):
    assert sanitize_ignore_pattern(pattern, tmp_path) is None


def test_ignore_pattern_rejection_is_logged(tmp_path: Path, caplog):
    with caplog.at_level("WARNING"):
        sanitize_ignore_pattern("../secrets", tmp_path)
    assert "unsafe ignore pattern" in caplog.text
