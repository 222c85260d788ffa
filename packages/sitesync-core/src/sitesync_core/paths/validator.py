"""Validation of untrusted path-like strings.

Every path that crosses a filesystem or protocol boundary passes through
:func:`validate_resource_path` first. The checks run in a fixed order and the
first failure wins; see the individual comments for what each one blocks.
"""

from __future__ import annotations

import logging
import os
import posixpath
import re
import unicodedata
from pathlib import Path
from urllib.parse import unquote

from sitesync_core.errors import PathRejected

logger = logging.getLogger(__name__)

MAX_PATH_LENGTH = 10_000

# Characters that render like "." but slip past ASCII dot checks:
# fullwidth full stop, one dot leader, ideographic full stop,
# small full stop, halfwidth ideographic full stop.
HOMOGLYPH_DOTS = frozenset("\uff0e\u2024\u3002\ufe52\uff61")

_VIRTUAL_ROOT = "/virtual_root"

_MALFORMED_PERCENT_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")
_WINDOWS_DRIVE_RE = re.compile(r"^[A-Za-z]:")
_TRIPLE_DOT_RE = re.compile(r"\.{3,}")
_TRAVERSAL_SEGMENT_RE = re.compile(r"(?:^|[/\\])\.\.(?:[/\\]|$)")
# ? & # [] {} are legitimate in web paths and stay allowed.
_SHELL_META_RE = re.compile(r"[;|`$]|<\(|\$\(")


def _decode_fixed_point(raw: str) -> str:
    """Percent-decode until the value stops changing.

    Raises PathRejected on a malformed escape or invalid UTF-8 (e.g. the
    overlong ``%c0%2e`` encoding of ".").
    """
    decoded = raw
    while True:
        if _MALFORMED_PERCENT_RE.search(decoded):
            raise PathRejected(raw, "malformed percent-encoding")
        try:
            nxt = unquote(decoded, errors="strict")
        except UnicodeError as e:
            raise PathRejected(raw, "invalid percent-encoded UTF-8") from e
        if nxt == decoded:
            return decoded
        decoded = nxt


def _decode_and_screen(raw: str) -> str:
    """Shared prefix of both validators: length, decode, NFC, bytes, dots."""
    if len(raw) > MAX_PATH_LENGTH:
        raise PathRejected(raw, f"longer than {MAX_PATH_LENGTH} characters")

    candidate = unicodedata.normalize("NFC", _decode_fixed_point(raw))

    try:
        # Undecodable filenames arrive as lone surrogates from os.fsdecode
        candidate.encode("utf-8")
    except UnicodeEncodeError as e:
        raise PathRejected(raw, "not valid UTF-8") from e
    if "\x00" in candidate:
        raise PathRejected(raw, "contains NUL byte")
    if _CONTROL_RE.search(candidate):
        raise PathRejected(raw, "contains control character")
    if any(ch in HOMOGLYPH_DOTS for ch in candidate):
        raise PathRejected(raw, "contains a look-alike dot character")
    if _WINDOWS_DRIVE_RE.match(candidate):
        raise PathRejected(raw, "absolute Windows path")
    if candidate.startswith("\\"):
        raise PathRejected(raw, "UNC path")
    if "\\" in candidate:
        raise PathRejected(raw, "contains backslash")
    if _TRIPLE_DOT_RE.search(candidate):
        raise PathRejected(raw, "contains three or more consecutive dots")
    # Must run before any normalisation: normpath collapses ".." silently.
    if _TRAVERSAL_SEGMENT_RE.search(candidate):
        raise PathRejected(raw, "contains '..' path segment")
    return candidate


def validate_resource_path(raw: str) -> str:
    """Validate a resource path, returning it unchanged on success.

    Raises:
        PathRejected: if any check fails.
    """
    candidate = _decode_and_screen(raw)

    if _SHELL_META_RE.search(candidate):
        raise PathRejected(raw, "contains shell metacharacter")

    stripped = candidate[1:] if candidate.startswith("/") else candidate
    resolved = posixpath.normpath(posixpath.join(_VIRTUAL_ROOT, stripped))
    if resolved != _VIRTUAL_ROOT and not resolved.startswith(_VIRTUAL_ROOT + "/"):
        raise PathRejected(raw, "resolves outside the site root")

    return raw


def is_valid_resource_path(raw: str) -> bool:
    """Boolean form of :func:`validate_resource_path`."""
    try:
        validate_resource_path(raw)
    except PathRejected:
        return False
    return True


def to_canonical_path(relative: str) -> str:
    """Build a canonical resource path from a path relative to a scan root.

    Separators become ``/``, exactly one leading ``/`` is enforced, and the
    result is validated and NFC-normalised.
    """
    posix = relative.replace(os.sep, "/") if os.sep != "/" else relative
    canonical = "/" + posix.lstrip("/")
    validate_resource_path(canonical)
    return unicodedata.normalize("NFC", canonical)


def sanitize_ignore_pattern(pattern: str, project_dir: Path) -> str | None:
    """Validate one ignore pattern read from a project-local file.

    Same decoding and byte-level checks as resource paths, but the final
    containment check resolves against the real project directory. Returns
    the pattern, or None if it was rejected.
    """
    try:
        candidate = _decode_and_screen(pattern)
        if candidate.startswith("/"):
            raise PathRejected(pattern, "absolute pattern")
        root = Path(project_dir).resolve()
        if not (root / candidate).resolve().is_relative_to(root):
            raise PathRejected(pattern, "resolves outside the project directory")
    except PathRejected as e:
        logger.warning("Ignoring unsafe ignore pattern: %s", e)
        return None
    return pattern
