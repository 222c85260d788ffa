"""Path and identifier validation."""

from sitesync_core.paths.validator import (
    HOMOGLYPH_DOTS,
    MAX_PATH_LENGTH,
    is_valid_resource_path,
    sanitize_ignore_pattern,
    to_canonical_path,
    validate_resource_path,
)

__all__ = [
    "HOMOGLYPH_DOTS",
    "MAX_PATH_LENGTH",
    "is_valid_resource_path",
    "sanitize_ignore_pattern",
    "to_canonical_path",
    "validate_resource_path",
]
