"""Validation and normalization of user-supplied asset paths.

Every GitHub content path built by the service passes through one of the
normalizers below. They are total: each returns either the canonical
relative path (relative to the asset root, segments joined by ``/``) or
``None`` when the input is invalid.
"""

import re
from typing import Any, List, Optional, Set
from urllib.parse import quote

DEFAULT_ASSETS_ROOT = "assets"
FOLDER_MARKER_NAME = ".gitkeep"

_SEGMENT_PATTERN = re.compile(r"^[A-Za-z0-9._ -]{1,128}$")


def sanitize_path_segment(value: str) -> Optional[str]:
    """Validate a single path segment against the allow-list."""
    if not value or value in (".", ".."):
        return None

    if not _SEGMENT_PATTERN.match(value):
        return None

    return value


def sanitize_asset_name(value: Any) -> Optional[str]:
    """Validate a bare file name: non-empty, not a dot entry, no separators."""
    if not isinstance(value, str):
        return None

    trimmed = value.strip()
    if not trimmed or trimmed in (".", ".."):
        return None

    if "/" in trimmed or "\\" in trimmed:
        return None

    return trimmed


def _strip_assets_root(value: str, assets_root: str) -> Optional[str]:
    """Convert separators and strip the asset root; ``None`` means root itself."""
    normalized = value.replace("\\", "/")
    if normalized == assets_root:
        return None

    if normalized.startswith(f"{assets_root}/"):
        normalized = normalized[len(assets_root) + 1 :]

    return normalized.strip("/")


def _validate_segments(normalized: str) -> Optional[List[str]]:
    segments = [segment.strip() for segment in normalized.split("/")]
    segments = [segment for segment in segments if segment]

    validated = []
    for segment in segments:
        safe_segment = sanitize_path_segment(segment)
        if safe_segment is None:
            return None
        validated.append(safe_segment)

    return validated


def normalize_folder_path(
    value: Any, assets_root: str = DEFAULT_ASSETS_ROOT
) -> Optional[str]:
    """Normalize a folder path; ``None`` or blank input is the root (``""``)."""
    if value is None:
        return ""

    if not isinstance(value, str):
        return None

    trimmed = value.strip()
    if not trimmed:
        return ""

    normalized = _strip_assets_root(trimmed, assets_root)
    if not normalized:
        return ""

    segments = _validate_segments(normalized)
    if segments is None:
        return None

    return "/".join(segments)


def normalize_asset_relative_path(
    value: Any, assets_root: str = DEFAULT_ASSETS_ROOT
) -> Optional[str]:
    """Normalize a file path; unlike a folder, a file can never be the root."""
    if not isinstance(value, str):
        return None

    trimmed = value.strip()
    if not trimmed:
        return None

    normalized = _strip_assets_root(trimmed, assets_root)
    if not normalized:
        return None

    segments = _validate_segments(normalized)
    if not segments:
        return None

    return "/".join(segments)


def parent_folder_path(path: str) -> str:
    index = path.rfind("/")
    if index < 0:
        return ""
    return path[:index]


def file_name_from_path(path: str) -> str:
    return path[path.rfind("/") + 1 :]


def join_relative_path(folder: str, name: str) -> str:
    return f"{folder}/{name}" if folder else name


def join_asset_repo_path(relative_path: str, assets_root: str = DEFAULT_ASSETS_ROOT) -> str:
    """Map a relative asset path back to its full repository path."""
    return f"{assets_root}/{relative_path}" if relative_path else assets_root


def add_folder_with_ancestors(target: Set[str], folder_path: str) -> None:
    """Add ``folder_path`` and every ancestor folder to ``target``."""
    current = folder_path
    while current:
        target.add(current)
        current = parent_folder_path(current)


def quote_repo_path(path: str) -> str:
    """URL-encode each segment of a repository path, keeping separators."""
    return "/".join(quote(segment, safe="") for segment in path.split("/"))
