"""Entity identity contract shared by extraction, tracking and rendering layers."""

from __future__ import annotations

import hashlib
from pathlib import PurePath

IDENTITY_SEPARATOR = ":"


def normalize_file_path(file_path: str) -> str:
    """Normalize a repository-relative path into POSIX form.

    Snapshots written on one platform must diff cleanly against snapshots
    written on another, so identity never carries OS-specific separators.

    Args:
        file_path: Path relative to the source root.

    Returns:
        The same path with forward slashes and no leading ``./``.
    """
    normalized = PurePath(file_path).as_posix()
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def build_identity_key(file_path: str, name: str) -> str:
    """Build the ``filePath:name`` identity key of an entity.

    Two entities with the same key inside one run are indistinguishable to
    the diff algorithm.

    Args:
        file_path: Repository-relative file path.
        name: Entity name (function name or derived SQL block name).

    Returns:
        Identity key string.
    """
    return f"{normalize_file_path(file_path)}{IDENTITY_SEPARATOR}{name}"


def content_hash(source_code: str) -> str:
    """Return the SHA-256 hex digest of an entity's verbatim source slice."""
    return hashlib.sha256(source_code.encode("utf-8")).hexdigest()
