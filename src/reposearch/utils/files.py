"""Utility helpers for working with repository files."""

from __future__ import annotations

import mimetypes
import posixpath

BINARY_SNIFF_BYTES = 8000


def guess_content_type(path: str) -> str | None:
    """Return the MIME type implied by the file name, if any."""
    content_type, _ = mimetypes.guess_type(posixpath.basename(path), strict=False)
    return content_type


def looks_binary(data: bytes) -> bool:
    """Heuristic used by git itself: a NUL byte near the start means binary."""
    return b"\0" in data[:BINARY_SNIFF_BYTES]


def normalize_repo_path(path: str, root: str | None = None) -> str:
    """Return ``path`` relative to the repository root, using forward slashes."""
    normalized = path.replace("\\", "/")
    if root:
        prefix = root.replace("\\", "/").rstrip("/") + "/"
        if normalized.startswith(prefix):
            normalized = normalized[len(prefix) :]
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.strip("/")
