"""
Storage key normalization.

Every path that comes from a client (query string, JSON body, URL, upload
file name) goes through ``normalize_path`` exactly once before it reaches a
storage adapter. The result is a relative, slash-separated key: no leading
or trailing slash, no ``.``/``..`` segments, no backslashes. The empty string
is the storage root.
"""

import posixpath

from .errors import InvalidPathError

ALLOWED_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".svg"})
THUMBNAIL_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png"})


def normalize_path(raw_path: str) -> str:
    """Normalize a client supplied path into a storage key.

    Traversal is detected after lexical normalization, so ``foo/../../bar``
    is rejected even though it does not start with ``..``.

    Raises:
        InvalidPathError: if the path escapes the storage root or is malformed
    """
    if "\x00" in raw_path:
        raise InvalidPathError("Invalid path: contains NUL byte")

    normalized = raw_path.replace("\\", "/").strip("/")
    if not normalized:
        return ""

    normalized = posixpath.normpath(normalized)
    if normalized == ".":
        return ""

    if ".." in normalized.split("/"):
        raise InvalidPathError()

    return normalized.strip("/")


def join_path(*parts: str) -> str:
    """Join key fragments and normalize the result."""
    return normalize_path("/".join(part for part in parts if part))


def parent_path(path: str) -> str:
    """Parent key of a normalized path ("" for top-level entries)."""
    return path.rsplit("/", 1)[0] if "/" in path else ""


def base_name(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def get_extension(file_name: str) -> str:
    """Lowercased extension including the dot, "" if there is none."""
    return posixpath.splitext(file_name)[1].lower()


def is_allowed_extension(file_name: str) -> bool:
    return get_extension(file_name) in ALLOWED_EXTENSIONS


def supports_thumbnail(file_name: str) -> bool:
    return get_extension(file_name) in THUMBNAIL_EXTENSIONS
