import hashlib
from typing import Iterable


def generate_etag(data: bytes | Iterable[bytes]) -> str:
    """Strong ETag derived from content bytes, given whole or in chunks."""
    digest = hashlib.md5()
    for chunk in [data] if isinstance(data, bytes) else data:
        digest.update(chunk)
    return f'"{digest.hexdigest()}"'


def stat_etag(mtime_ns: int, size: int) -> str:
    """Strong ETag derived from modification time (ms) and size."""
    return f'"{mtime_ns // 1_000_000}-{size}"'


def matches_etag(etag: str, if_none_match: str | None) -> bool:
    """Check an ETag against an If-None-Match header value.

    The header may carry a comma separated list or the ``*`` wildcard.
    """
    if not if_none_match:
        return False

    tags = [tag.strip() for tag in if_none_match.split(",")]
    return "*" in tags or etag in tags
