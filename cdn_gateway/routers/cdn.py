"""
Public asset delivery with conditional caching.

Range requests are acknowledged (206 and ``Content-Range``) but the full
content is always sent; ``Content-Length`` therefore stays the full size.
"""

import re
from datetime import datetime
from email.utils import format_datetime, parsedate_to_datetime
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import Response, StreamingResponse

from ..dependencies import get_storage
from ..errors import BadRequestError, NotFoundError
from ..etag import matches_etag
from ..models import FileInfo
from ..paths import get_extension, normalize_path
from ..storage import StorageAdapter

CDN_CACHE_CONTROL = "public, max-age=31536000, immutable"
SVG_CONTENT_SECURITY_POLICY = (
    "default-src 'none'; style-src 'unsafe-inline'; img-src data:;"
)

_RANGE_RE = re.compile(r"^bytes=(\d+)-(\d*)$")

router = APIRouter(
    prefix="/cdn",
    tags=["cdn"],
)


def http_date(value: datetime) -> str:
    return format_datetime(value.replace(microsecond=0), usegmt=True)


def is_modified_since(last_modified: datetime, if_modified_since: Optional[str]) -> bool:
    """False only when the header parses and the file is not newer than it."""
    if not if_modified_since:
        return True
    try:
        since = parsedate_to_datetime(if_modified_since)
    except (TypeError, ValueError):
        return True
    if since.tzinfo is None:
        return True
    # HTTP dates have second precision
    return int(last_modified.timestamp()) > since.timestamp()


def parse_range(range_header: Optional[str], size: int) -> Optional[tuple[int, int]]:
    """Parse a single ``bytes=start-[end]`` range, clamped to the file size."""
    if not range_header or size <= 0:
        return None
    match = _RANGE_RE.match(range_header.strip())
    if not match:
        return None

    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) else size - 1
    end = min(end, size - 1)
    if start > end:
        return None
    return start, end


def content_type_for(info: FileInfo) -> str:
    if get_extension(info.name) == ".svg":
        return "image/svg+xml"
    return info.mime_type or "application/octet-stream"


def build_headers(info: FileInfo) -> dict[str, str]:
    headers = {
        "Content-Type": content_type_for(info),
        "Content-Length": str(info.size or 0),
        "Cache-Control": CDN_CACHE_CONTROL,
        "Accept-Ranges": "bytes",
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "GET, HEAD, OPTIONS",
    }
    if info.last_modified is not None:
        headers["Last-Modified"] = http_date(info.last_modified)
    if info.etag:
        headers["ETag"] = info.etag
    if get_extension(info.name) == ".svg":
        headers["Content-Security-Policy"] = SVG_CONTENT_SECURITY_POLICY
        headers["X-Content-Type-Options"] = "nosniff"
    return headers


def not_modified(info: FileInfo) -> Response:
    headers = {"Cache-Control": CDN_CACHE_CONTROL}
    if info.etag:
        headers["ETag"] = info.etag
    if info.last_modified is not None:
        headers["Last-Modified"] = http_date(info.last_modified)
    return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers=headers)


@router.api_route("/{file_path:path}", methods=["GET", "HEAD"])
async def serve_file(
    file_path: str,
    request: Request,
    storage: StorageAdapter = Depends(get_storage),
):
    key = normalize_path(file_path)
    if not key or not await storage.exists(key):
        raise NotFoundError("File not found")

    info = await storage.stat(key)
    if info.type == "directory":
        raise BadRequestError("Cannot serve directory")

    if info.etag and matches_etag(info.etag, request.headers.get("If-None-Match")):
        return not_modified(info)
    if info.last_modified is not None and not is_modified_since(
        info.last_modified, request.headers.get("If-Modified-Since")
    ):
        return not_modified(info)

    headers = build_headers(info)
    status_code = status.HTTP_200_OK
    byte_range = parse_range(request.headers.get("Range"), info.size or 0)
    if byte_range is not None:
        start, end = byte_range
        headers["Content-Range"] = f"bytes {start}-{end}/{info.size}"
        status_code = status.HTTP_206_PARTIAL_CONTENT

    if request.method == "HEAD":
        return Response(status_code=status_code, headers=headers)

    return StreamingResponse(
        await storage.read(key), status_code=status_code, headers=headers
    )
