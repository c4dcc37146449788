"""
File management API: listing, thumbnails, upload and tree mutations.

Listing and thumbnails are public; everything else is gated by the access
policy middleware.
"""

from typing import AsyncIterator, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from fastapi.responses import FileResponse, Response

from ..config import Settings
from ..dependencies import get_settings, get_storage, get_thumbnails
from ..errors import (
    BadRequestError,
    ConflictError,
    InvalidPathError,
    NotFoundError,
    PayloadTooLargeError,
    UnsafeContentError,
)
from ..etag import matches_etag
from ..logger import logger
from ..models import (
    ListResponse,
    MkdirRequest,
    MoveRequest,
    MoveResult,
    OperationResult,
    RenameRequest,
)
from ..paths import (
    base_name,
    get_extension,
    is_allowed_extension,
    join_path,
    normalize_path,
    parent_path,
    supports_thumbnail,
)
from ..storage import StorageAdapter
from ..svg_sanitizer import validate_and_sanitize_svg
from ..thumbnails import ThumbnailService

UPLOAD_CHUNK_SIZE = 64 * 1024
THUMBNAIL_CACHE_CONTROL = "public, max-age=31536000"

router = APIRouter(
    prefix="/api",
    tags=["files"],
)


def cdn_url(settings: Settings, path: str) -> str:
    return f"{settings.base_url}/cdn/{quote(path)}"


def thumbnail_url(settings: Settings, path: str) -> str:
    return f"{settings.base_url}/api/thumbnail?path={quote(path, safe='')}"


def upload_size(file: UploadFile) -> int:
    if file.size is not None:
        return file.size
    file.file.seek(0, 2)
    size = file.file.tell()
    file.file.seek(0)
    return size


async def iter_upload(file: UploadFile) -> AsyncIterator[bytes]:
    while chunk := await file.read(UPLOAD_CHUNK_SIZE):
        yield chunk


@router.get(
    "/list", response_model=ListResponse, response_model_exclude_none=True
)
async def list_files(
    path: str = "",
    settings: Settings = Depends(get_settings),
    storage: StorageAdapter = Depends(get_storage),
):
    current = normalize_path(path)
    items = await storage.list(current)

    for item in items:
        if item.type != "file":
            continue
        item.url = cdn_url(settings, item.path)
        if supports_thumbnail(item.name):
            item.thumbnail_url = thumbnail_url(settings, item.path)

    return ListResponse(
        path=current,
        items=items,
        total_size=sum(item.size or 0 for item in items if item.type == "file"),
        total_count=len(items),
    )


@router.get("/thumbnail")
async def get_thumbnail(
    request: Request,
    path: str = "",
    storage: StorageAdapter = Depends(get_storage),
    thumbnails: ThumbnailService = Depends(get_thumbnails),
):
    if not path:
        raise BadRequestError("Path required")

    key = normalize_path(path)
    if not key or not await storage.exists(key):
        raise NotFoundError("File not found")

    info = await storage.stat(key)
    if info.type != "file":
        raise NotFoundError("Thumbnail not available")

    if await thumbnails.generate(storage.local_path(key), info.name) is None:
        raise NotFoundError("Thumbnail not available")

    etag = await thumbnails.thumbnail_etag(info.name)
    headers = {"Cache-Control": THUMBNAIL_CACHE_CONTROL, "ETag": etag}
    if matches_etag(etag, request.headers.get("If-None-Match")):
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers=headers)

    return FileResponse(
        thumbnails.thumbnail_path(info.name), media_type="image/jpeg", headers=headers
    )


@router.post(
    "/upload",
    status_code=status.HTTP_201_CREATED,
    response_model=OperationResult,
    response_model_exclude_none=True,
)
async def upload_file(
    path: str = "",
    overwrite: bool = False,
    file: Optional[UploadFile] = File(None),
    settings: Settings = Depends(get_settings),
    storage: StorageAdapter = Depends(get_storage),
    thumbnails: ThumbnailService = Depends(get_thumbnails),
):
    if file is None or not file.filename:
        raise BadRequestError("No file provided")

    if upload_size(file) > settings.max_upload_size:
        raise PayloadTooLargeError(
            f"File size exceeds limit of {settings.max_upload_size} bytes"
        )

    if not is_allowed_extension(file.filename):
        raise BadRequestError("Only JPG, PNG, and SVG files are allowed")

    key = join_path(path, file.filename)
    if not overwrite and await storage.exists(key):
        raise ConflictError("File already exists. Use overwrite=true to replace.")

    if get_extension(key) == ".svg":
        try:
            content = (await file.read()).decode("utf-8-sig")
        except UnicodeDecodeError:
            raise UnsafeContentError("Invalid SVG: content is not UTF-8 text")

        result = validate_and_sanitize_svg(content)
        if not result.valid:
            raise UnsafeContentError(result.error)
        await storage.write(key, result.sanitized.encode("utf-8"))
    else:
        await storage.write(key, iter_upload(file))
        await thumbnails.generate(storage.local_path(key), base_name(key))

    logger.info(f"Uploaded {key} ({upload_size(file)} bytes)")
    return OperationResult(path=key, url=cdn_url(settings, key))


@router.post(
    "/mkdir",
    status_code=status.HTTP_201_CREATED,
    response_model=OperationResult,
    response_model_exclude_none=True,
)
async def make_directory(
    body: Optional[MkdirRequest] = None,
    storage: StorageAdapter = Depends(get_storage),
):
    key = normalize_path(body.path) if body else ""
    if not key:
        raise BadRequestError("Path required")

    await storage.mkdir(key)
    logger.info(f"Created directory {key}")
    return OperationResult(path=key)


@router.post("/move", response_model=MoveResult)
async def move_entry(
    body: Optional[MoveRequest] = None,
    storage: StorageAdapter = Depends(get_storage),
):
    if body is None or not body.src or not body.dst:
        raise BadRequestError("Source and destination required")

    src = normalize_path(body.src)
    dst = normalize_path(body.dst)
    if not src or not dst:
        raise BadRequestError("Source and destination required")

    await storage.move(src, dst)
    logger.info(f"Moved {src} -> {dst}")
    return MoveResult(src=src, dst=dst)


@router.post(
    "/rename", response_model=OperationResult, response_model_exclude_none=True
)
async def rename_entry(
    body: Optional[RenameRequest] = None,
    storage: StorageAdapter = Depends(get_storage),
):
    if body is None or not body.path or not body.new_name:
        raise BadRequestError("Path and newName required")

    new_name = body.new_name
    if "/" in new_name or "\\" in new_name or new_name in (".", ".."):
        raise InvalidPathError("Invalid name: must be a single path segment")

    key = normalize_path(body.path)
    if not key:
        raise BadRequestError("Cannot rename the storage root")

    new_key = join_path(parent_path(key), new_name)
    await storage.move(key, new_key)
    logger.info(f"Renamed {key} -> {new_key}")
    return OperationResult(path=new_key)


@router.delete(
    "/delete", response_model=OperationResult, response_model_exclude_none=True
)
async def delete_entry(
    path: str = "",
    storage: StorageAdapter = Depends(get_storage),
    thumbnails: ThumbnailService = Depends(get_thumbnails),
):
    if not path:
        raise BadRequestError("Path required")

    key = normalize_path(path)
    if not key:
        raise BadRequestError("Cannot delete the storage root")

    info = await storage.stat(key)
    if info.type == "file":
        await thumbnails.delete_thumbnail(info.name)

    await storage.delete(key)
    logger.info(f"Deleted {key}")
    return OperationResult(path=key)
