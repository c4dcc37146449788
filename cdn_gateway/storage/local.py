"""
Local disk storage backend.
"""

import mimetypes
import shutil
from datetime import datetime, timezone
from pathlib import Path
from stat import S_ISDIR
from typing import AsyncIterable, AsyncIterator, List

import aiofiles
from aiofiles import os as aioos
from asyncer import asyncify

from ..errors import BadRequestError, ConflictError, NotFoundError
from ..etag import stat_etag
from ..logger import logger
from ..models import FileInfo
from ..paths import ALLOWED_EXTENSIONS, base_name, get_extension
from .base import THUMBNAIL_DIR_NAME, StorageAdapter

CHUNK_SIZE = 64 * 1024

# Raised when a path component is a file where a directory is needed, or the reverse
PATH_CONFLICT_ERRORS = (FileExistsError, NotADirectoryError, IsADirectoryError)


@asyncify
def _rmtree_async(path: Path):
    """Asynchronously remove a directory tree."""
    shutil.rmtree(path)


def guess_mime_type(file_name: str) -> str:
    mime_type, _ = mimetypes.guess_type(file_name)
    return mime_type or "application/octet-stream"


class LocalStorageAdapter(StorageAdapter):
    def __init__(self, root: Path):
        self.root = Path(root).resolve()

    async def initialize(self) -> None:
        if not await aioos.path.isdir(self.root):
            await aioos.makedirs(self.root, exist_ok=True)
            logger.info(f"Created storage root directory {self.root}")

    def local_path(self, path: str) -> Path:
        return self.root / path if path else self.root

    async def exists(self, path: str) -> bool:
        return await aioos.path.exists(self.local_path(path))

    async def read(self, path: str) -> AsyncIterator[bytes]:
        file_path = self.local_path(path)
        if not await aioos.path.isfile(file_path):
            raise NotFoundError(f"File not found: {path}")

        async def file_iterator():
            async with aiofiles.open(file_path, "rb") as f:
                while chunk := await f.read(CHUNK_SIZE):
                    yield chunk

        return file_iterator()

    async def write(self, path: str, data: bytes | AsyncIterable[bytes]) -> None:
        file_path = self.local_path(path)
        if await aioos.path.isdir(file_path):
            raise ConflictError(f"A directory already exists at {path}")

        try:
            await aioos.makedirs(file_path.parent, exist_ok=True)
            async with aiofiles.open(file_path, "wb") as f:
                if isinstance(data, (bytes, bytearray)):
                    await f.write(data)
                else:
                    async for chunk in data:
                        await f.write(chunk)
        except PATH_CONFLICT_ERRORS as e:
            raise ConflictError(f"Cannot write {path}: {e.strerror}")

        logger.debug(f"File written: {path}")

    async def delete(self, path: str) -> None:
        target = self.local_path(path)
        if not path:
            raise BadRequestError("Refusing to delete the storage root")
        if not await aioos.path.exists(target):
            raise NotFoundError(f"File not found: {path}")

        if await aioos.path.isdir(target):
            await _rmtree_async(target)
        else:
            await aioos.unlink(target)

        logger.debug(f"Deleted: {path}")

    async def list(self, path: str = "") -> List[FileInfo]:
        directory = self.local_path(path)
        if not await aioos.path.isdir(directory):
            return []

        items = []
        for name in await aioos.listdir(directory):
            # Skip hidden entries, including the thumbnail cache
            if name.startswith(".") or name == THUMBNAIL_DIR_NAME:
                continue

            entry_path = f"{path}/{name}" if path else name
            try:
                stat_result = await aioos.stat(directory / name)
            except FileNotFoundError:
                # Removed between listdir and stat
                continue
            items.append(self._to_file_info(entry_path, stat_result))

        items.sort(key=lambda item: (item.type != "directory", item.name))
        return items

    async def mkdir(self, path: str) -> None:
        target = self.local_path(path)
        if await aioos.path.exists(target) and not await aioos.path.isdir(target):
            raise ConflictError(f"A file already exists at {path}")

        try:
            await aioos.makedirs(target, exist_ok=True)
        except PATH_CONFLICT_ERRORS as e:
            raise ConflictError(f"Cannot create directory {path}: {e.strerror}")
        logger.debug(f"Directory created: {path}")

    async def move(self, src: str, dst: str) -> None:
        src_path = self.local_path(src)
        dst_path = self.local_path(dst)

        if not src or not await aioos.path.exists(src_path):
            raise NotFoundError(f"Source not found: {src}")

        if not dst:
            raise BadRequestError("Destination required")

        if dst == src or dst.startswith(f"{src}/"):
            raise BadRequestError("Cannot move a path into itself")

        if await aioos.path.isdir(dst_path):
            raise ConflictError(f"Destination already exists: {dst}")

        try:
            await aioos.makedirs(dst_path.parent, exist_ok=True)
            await aioos.rename(src_path, dst_path)
        except PATH_CONFLICT_ERRORS as e:
            raise ConflictError(f"Cannot move {src} to {dst}: {e.strerror}")
        logger.debug(f"Moved: {src} -> {dst}")

    async def stat(self, path: str) -> FileInfo:
        target = self.local_path(path)
        try:
            stat_result = await aioos.stat(target)
        except FileNotFoundError:
            raise NotFoundError(f"File not found: {path}")

        return self._to_file_info(path, stat_result)

    def _to_file_info(self, path: str, stat_result) -> FileInfo:
        name = base_name(path) if path else ""
        is_dir = S_ISDIR(stat_result.st_mode)
        info = FileInfo(
            name=name,
            path=path,
            type="directory" if is_dir else "file",
            last_modified=datetime.fromtimestamp(stat_result.st_mtime, timezone.utc),
        )

        if not is_dir:
            info.size = stat_result.st_size
            info.mime_type = guess_mime_type(name)
            if get_extension(name) in ALLOWED_EXTENSIONS:
                info.etag = stat_etag(stat_result.st_mtime_ns, stat_result.st_size)

        return info
