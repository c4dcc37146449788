"""Thumbnail generation for raster uploads."""

import functools
import uuid
from pathlib import Path
from typing import Optional

from aiofiles import os as aioos
from asyncer import asyncify
from PIL import Image, ImageOps

from .etag import generate_etag
from .logger import log_exception, logger
from .paths import get_extension, supports_thumbnail

ETAG_CHUNK_SIZE = 64 * 1024


@asyncify
def _render_thumbnail(source: Path, target: Path, size: int, quality: int) -> None:
    """Resize to fit within size x size and re-encode as JPEG."""
    # Write next to the target and rename, so concurrent readers never see a
    # partially written thumbnail
    temp_target = target.with_name(f"{target.name}.{uuid.uuid4().hex}.tmp")
    try:
        with Image.open(source) as image:
            image = ImageOps.exif_transpose(image)
            image.thumbnail((size, size))  # keeps aspect ratio, never enlarges
            if image.mode not in ("RGB", "L"):
                image = image.convert("RGB")
            image.save(temp_target, "JPEG", quality=quality)
        temp_target.replace(target)
    finally:
        temp_target.unlink(missing_ok=True)


@asyncify
def _file_etag(path: Path) -> str:
    with open(path, "rb") as f:
        return generate_etag(iter(functools.partial(f.read, ETAG_CHUNK_SIZE), b""))


class ThumbnailService:
    """Generates and caches bounded-size JPEG previews.

    Thumbnails are keyed by source file name only and live in a hidden cache
    directory under the storage root. An existing thumbnail is reused as-is;
    it is not compared against the source.
    """

    def __init__(self, cache_dir: Path, size: int = 128, quality: int = 85):
        self.cache_dir = Path(cache_dir)
        self.size = size
        self.quality = quality

    async def initialize(self) -> None:
        if not await aioos.path.isdir(self.cache_dir):
            await aioos.makedirs(self.cache_dir, exist_ok=True)
            logger.info(f"Created thumbnail directory {self.cache_dir}")

    def thumbnail_name(self, file_name: str) -> str:
        return f"{file_name}.thumb{get_extension(file_name)}"

    def thumbnail_path(self, file_name: str) -> Path:
        return self.cache_dir / self.thumbnail_name(file_name)

    async def has_thumbnail(self, file_name: str) -> bool:
        return await aioos.path.exists(self.thumbnail_path(file_name))

    async def thumbnail_etag(self, file_name: str) -> str:
        """Content ETag of a cached thumbnail, hashed without loading it whole."""
        return await _file_etag(self.thumbnail_path(file_name))

    async def generate(self, source_path: Path, file_name: str) -> Optional[str]:
        """Return the thumbnail name for a source image, rendering it if needed.

        Returns None for unsupported types and when rendering fails.
        """
        if not supports_thumbnail(file_name):
            return None

        thumbnail_name = self.thumbnail_name(file_name)
        if await self.has_thumbnail(file_name):
            return thumbnail_name

        if not await self._render(source_path, file_name):
            return None

        logger.debug(f"Thumbnail generated: {file_name} -> {thumbnail_name}")
        return thumbnail_name

    @log_exception("Failed to generate thumbnail for {file_name}", default_return=False)
    async def _render(self, source_path: Path, file_name: str) -> bool:
        await aioos.makedirs(self.cache_dir, exist_ok=True)
        await _render_thumbnail(
            source_path, self.thumbnail_path(file_name), self.size, self.quality
        )
        return True

    @log_exception("Failed to delete thumbnail for {file_name}", default_return=False)
    async def delete_thumbnail(self, file_name: str) -> bool:
        thumbnail_path = self.thumbnail_path(file_name)
        if not await aioos.path.exists(thumbnail_path):
            return False

        await aioos.unlink(thumbnail_path)
        logger.debug(f"Thumbnail deleted: {file_name}")
        return True
