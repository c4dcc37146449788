from abc import ABC, abstractmethod
from pathlib import Path
from typing import AsyncIterable, AsyncIterator, List

from ..models import FileInfo

# Hidden directory under the storage root holding generated thumbnails
THUMBNAIL_DIR_NAME = ".thumbnails"


class StorageAdapter(ABC):
    """Capability interface every storage backend implements.

    All ``path`` arguments are keys already produced by
    ``paths.normalize_path``; adapters do not validate them again.
    Missing sources raise ``NotFoundError``.
    """

    async def initialize(self) -> None:
        """Prepare the backend (create roots, buckets...)."""

    @abstractmethod
    async def exists(self, path: str) -> bool: ...

    @abstractmethod
    async def read(self, path: str) -> AsyncIterator[bytes]:
        """Return an async iterator over the file content."""

    @abstractmethod
    async def write(self, path: str, data: bytes | AsyncIterable[bytes]) -> None:
        """Write a buffered or streamed payload, creating parent directories."""

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Delete a file, or a directory tree recursively."""

    @abstractmethod
    async def list(self, path: str = "") -> List[FileInfo]:
        """Directories first, then files, each sorted by name."""

    @abstractmethod
    async def mkdir(self, path: str) -> None: ...

    @abstractmethod
    async def move(self, src: str, dst: str) -> None: ...

    @abstractmethod
    async def stat(self, path: str) -> FileInfo: ...

    def local_path(self, path: str) -> Path:
        """Filesystem location of a key, for backends that have one."""
        raise NotImplementedError(
            f"{type(self).__name__} does not expose local file paths"
        )
