"""
Storage backends.

``StorageAdapter`` is the contract handlers program against; the local disk
backend is the only one shipped.
"""

from pathlib import Path

from ..config import Settings
from .base import THUMBNAIL_DIR_NAME, StorageAdapter
from .local import LocalStorageAdapter


def create_storage(settings: Settings) -> StorageAdapter:
    """Build the storage backend selected in settings."""
    if settings.storage.type == "local":
        return LocalStorageAdapter(Path(settings.storage.root))
    raise ValueError(f"Unsupported storage type: {settings.storage.type}")


__all__ = [
    "THUMBNAIL_DIR_NAME",
    "LocalStorageAdapter",
    "StorageAdapter",
    "create_storage",
]
