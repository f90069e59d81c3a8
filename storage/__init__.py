from typing import Tuple

from config.settings import Settings
from .base import FileStore, UserStore
from .exceptions import (
    FileTooLarge,
    StorageLimitExceeded,
    NodeNotFound,
    QuotaExceeded,
    StorageIOError,
    StoreError,
    UserExists,
    ValidationError,
)


def build_stores(settings: Settings) -> Tuple[FileStore, UserStore]:
    """Constructs the file and user stores for the configured backend."""
    backend = settings.STORAGE_BACKEND
    if backend == "memory":
        from .memory import MemoryFileStore, MemoryUserStore
        return MemoryFileStore(), MemoryUserStore()
    if backend == "disk":
        from .disk import DiskFileStore, DiskUserStore
        return DiskFileStore(settings.STORAGE_DIR), DiskUserStore(settings.STORAGE_DIR)
    if backend == "database":
        from .database import Database, DatabaseFileStore, DatabaseUserStore
        db = Database(settings.DATABASE_URL)
        return DatabaseFileStore(db), DatabaseUserStore(db)
    raise ValueError(f"Unknown storage backend: {backend}")


__all__ = [
    'FileStore', 'UserStore', 'build_stores',
    'StoreError', 'NodeNotFound', 'ValidationError', 'QuotaExceeded',
    'StorageIOError', 'UserExists', 'FileTooLarge', 'StorageLimitExceeded',
]
