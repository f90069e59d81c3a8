"""Quota checks run by the request layer before writing to the store."""
import logging

from config.settings import Settings
from models.schemas import StorageSummary
from storage import FileStore, FileTooLarge, StorageLimitExceeded

logger = logging.getLogger(__name__)


async def storage_summary(store: FileStore, settings: Settings) -> StorageSummary:
    used = await store.total_size()
    return StorageSummary(
        used=used,
        total=settings.STORAGE_LIMIT,
        available=settings.STORAGE_LIMIT - used,
    )


async def check_quota(store: FileStore, settings: Settings, size: int, released: int = 0) -> None:
    """
    Raises FileTooLarge when a single file exceeds MAX_FILE_SIZE, or
    StorageLimitExceeded when the store would grow past STORAGE_LIMIT.

    ``released`` is the size of content being replaced, for updates.
    """
    if size > settings.MAX_FILE_SIZE:
        raise FileTooLarge(size, settings.MAX_FILE_SIZE)

    used = await store.total_size()
    if used - released + size > settings.STORAGE_LIMIT:
        available = settings.STORAGE_LIMIT - used + released
        logger.info(f"Rejected {size} byte write, {available} bytes available")
        raise StorageLimitExceeded(size, available)
