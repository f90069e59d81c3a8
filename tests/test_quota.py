"""Tests for quota enforcement helpers."""

import pytest

from config.settings import Settings
from files.quota import check_quota, storage_summary
from helpers import file_input
from storage import FileTooLarge, QuotaExceeded, StorageLimitExceeded
from storage.memory import MemoryFileStore


@pytest.fixture
def limits():
    return Settings(STORAGE_BACKEND='memory', MAX_FILE_SIZE=100, STORAGE_LIMIT=150)


@pytest.fixture
async def filled_store():
    """Store already holding 100 bytes."""
    store = MemoryFileStore()
    await store.create(file_input('big', b'x' * 100))
    return store


async def test_check_quota_passes_at_exact_limit(filled_store, limits):
    """Test a write that lands exactly on the limit is accepted."""
    await check_quota(filled_store, limits, 50)


async def test_check_quota_rejects_over_limit(filled_store, limits):
    """Test a write past the storage limit raises StorageLimitExceeded."""
    with pytest.raises(StorageLimitExceeded) as exc_info:
        await check_quota(filled_store, limits, 51)

    assert exc_info.value.available == 50
    assert isinstance(exc_info.value, QuotaExceeded)


async def test_check_quota_rejects_large_file(filled_store, limits):
    """Test a single file above MAX_FILE_SIZE raises FileTooLarge."""
    with pytest.raises(FileTooLarge):
        await check_quota(filled_store, limits, 101)


async def test_check_quota_counts_released_bytes(filled_store, limits):
    """Test replacing content only charges the size difference."""
    await check_quota(filled_store, limits, 100, released=100)


async def test_storage_summary(filled_store, limits):
    """Test used, total and available add up."""
    summary = await storage_summary(filled_store, limits)

    assert summary.used == 100
    assert summary.total == 150
    assert summary.available == 50
