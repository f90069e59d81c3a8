"""Shared fixtures for store and API tests."""

import pytest
from fastapi.testclient import TestClient

from config.settings import Settings
from main import create_app
from storage.database import Database, DatabaseFileStore, DatabaseUserStore
from storage.disk import DiskFileStore, DiskUserStore
from storage.memory import MemoryFileStore, MemoryUserStore

BACKENDS = ['memory', 'disk', 'database']


@pytest.fixture(params=BACKENDS)
async def store(request, tmp_path):
    """Fresh file store for every backend.

    Yields:
        Initialized FileStore, closed after the test.
    """
    if request.param == 'memory':
        file_store = MemoryFileStore()
    elif request.param == 'disk':
        file_store = DiskFileStore(tmp_path / 'storage')
    else:
        file_store = DatabaseFileStore(Database(f'sqlite+aiosqlite:///{tmp_path / "drive.db"}'))

    await file_store.init()
    yield file_store
    await file_store.close()


@pytest.fixture(params=BACKENDS)
async def user_store(request, tmp_path):
    """Fresh user store for every backend."""
    if request.param == 'memory':
        users = MemoryUserStore()
    elif request.param == 'disk':
        users = DiskUserStore(tmp_path / 'storage')
    else:
        users = DatabaseUserStore(Database(f'sqlite+aiosqlite:///{tmp_path / "drive.db"}'))

    await users.init()
    yield users
    await users.close()


@pytest.fixture
def app_settings():
    """Settings for an isolated in-memory application."""
    return Settings(
        STORAGE_BACKEND='memory',
        AUTH_REQUIRED=True,
        REDIS_URL='',
        SECRET_KEY='test-secret',
        MAX_FILE_SIZE=1000,
        STORAGE_LIMIT=1500,
    )


@pytest.fixture
def client(app_settings):
    """TestClient running the app lifespan."""
    with TestClient(create_app(app_settings)) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(client):
    """Register and log in a user.

    Returns:
        Authorization headers carrying a bearer token.
    """
    credentials = {'username': 'testuser', 'password': 'testpass123'}
    assert client.post('/api/register', json=credentials).status_code == 201
    response = client.post('/api/login', json=credentials)
    token = response.json()['access_token']
    return {'Authorization': f'Bearer {token}'}
