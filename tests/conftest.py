"""Pytest configuration and fixtures for CacheXS tests."""

import shutil
import tempfile

import pytest

from cachexs.core import NamespacedCache
from cachexs.stores.disk import DiskStore
from cachexs.stores.memory import MemoryStore

CACHEXS_ENV_VARS = (
    "CACHEXS_BACKEND",
    "CACHEXS_REDIS_URL",
    "CACHEXS_NAMESPACE",
    "CACHEXS_DEFAULT_EXPIRES_IN",
    "CACHEXS_DEBUG",
    "CACHEXS_CACHE_DIR",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep CACHEXS_* variables from the host out of the tests."""
    for name in CACHEXS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def memory_store():
    """Provide a fresh memory store for testing."""
    return MemoryStore()


@pytest.fixture
def temp_cache_dir():
    """Provide a temporary directory for disk store tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def disk_store(temp_cache_dir):
    """Provide a disk store with temporary directory."""
    store = DiskStore(cache_dir=temp_cache_dir)
    yield store
    store._cache.close()


@pytest.fixture(params=["memory", "disk"])
def store(request):
    """Provide each local store in turn."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def cache(store):
    """Provide a cache in the default namespace over a local store."""
    return NamespacedCache(redis_connection=store)


@pytest.fixture
def sample_fallback():
    """Provide a fallback function that counts its calls."""
    call_count = 0

    def _fallback():
        nonlocal call_count
        call_count += 1
        return {"computed": True}

    _fallback.call_count = lambda: call_count  # type: ignore
    return _fallback
