"""Key-value store adapters."""

from .base import KEY_MISSING, NO_EXPIRY, StoreClient
from .disk import DiskStore
from .memory import MemoryStore
from .redis import RedisStore

__all__ = [
    "KEY_MISSING",
    "NO_EXPIRY",
    "DiskStore",
    "MemoryStore",
    "RedisStore",
    "StoreClient",
]
