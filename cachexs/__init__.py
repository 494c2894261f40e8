"""CacheXS - Namespaced async cache over Redis-compatible stores."""

__version__ = "0.1.0"

# Core cache
from .core import SET_EXISTS, SET_OK, NamespacedCache

# Configuration
from .config import CacheConfig, create_store

# Errors
from .exceptions import CacheXSError, ConfigurationError, SerializationError

# Utilities (for advanced usage)
from .serializers import MISSING, deserialize, serialize

# Stores (for advanced usage)
from .stores import (
    KEY_MISSING,
    NO_EXPIRY,
    DiskStore,
    MemoryStore,
    RedisStore,
    StoreClient,
)
from .utils import compose_key, decompose_key

__all__ = [
    # Stores
    "DiskStore",
    "KEY_MISSING",
    "MemoryStore",
    "NO_EXPIRY",
    "RedisStore",
    "StoreClient",
    # Configuration
    "CacheConfig",
    "create_store",
    # Errors
    "CacheXSError",
    "ConfigurationError",
    "SerializationError",
    # Core
    "NamespacedCache",
    "SET_EXISTS",
    "SET_OK",
    # Utilities
    "MISSING",
    "compose_key",
    "decompose_key",
    "deserialize",
    "serialize",
]
