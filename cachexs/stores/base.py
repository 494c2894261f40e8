"""Abstract base class for key-value stores."""

from abc import ABC, abstractmethod

# Replies of the TTL primitive, same values as the Redis command.
NO_EXPIRY = -1
KEY_MISSING = -2


class StoreClient(ABC):
    """Primitive commands a cache needs from a key-value store."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Get the raw value for key, None if absent."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        """Set value with optional TTL in seconds."""
        pass

    @abstractmethod
    async def set_if_not_exists(
        self, key: str, value: str, ttl: int | None = None
    ) -> bool:
        """Atomically set value only if key is absent. Returns True if written."""
        pass

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys. Returns number of keys that existed."""
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if key exists."""
        pass

    @abstractmethod
    async def incr(self, key: str, amount: int = 1) -> int:
        """Atomically add amount to an integer value, starting from 0."""
        pass

    @abstractmethod
    async def decr(self, key: str, amount: int = 1) -> int:
        """Atomically subtract amount from an integer value, starting from 0."""
        pass

    @abstractmethod
    async def expire(self, key: str, seconds: int) -> bool:
        """Set TTL on an existing key. Non-positive seconds delete the key."""
        pass

    @abstractmethod
    async def ttl(self, key: str) -> int:
        """Remaining seconds, NO_EXPIRY or KEY_MISSING."""
        pass

    @abstractmethod
    async def keys(self, pattern: str) -> list[str]:
        """List every key matching a glob pattern in one call."""
        pass

    @abstractmethod
    async def scan(
        self, cursor: int | str, match: str, count: int
    ) -> tuple[int | str, list[str]]:
        """
        Return the next cursor and a batch of matching keys.

        Cursors are opaque to callers. 0 starts a scan and marks its end. Keys
        present for the whole scan must be returned at least once.
        """
        pass

    async def close(self) -> None:
        """Release the underlying connection."""
        return None
