"""Redis store using redis.asyncio."""

from typing import Any

from redis.asyncio import Redis

from .base import StoreClient


def _decode(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class RedisStore(StoreClient):
    """
    Store backed by an async Redis client.

    Works with clients created with or without ``decode_responses``; keys and
    values read back are always returned as ``str``.
    """

    def __init__(self, client: Redis):
        """Wrap an existing async Redis client."""
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisStore":
        """Create a store from a redis:// URL."""
        return cls(Redis.from_url(url, decode_responses=True))

    @classmethod
    def from_options(cls, **options: Any) -> "RedisStore":
        """Create a store from Redis connection keyword arguments."""
        options.setdefault("decode_responses", True)
        return cls(Redis(**options))

    async def get(self, key: str) -> str | None:
        return _decode(await self.client.get(key))

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        await self.client.set(key, value, ex=ttl)

    async def set_if_not_exists(
        self, key: str, value: str, ttl: int | None = None
    ) -> bool:
        # SET NX replies None when the key already exists
        return bool(await self.client.set(key, value, ex=ttl, nx=True))

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return await self.client.delete(*keys)

    async def exists(self, key: str) -> bool:
        return await self.client.exists(key) > 0

    async def incr(self, key: str, amount: int = 1) -> int:
        return await self.client.incrby(key, amount)

    async def decr(self, key: str, amount: int = 1) -> int:
        return await self.client.decrby(key, amount)

    async def expire(self, key: str, seconds: int) -> bool:
        return bool(await self.client.expire(key, seconds))

    async def ttl(self, key: str) -> int:
        return await self.client.ttl(key)

    async def keys(self, pattern: str) -> list[str]:
        return [_decode(key) for key in await self.client.keys(pattern)]

    async def scan(
        self, cursor: int | str, match: str, count: int
    ) -> tuple[int, list[str]]:
        next_cursor, keys = await self.client.scan(
            cursor=cursor, match=match, count=count
        )
        return int(next_cursor), [_decode(key) for key in keys]

    async def close(self) -> None:
        await self.client.aclose()
