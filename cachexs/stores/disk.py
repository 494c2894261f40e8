"""Disk-based store using diskcache."""

import asyncio
import math
import time
from fnmatch import fnmatchcase
from itertools import dropwhile, islice
from pathlib import Path

import diskcache

from .base import KEY_MISSING, NO_EXPIRY, StoreClient

_ENOVAL = object()


class DiskStore(StoreClient):
    """
    Persistent local store using diskcache.

    Blocking diskcache calls run in a worker thread. Counter updates run inside
    a diskcache transaction so they stay atomic across processes sharing the
    directory.
    """

    def __init__(self, cache_dir: str = "./.cache"):
        """Initialize disk store."""
        self.cache_dir = cache_dir
        Path(cache_dir).mkdir(parents=True, exist_ok=True)
        self._cache = diskcache.Cache(cache_dir)

    async def get(self, key: str) -> str | None:
        return await asyncio.to_thread(self._cache.get, key)

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        await asyncio.to_thread(self._cache.set, key, value, expire=ttl)

    async def set_if_not_exists(
        self, key: str, value: str, ttl: int | None = None
    ) -> bool:
        return await asyncio.to_thread(self._cache.add, key, value, expire=ttl)

    async def delete(self, *keys: str) -> int:
        def _delete() -> int:
            return sum(1 for key in keys if self._cache.delete(key))

        return await asyncio.to_thread(_delete)

    async def exists(self, key: str) -> bool:
        return await asyncio.to_thread(self._cache.__contains__, key)

    def _add(self, key: str, amount: int) -> int:
        with self._cache.transact():
            value, expire_time = self._cache.get(key, default=None, expire_time=True)
            try:
                current = 0 if value is None else int(value)
            except ValueError:
                raise ValueError(f"Value at {key} is not an integer") from None

            # Keep the remaining TTL, as INCR does
            remaining = None
            if expire_time is not None:
                remaining = max(expire_time - time.time(), 0.001)

            self._cache.set(key, str(current + amount), expire=remaining)
            return current + amount

    async def incr(self, key: str, amount: int = 1) -> int:
        return await asyncio.to_thread(self._add, key, amount)

    async def decr(self, key: str, amount: int = 1) -> int:
        return await asyncio.to_thread(self._add, key, -amount)

    async def expire(self, key: str, seconds: int) -> bool:
        if seconds <= 0:
            return await asyncio.to_thread(self._cache.delete, key)
        return await asyncio.to_thread(self._cache.touch, key, expire=seconds)

    def _ttl(self, key: str) -> int:
        value, expire_time = self._cache.get(key, default=_ENOVAL, expire_time=True)
        if value is _ENOVAL:
            return KEY_MISSING
        if expire_time is None:
            return NO_EXPIRY
        return math.ceil(expire_time - time.time())

    async def ttl(self, key: str) -> int:
        return await asyncio.to_thread(self._ttl, key)

    def _live_keys(self) -> list[str]:
        # iterkeys also yields expired rows that have not been culled yet
        return [key for key in self._cache.iterkeys() if key in self._cache]

    async def keys(self, pattern: str) -> list[str]:
        live_keys = await asyncio.to_thread(self._live_keys)
        return [key for key in live_keys if fnmatchcase(key, pattern)]

    async def scan(
        self, cursor: int | str, match: str, count: int
    ) -> tuple[int | str, list[str]]:
        def _scan() -> tuple[int | str, list[str]]:
            # iterkeys runs in key order; resume after the last key returned
            remaining = self._cache.iterkeys()
            if cursor != 0:
                remaining = dropwhile(lambda key: key <= cursor, remaining)
            raw = list(islice(remaining, count + 1))

            next_cursor: int | str = 0
            if len(raw) > count:
                raw = raw[:count]
                next_cursor = raw[-1]
            batch = [
                key for key in raw if key in self._cache and fnmatchcase(key, match)
            ]
            return next_cursor, batch

        return await asyncio.to_thread(_scan)

    async def close(self) -> None:
        self._cache.close()
