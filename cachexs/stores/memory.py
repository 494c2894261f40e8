"""In-memory store."""

import math
import time
from bisect import bisect_right
from fnmatch import fnmatchcase
from typing import Any

from .base import KEY_MISSING, NO_EXPIRY, StoreClient


class MemoryStore(StoreClient):
    """
    In-process store following Redis command semantics.

    Useful for tests and local development. Patterns are matched with
    ``fnmatch`` rules, which cover Redis' ``*``, ``?`` and ``[...]``.
    """

    def __init__(self):
        """Initialize memory store."""
        self._data: dict[str, dict[str, Any]] = {}

    def _entry(self, key: str) -> dict[str, Any] | None:
        """Return the live entry for key, dropping it if expired."""
        entry = self._data.get(key)
        if entry is None:
            return None

        if entry.get("expires") and time.monotonic() >= entry["expires"]:
            del self._data[key]
            return None

        return entry

    def _live_keys(self) -> list[str]:
        return sorted(key for key in list(self._data) if self._entry(key))

    async def get(self, key: str) -> str | None:
        entry = self._entry(key)
        return None if entry is None else entry["value"]

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        entry = {"value": value}
        if ttl is not None:
            entry["expires"] = time.monotonic() + ttl
        self._data[key] = entry

    async def set_if_not_exists(
        self, key: str, value: str, ttl: int | None = None
    ) -> bool:
        # No await between the check and the write, so this is atomic on the loop
        if self._entry(key) is not None:
            return False
        await self.set(key, value, ttl)
        return True

    async def delete(self, *keys: str) -> int:
        deleted_count = 0
        for key in keys:
            if self._entry(key) is not None:
                del self._data[key]
                deleted_count += 1
        return deleted_count

    async def exists(self, key: str) -> bool:
        return self._entry(key) is not None

    async def incr(self, key: str, amount: int = 1) -> int:
        entry = self._entry(key)
        if entry is None:
            entry = {"value": "0"}
            self._data[key] = entry

        try:
            current = int(entry["value"])
        except ValueError:
            raise ValueError(f"Value at {key} is not an integer") from None

        entry["value"] = str(current + amount)
        return current + amount

    async def decr(self, key: str, amount: int = 1) -> int:
        return await self.incr(key, -amount)

    async def expire(self, key: str, seconds: int) -> bool:
        entry = self._entry(key)
        if entry is None:
            return False
        if seconds <= 0:
            del self._data[key]
        else:
            entry["expires"] = time.monotonic() + seconds
        return True

    async def ttl(self, key: str) -> int:
        entry = self._entry(key)
        if entry is None:
            return KEY_MISSING
        if not entry.get("expires"):
            return NO_EXPIRY
        return math.ceil(entry["expires"] - time.monotonic())

    async def keys(self, pattern: str) -> list[str]:
        return [key for key in self._live_keys() if fnmatchcase(key, pattern)]

    async def scan(
        self, cursor: int | str, match: str, count: int
    ) -> tuple[int | str, list[str]]:
        # The cursor is the last key returned, so deletes cannot shift it
        all_keys = self._live_keys()
        start = 0 if cursor == 0 else bisect_right(all_keys, cursor)
        window = all_keys[start : start + count]

        next_cursor: int | str = 0
        if start + count < len(all_keys):
            next_cursor = window[-1]
        return next_cursor, [key for key in window if fnmatchcase(key, match)]
