"""Namespaced cache over a key-value store."""

import asyncio
import dataclasses
import inspect
import logging
from collections.abc import Iterable
from typing import Any

from .config import CacheConfig, config_field_names, create_store
from .exceptions import CacheXSError, ConfigurationError
from .serializers import MISSING, deserialize, serialize
from .stores import StoreClient
from .utils import compose_key, decompose_key, namespace_prefix

logger = logging.getLogger(__name__)

SET_OK = "OK"
SET_EXISTS = "EXISTS"


class NamespacedCache:
    """
    Async cache that prefixes keys with a namespace and stores JSON values.

    Every call is a round trip to the store; nothing is kept locally. Methods
    taking a key also accept ``namespace=`` to nest the key one level deeper,
    e.g. ``cache:users:42``.

    Reconfiguring while other coroutines are awaiting the store is allowed.
    Each operation uses whichever configuration it read when it started.
    """

    def __init__(self, config: CacheConfig | None = None, **options: Any):
        """
        Args:
            config: A prepared CacheConfig
            **options: CacheConfig fields, applied on top of ``config``
        """
        self._config: CacheConfig
        self._store: StoreClient
        self._owns_store = False
        self._apply(config, options)

    def _apply(self, config: CacheConfig | None, options: dict[str, Any]) -> None:
        unknown = set(options) - config_field_names()
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration key: {', '.join(sorted(unknown))}"
            )

        if config is None:
            config = CacheConfig(**options)
        elif options:
            config = dataclasses.replace(config, **options)

        store = create_store(config)

        # No await between these assignments
        self._config = config
        self._store = store
        self._owns_store = config.redis_connection is None

    def configure(
        self, config: CacheConfig | None = None, **options: Any
    ) -> "NamespacedCache":
        """
        Replace the whole configuration and store.

        Options not given fall back to their defaults, not to the previous
        values. The previous store is not closed.
        """
        self._apply(config, options)
        return self

    async def close(self) -> None:
        """Close the store if this cache created it."""
        if self._owns_store:
            await self._store.close()

    async def __aenter__(self) -> "NamespacedCache":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def store(self) -> StoreClient:
        return self._store

    @property
    def connection(self) -> Any:
        """The underlying client object, e.g. the redis.asyncio.Redis."""
        return getattr(self._store, "client", self._store)

    @property
    def namespace(self) -> str:
        return self._config.namespace

    @property
    def default_expires_in(self) -> int:
        return self._config.default_expires_in

    @property
    def is_debug_enabled(self) -> bool:
        return self._config.debug

    @property
    def redis_url(self) -> str | None:
        if self._config.connection_source == "url":
            return self._config.redis_url
        return None

    @property
    def redis_options(self) -> dict[str, Any] | None:
        return self._config.resolved_redis_options

    def compose_key(self, key: str, namespace: str | None = None) -> str:
        """Return the key as stored, e.g. ``cache:namespace:key``."""
        return compose_key(key, self._config.namespace, namespace)

    def _trace(self, message: str) -> None:
        if self._config.debug:
            logger.info(f"CacheXS -> {message}")

    def _expiry(self, ttl: int | None) -> int:
        if ttl is None:
            return self._config.default_expires_in
        if ttl <= 0:
            logger.warning(f"Non-positive TTL {ttl} raised to 1 second")
            return 1
        return ttl

    # Single-key operations

    async def get(
        self, key: str, default: Any = None, *, namespace: str | None = None
    ) -> Any:
        """Get a value, or ``default`` if the key is absent."""
        full_key = self.compose_key(key, namespace)
        raw = await self._store.get(full_key)
        self._trace(f"Get -> {full_key}: {raw}")

        value = deserialize(raw)
        return default if value is MISSING else value

    async def set(
        self,
        key: str,
        value: Any,
        ttl: int | None = None,
        *,
        namespace: str | None = None,
    ) -> None:
        """Set a value expiring after ``ttl`` seconds (default TTL if None)."""
        full_key = self.compose_key(key, namespace)
        payload = serialize(value)
        expires_in = self._expiry(ttl)

        await self._store.set(full_key, payload, expires_in)
        self._trace(f"Set (For: {expires_in} Sec.) -> {full_key}: {payload}")

    async def set_forever(
        self, key: str, value: Any, *, namespace: str | None = None
    ) -> None:
        """Set a value without expiry."""
        full_key = self.compose_key(key, namespace)
        payload = serialize(value)

        await self._store.set(full_key, payload)
        self._trace(f"Set (Forever) -> {full_key}: {payload}")

    async def set_if_not_exists(
        self,
        key: str,
        value: Any,
        ttl: int | None = None,
        *,
        namespace: str | None = None,
    ) -> str:
        """Atomically set a value only if the key is absent.

        Returns ``"OK"`` when written and ``"EXISTS"`` otherwise.
        """
        full_key = self.compose_key(key, namespace)
        expires_in = self._expiry(ttl)
        written = await self._store.set_if_not_exists(
            full_key, serialize(value), expires_in
        )

        result = SET_OK if written else SET_EXISTS
        self._trace(
            f"Set If Not Exists (For: {expires_in} Sec.) -> {full_key}: {result}"
        )
        return result

    async def set_if_not_exists_forever(
        self, key: str, value: Any, *, namespace: str | None = None
    ) -> str:
        """Like set_if_not_exists, without expiry."""
        full_key = self.compose_key(key, namespace)
        written = await self._store.set_if_not_exists(full_key, serialize(value))

        result = SET_OK if written else SET_EXISTS
        self._trace(f"Set If Not Exists (Forever) -> {full_key}: {result}")
        return result

    async def _resolve_fallback(self, fallback: Any) -> Any:
        value = fallback() if callable(fallback) else fallback
        if inspect.isawaitable(value):
            value = await value
        return value

    async def get_or_set(
        self,
        key: str,
        fallback: Any,
        ttl: int | None = None,
        *,
        namespace: str | None = None,
    ) -> Any:
        """
        Return the cached value, or store and return ``fallback``.

        ``fallback`` may be a value or a sync/async callable, which is only
        called on a miss. Two concurrent misses may both write; the last
        write wins.
        """
        value = await self.get(key, MISSING, namespace=namespace)
        if value is not MISSING:
            return value

        value = await self._resolve_fallback(fallback)
        await self.set(key, value, ttl, namespace=namespace)
        return value

    async def get_or_set_forever(
        self, key: str, fallback: Any, *, namespace: str | None = None
    ) -> Any:
        """Like get_or_set, storing the fallback without expiry."""
        value = await self.get(key, MISSING, namespace=namespace)
        if value is not MISSING:
            return value

        value = await self._resolve_fallback(fallback)
        await self.set_forever(key, value, namespace=namespace)
        return value

    async def increment(
        self, key: str, amount: int = 1, *, namespace: str | None = None
    ) -> int:
        """Atomically increment a counter. Absent keys start at 0."""
        full_key = self.compose_key(key, namespace)
        result = await self._store.incr(full_key, amount)
        self._trace(f"Increment -> {full_key}: {result}")
        return result

    async def decrement(
        self, key: str, amount: int = 1, *, namespace: str | None = None
    ) -> int:
        """Atomically decrement a counter. Absent keys start at 0."""
        full_key = self.compose_key(key, namespace)
        result = await self._store.decr(full_key, amount)
        self._trace(f"Decrement -> {full_key}: {result}")
        return result

    async def expire(
        self, key: str, ttl: int, *, namespace: str | None = None
    ) -> bool:
        """Set a new TTL on an existing key. Returns False if the key is absent."""
        full_key = self.compose_key(key, namespace)
        result = await self._store.expire(full_key, ttl)
        self._trace(f"Expire (In: {ttl} Sec.) -> {full_key}: {result}")
        return result

    async def expire_now(self, key: str, *, namespace: str | None = None) -> bool:
        """Expire a key immediately."""
        return await self.expire(key, 0, namespace=namespace)

    async def ttl(self, key: str, *, namespace: str | None = None) -> int:
        """Remaining seconds, ``NO_EXPIRY`` (-1) or ``KEY_MISSING`` (-2)."""
        full_key = self.compose_key(key, namespace)
        result = await self._store.ttl(full_key)
        self._trace(f"TTL -> {full_key}: {result}")
        return result

    async def delete(self, key: str, *, namespace: str | None = None) -> int:
        """Delete a key. Deleting an absent key is not an error."""
        full_key = self.compose_key(key, namespace)
        result = await self._store.delete(full_key)
        self._trace(f"Delete -> {full_key}")
        return result

    async def delete_many(
        self, keys: Iterable[str], *, namespace: str | None = None
    ) -> int:
        """Delete several keys in one call."""
        full_keys = [self.compose_key(key, namespace) for key in keys]
        if not full_keys:
            return 0

        result = await self._store.delete(*full_keys)
        self._trace(f"Delete Multiple -> {', '.join(full_keys)}")
        return result

    async def exists(self, key: str, *, namespace: str | None = None) -> bool:
        """Check if a key exists."""
        full_key = self.compose_key(key, namespace)
        result = await self._store.exists(full_key)
        self._trace(f"Has -> {full_key}? {result}")
        return result

    has = exists

    async def missing(self, key: str, *, namespace: str | None = None) -> bool:
        """Check if a key is absent."""
        return not await self.exists(key, namespace=namespace)

    async def clear(self) -> int:
        """
        Delete every key under the configured namespace.

        Keys are found with SCAN; the store is never flushed. Returns the
        number of keys targeted.
        """
        if not self._config.namespace:
            raise CacheXSError("Refusing to clear a cache without a namespace")

        count = await self.delete_by_pattern("*", use_scan=True)
        self._trace(f"Clear All Cache -> {self._config.namespace}: {count}")
        return count

    # Pattern-based operations

    def _pattern(self, pattern: str, namespace: str | None) -> str:
        return compose_key(pattern, self._config.namespace, namespace)

    async def scan(
        self,
        pattern: str = "*",
        batch_size: int = 100,
        *,
        namespace: str | None = None,
    ) -> list[str]:
        """
        List keys matching a glob pattern without blocking the store.

        Keys reported more than once by the store are returned once, in the
        order first seen.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")

        match = self._pattern(pattern, namespace)
        found: dict[str, None] = {}
        cursor = 0
        while True:
            cursor, batch = await self._store.scan(cursor, match, batch_size)
            for full_key in batch:
                found[full_key] = None
            if cursor == 0:
                break

        keys = [
            decompose_key(full_key, self._config.namespace, namespace)
            for full_key in found
        ]
        self._trace(f"Scan -> {match}: {len(keys)} keys")
        return keys

    async def keys(
        self, pattern: str = "*", *, namespace: str | None = None
    ) -> list[str]:
        """
        List keys matching a glob pattern with a single KEYS call.

        KEYS blocks the store while it walks the keyspace; prefer ``scan`` on
        large production databases.
        """
        match = self._pattern(pattern, namespace)
        found = await self._store.keys(match)

        keys = [
            decompose_key(full_key, self._config.namespace, namespace)
            for full_key in dict.fromkeys(found)
        ]
        self._trace(f"Keys -> {match}: {len(keys)} keys")
        return keys

    async def _resolve(
        self, pattern: str, use_scan: bool, namespace: str | None
    ) -> list[str]:
        if use_scan:
            return await self.scan(pattern, namespace=namespace)
        return await self.keys(pattern, namespace=namespace)

    async def get_by_pattern(
        self,
        pattern: str = "*",
        use_scan: bool = True,
        *,
        namespace: str | None = None,
    ) -> dict[str, Any]:
        """
        Fetch every value whose key matches a glob pattern.

        Values are fetched concurrently. Keys deleted between discovery and
        fetch are left out of the result.
        """
        keys = await self._resolve(pattern, use_scan, namespace)
        values = await asyncio.gather(
            *(self.get(key, MISSING, namespace=namespace) for key in keys)
        )
        return {
            key: value for key, value in zip(keys, values) if value is not MISSING
        }

    async def delete_by_pattern(
        self,
        pattern: str = "*",
        use_scan: bool = True,
        *,
        namespace: str | None = None,
    ) -> int:
        """Delete every key matching a glob pattern. Returns keys targeted."""
        keys = await self._resolve(pattern, use_scan, namespace)
        if not keys:
            return 0

        await self.delete_many(keys, namespace=namespace)
        self._trace(
            f"Delete By Pattern -> {namespace_prefix(self.namespace, namespace)}:"
            f"{pattern}: {len(keys)} keys"
        )
        return len(keys)
