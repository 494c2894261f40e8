"""Configuration for CacheXS."""

import logging
import os
from dataclasses import dataclass, fields
from typing import Any
from urllib.parse import urlparse

from redis.asyncio import Redis

from .exceptions import ConfigurationError
from .stores import DiskStore, MemoryStore, RedisStore, StoreClient
from .utils import KEY_SEPARATOR

logger = logging.getLogger(__name__)

BACKENDS = ("redis", "memory", "disk")
REDIS_URL_SCHEMES = ("redis", "rediss", "unix")
DEFAULT_REDIS_OPTIONS: dict[str, Any] = {
    "host": "localhost",
    "port": 6379,
    "password": None,
}


@dataclass(frozen=True)
class CacheConfig:
    """
    Settings applied to a cache instance.

    Connection sources are honored in a fixed order: ``redis_connection``,
    then ``redis_url``, then ``redis_options``, then ``DEFAULT_REDIS_OPTIONS``.
    ``backend`` picks a local store instead of Redis when no connection is
    given.
    """

    redis_connection: Any = None
    redis_url: str | None = None
    redis_options: dict[str, Any] | None = None
    namespace: str = "cache"
    default_expires_in: int = 300
    debug: bool = False
    backend: str = "redis"
    cache_dir: str = "./.cache"

    def __post_init__(self):
        """Load overrides from environment variables, then validate."""
        overrides = {
            "backend": os.getenv("CACHEXS_BACKEND", self.backend),
            "redis_url": os.getenv("CACHEXS_REDIS_URL", self.redis_url),
            "namespace": os.getenv("CACHEXS_NAMESPACE", self.namespace),
            "default_expires_in": self._get_int_env(
                "CACHEXS_DEFAULT_EXPIRES_IN", self.default_expires_in
            ),
            "debug": self._get_bool_env("CACHEXS_DEBUG", self.debug),
            "cache_dir": os.getenv("CACHEXS_CACHE_DIR", self.cache_dir),
        }
        for name, value in overrides.items():
            object.__setattr__(self, name, value)

        self._validate()

    def _get_bool_env(self, key: str, default: bool) -> bool:
        """Get boolean value from environment variable."""
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("true", "1", "yes", "on")

    def _get_int_env(self, key: str, default: int) -> int:
        """Get integer value from environment variable."""
        value = os.getenv(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            return default

    def _validate(self) -> None:
        if self.backend not in BACKENDS:
            raise ConfigurationError(f"Unknown backend: {self.backend}")

        if not isinstance(self.namespace, str):
            raise ConfigurationError(
                f"namespace must be a string, got {type(self.namespace).__name__}"
            )
        if self.namespace and not self.namespace.strip(KEY_SEPARATOR):
            raise ConfigurationError(
                f"namespace {self.namespace!r} contains only separators"
            )

        if (
            isinstance(self.default_expires_in, bool)
            or not isinstance(self.default_expires_in, int)
            or self.default_expires_in <= 0
        ):
            raise ConfigurationError(
                "default_expires_in must be a positive integer, "
                f"got {self.default_expires_in!r}"
            )

        if self.redis_connection is not None:
            if not isinstance(self.redis_connection, StoreClient | Redis):
                raise ConfigurationError(
                    "redis_connection must be a redis.asyncio.Redis or a "
                    f"StoreClient, got {type(self.redis_connection).__name__}"
                )
            return

        if self.redis_url is not None:
            scheme = urlparse(self.redis_url).scheme
            if scheme not in REDIS_URL_SCHEMES:
                raise ConfigurationError(
                    f"redis_url must use one of {REDIS_URL_SCHEMES}, "
                    f"got {self.redis_url!r}"
                )

        if self.backend != "redis" and (self.redis_url or self.redis_options):
            raise ConfigurationError(
                f"redis_url and redis_options cannot be used with the "
                f"{self.backend!r} backend"
            )

    @property
    def connection_source(self) -> str:
        """Which connection setting wins: connection, url, options or default."""
        if self.redis_connection is not None:
            return "connection"
        if self.backend != "redis":
            return self.backend
        if self.redis_url:
            return "url"
        if self.redis_options:
            return "options"
        return "default"

    @property
    def resolved_redis_options(self) -> dict[str, Any] | None:
        """Redis options in effect when connecting with keyword arguments."""
        source = self.connection_source
        if source == "options":
            return dict(self.redis_options)
        if source == "default":
            return dict(DEFAULT_REDIS_OPTIONS)
        if source == "connection" and isinstance(self.redis_connection, Redis):
            return dict(self.redis_connection.connection_pool.connection_kwargs)
        return None


def config_field_names() -> set[str]:
    """Names accepted as configuration keyword arguments."""
    return {f.name for f in fields(CacheConfig)}


def create_store(config: CacheConfig) -> StoreClient:
    """Create the store described by a configuration."""
    source = config.connection_source

    ignored = [
        name
        for name, winner in (("redis_url", "url"), ("redis_options", "options"))
        if getattr(config, name) and source != winner
    ]
    if ignored:
        logger.warning(
            f"Ignoring {', '.join(ignored)}: using {source} as connection source"
        )

    if source == "connection":
        if isinstance(config.redis_connection, StoreClient):
            return config.redis_connection
        return RedisStore(config.redis_connection)
    elif source == "memory":
        return MemoryStore()
    elif source == "disk":
        return DiskStore(cache_dir=config.cache_dir)
    elif source == "url":
        return RedisStore.from_url(config.redis_url)
    else:
        return RedisStore.from_options(**config.resolved_redis_options)
