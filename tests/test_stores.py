"""Unit tests for store adapters."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from cachexs.stores.base import KEY_MISSING, NO_EXPIRY, StoreClient
from cachexs.stores.disk import DiskStore
from cachexs.stores.memory import MemoryStore
from cachexs.stores.redis import RedisStore


async def scan_all(store, match, count):
    """Drain a scan cursor."""
    found = []
    cursor = 0
    while True:
        cursor, batch = await store.scan(cursor, match, count)
        found.extend(batch)
        if cursor == 0:
            return found


class TestStoreClientInterface:
    """Test the abstract StoreClient interface."""

    def test_store_client_is_abstract(self):
        """Test that StoreClient cannot be instantiated directly."""
        with pytest.raises(TypeError):
            StoreClient()

    def test_store_client_abstract_methods(self):
        """Test that all primitive commands are abstract."""
        assert StoreClient.__abstractmethods__ == {
            "get",
            "set",
            "set_if_not_exists",
            "delete",
            "exists",
            "incr",
            "decr",
            "expire",
            "ttl",
            "keys",
            "scan",
        }

    def test_ttl_sentinels_are_distinct(self):
        """Test the TTL replies match Redis."""
        assert NO_EXPIRY == -1
        assert KEY_MISSING == -2


class TestLocalStores:
    """Behaviour shared by the memory and disk stores."""

    @pytest.mark.asyncio
    async def test_set_and_get(self, store):
        """Test basic set and get operations."""
        await store.set("key", "value")
        assert await store.get("key") == "value"

    @pytest.mark.asyncio
    async def test_get_nonexistent_key(self, store):
        """Test getting a non-existent key."""
        assert await store.get("nonexistent") is None

    @pytest.mark.asyncio
    async def test_set_with_ttl_expires(self, store):
        """Test values vanish after their TTL."""
        await store.set("ttl_key", "ttl_value", ttl=1)
        assert await store.get("ttl_key") == "ttl_value"

        await asyncio.sleep(1.1)

        assert await store.get("ttl_key") is None
        assert await store.exists("ttl_key") is False

    @pytest.mark.asyncio
    async def test_set_if_not_exists(self, store):
        """Test conditional set only writes absent keys."""
        assert await store.set_if_not_exists("key", "first") is True
        assert await store.set_if_not_exists("key", "second") is False
        assert await store.get("key") == "first"

    @pytest.mark.asyncio
    async def test_delete(self, store):
        """Test delete reports how many keys existed."""
        await store.set("a", "1")
        await store.set("b", "2")

        assert await store.delete("a", "b", "missing") == 2
        assert await store.delete("a") == 0
        assert await store.exists("a") is False

    @pytest.mark.asyncio
    async def test_incr_and_decr(self, store):
        """Test counters start at zero."""
        assert await store.incr("hits") == 1
        assert await store.incr("hits", 5) == 6
        assert await store.decr("hits") == 5
        assert await store.decr("other") == -1
        assert await store.get("hits") == "5"

    @pytest.mark.asyncio
    async def test_incr_existing_numeric_string(self, store):
        """Test counters work on values written with set."""
        await store.set("count", "10")
        assert await store.incr("count") == 11

    @pytest.mark.asyncio
    async def test_incr_non_integer_raises(self, store):
        """Test incrementing a non-integer value fails like Redis."""
        await store.set("name", "ada")
        with pytest.raises(ValueError, match="not an integer"):
            await store.incr("name")

    @pytest.mark.asyncio
    async def test_incr_keeps_ttl(self, store):
        """Test incrementing does not drop the expiry."""
        await store.set("count", "1", ttl=100)
        await store.incr("count")
        assert 0 < await store.ttl("count") <= 100

    @pytest.mark.asyncio
    async def test_ttl(self, store):
        """Test TTL distinguishes no-expiry from missing."""
        await store.set("forever", "v")
        await store.set("timed", "v", ttl=100)

        assert await store.ttl("forever") == NO_EXPIRY
        assert await store.ttl("missing") == KEY_MISSING
        assert 0 < await store.ttl("timed") <= 100

    @pytest.mark.asyncio
    async def test_expire(self, store):
        """Test expire sets a TTL on existing keys only."""
        await store.set("key", "v")

        assert await store.expire("key", 50) is True
        assert 0 < await store.ttl("key") <= 50
        assert await store.expire("missing", 50) is False

    @pytest.mark.asyncio
    async def test_expire_non_positive_deletes(self, store):
        """Test a zero TTL removes the key."""
        await store.set("key", "v")

        assert await store.expire("key", 0) is True
        assert await store.exists("key") is False

    @pytest.mark.asyncio
    async def test_keys_pattern(self, store):
        """Test glob matching of keys."""
        await store.set("ns:user:1", "a")
        await store.set("ns:user:2", "b")
        await store.set("ns:order:1", "c")

        assert sorted(await store.keys("ns:user:*")) == ["ns:user:1", "ns:user:2"]
        assert sorted(await store.keys("ns:*:1")) == ["ns:order:1", "ns:user:1"]
        assert await store.keys("other:*") == []

    @pytest.mark.parametrize("count", [1, 2, 100])
    @pytest.mark.asyncio
    async def test_scan_visits_every_key(self, store, count):
        """Test the scan cursor walks the whole keyspace."""
        for i in range(5):
            await store.set(f"ns:user:{i}", "v")
        await store.set("ns:order:1", "v")

        found = await scan_all(store, "ns:user:*", count)

        assert sorted(found) == [f"ns:user:{i}" for i in range(5)]

    @pytest.mark.asyncio
    async def test_scan_survives_delete_between_batches(self, store):
        """Test removing an already returned key does not hide later keys."""
        for name in "abcde":
            await store.set(f"ns:{name}", "v")

        cursor, first = await store.scan(0, "ns:*", 2)
        assert first == ["ns:a", "ns:b"]
        await store.delete("ns:a")

        found = list(first)
        while cursor != 0:
            cursor, batch = await store.scan(cursor, "ns:*", 2)
            found.extend(batch)

        assert sorted(found) == ["ns:a", "ns:b", "ns:c", "ns:d", "ns:e"]

    @pytest.mark.asyncio
    async def test_scan_survives_deleting_cursor_key(self, store):
        """Test the scan resumes after a cursor key that no longer exists."""
        for name in "abcde":
            await store.set(f"ns:{name}", "v")

        cursor, first = await store.scan(0, "ns:*", 2)
        await store.delete(*first)

        rest = []
        while cursor != 0:
            cursor, batch = await store.scan(cursor, "ns:*", 2)
            rest.extend(batch)

        assert sorted(rest) == ["ns:c", "ns:d", "ns:e"]

    @pytest.mark.asyncio
    async def test_scan_empty_store(self, store):
        """Test scanning an empty store ends at once."""
        assert await store.scan(0, "*", 10) == (0, [])


class TestMemoryStore:
    """Memory store specifics."""

    def test_memory_store_initialization(self, memory_store):
        """Test memory store starts empty."""
        assert memory_store._data == {}

    @pytest.mark.asyncio
    async def test_expired_entries_dropped_on_access(self, memory_store):
        """Test expired entries are removed lazily."""
        await memory_store.set("key", "v", ttl=1)
        memory_store._data["key"]["expires"] = 0.0001

        assert await memory_store.get("key") is None
        assert "key" not in memory_store._data


class TestDiskStore:
    """Disk store specifics."""

    def test_disk_store_initialization(self, temp_cache_dir):
        """Test disk store creates its directory."""
        store = DiskStore(cache_dir=f"{temp_cache_dir}/nested")
        assert store.cache_dir == f"{temp_cache_dir}/nested"
        store._cache.close()

    @pytest.mark.asyncio
    async def test_disk_store_persistence(self, temp_cache_dir):
        """Test values survive reopening the directory."""
        first = DiskStore(cache_dir=temp_cache_dir)
        await first.set("persistent", "value")
        await first.close()

        second = DiskStore(cache_dir=temp_cache_dir)
        assert await second.get("persistent") == "value"
        await second.close()


class TestRedisStore:
    """Test the redis adapter maps onto redis.asyncio calls."""

    @pytest.fixture
    def client(self):
        """Provide a mocked async Redis client."""
        return AsyncMock()

    @pytest.fixture
    def redis_store(self, client):
        return RedisStore(client)

    @pytest.mark.asyncio
    async def test_get_decodes_bytes(self, redis_store, client):
        """Test bytes replies are decoded."""
        client.get.return_value = b"value"
        assert await redis_store.get("key") == "value"
        client.get.assert_awaited_once_with("key")

    @pytest.mark.asyncio
    async def test_get_absent(self, redis_store, client):
        client.get.return_value = None
        assert await redis_store.get("key") is None

    @pytest.mark.asyncio
    async def test_set_with_expiry(self, redis_store, client):
        """Test SET with EX."""
        await redis_store.set("key", "value", 30)
        client.set.assert_awaited_once_with("key", "value", ex=30)

    @pytest.mark.asyncio
    async def test_set_without_expiry(self, redis_store, client):
        await redis_store.set("key", "value")
        client.set.assert_awaited_once_with("key", "value", ex=None)

    @pytest.mark.asyncio
    async def test_set_if_not_exists_uses_nx(self, redis_store, client):
        """Test conditional set is a single SET NX call."""
        client.set.return_value = True
        assert await redis_store.set_if_not_exists("key", "v", 10) is True
        client.set.assert_awaited_once_with("key", "v", ex=10, nx=True)

        client.set.return_value = None
        assert await redis_store.set_if_not_exists("key", "v") is False

    @pytest.mark.asyncio
    async def test_delete(self, redis_store, client):
        client.delete.return_value = 2
        assert await redis_store.delete("a", "b") == 2
        client.delete.assert_awaited_once_with("a", "b")

    @pytest.mark.asyncio
    async def test_delete_nothing_skips_call(self, redis_store, client):
        """Test DEL is not sent without keys."""
        assert await redis_store.delete() == 0
        client.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_exists(self, redis_store, client):
        client.exists.return_value = 1
        assert await redis_store.exists("key") is True
        client.exists.return_value = 0
        assert await redis_store.exists("key") is False

    @pytest.mark.asyncio
    async def test_counters(self, redis_store, client):
        """Test counters use INCRBY and DECRBY."""
        client.incrby.return_value = 3
        client.decrby.return_value = 1
        assert await redis_store.incr("n", 3) == 3
        assert await redis_store.decr("n", 2) == 1
        client.incrby.assert_awaited_once_with("n", 3)
        client.decrby.assert_awaited_once_with("n", 2)

    @pytest.mark.asyncio
    async def test_expire_and_ttl(self, redis_store, client):
        client.expire.return_value = 1
        client.ttl.return_value = KEY_MISSING
        assert await redis_store.expire("key", 5) is True
        assert await redis_store.ttl("key") == KEY_MISSING
        client.expire.assert_awaited_once_with("key", 5)

    @pytest.mark.asyncio
    async def test_keys_decoded(self, redis_store, client):
        client.keys.return_value = [b"cache:a", "cache:b"]
        assert await redis_store.keys("cache:*") == ["cache:a", "cache:b"]
        client.keys.assert_awaited_once_with("cache:*")

    @pytest.mark.asyncio
    async def test_scan(self, redis_store, client):
        """Test SCAN arguments and reply decoding."""
        client.scan.return_value = (b"17", [b"cache:a"])
        assert await redis_store.scan(0, "cache:*", 50) == (17, ["cache:a"])
        client.scan.assert_awaited_once_with(cursor=0, match="cache:*", count=50)

    @pytest.mark.asyncio
    async def test_close(self, redis_store, client):
        await redis_store.close()
        client.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connection_errors_propagate(self, redis_store, client):
        """Test client failures are not swallowed."""
        client.get.side_effect = ConnectionError("down")
        with pytest.raises(ConnectionError):
            await redis_store.get("key")

    def test_from_url(self):
        """Test building a store from a URL."""
        store = RedisStore.from_url("redis://localhost:6380/2")
        kwargs = store.client.connection_pool.connection_kwargs
        assert kwargs["port"] == 6380
        assert kwargs["db"] == 2
        assert kwargs["decode_responses"] is True

    def test_from_options(self):
        """Test building a store from keyword arguments."""
        store = RedisStore.from_options(host="example", port=6390)
        kwargs = store.client.connection_pool.connection_kwargs
        assert kwargs["host"] == "example"
        assert kwargs["port"] == 6390
        assert kwargs["decode_responses"] is True
