"""
Unit tests for the Redis cache store.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock
from redis.exceptions import ConnectionError as RedisConnectionError

from shared.errors import StoreError
from shared.metrics import MetricsCollector
from service_todo.app.cache.store import CacheStore


class TestCacheStore:
    """Test cases for CacheStore against the in-memory Redis double."""

    @pytest.mark.asyncio
    async def test_get_missing_field_returns_none(self, store):
        assert await store.get_field("owner:1", "collections") is None

    @pytest.mark.asyncio
    async def test_set_then_get(self, store):
        stored = await store.set_field("owner:1", "collections", '[{"id": 1}]')

        assert stored is True
        assert await store.get_field("owner:1", "collections") == '[{"id": 1}]'

    @pytest.mark.asyncio
    async def test_set_is_if_absent(self, store, fake_redis):
        await store.set_field("owner:1", "item:3", "first")
        stored = await store.set_field("owner:1", "item:3", "second")

        assert stored is False
        assert fake_redis.hashes["owner:1"]["item:3"] == "first"

    @pytest.mark.asyncio
    async def test_set_refreshes_record_ttl_in_transaction(self, fake_redis):
        store = CacheStore(client=fake_redis, ttl_seconds=120)

        await store.set_field("owner:1", "collections", "[]")

        assert fake_redis.expiry["owner:1"] == 120
        assert fake_redis.transactions == [True]

    @pytest.mark.asyncio
    async def test_losing_writer_still_extends_ttl(self, fake_redis):
        store = CacheStore(client=fake_redis, ttl_seconds=120)
        await store.set_field("owner:1", "collections", "[]")
        fake_redis.expiry["owner:1"] = 5

        await store.set_field("owner:1", "collections", "[]")

        assert fake_redis.expiry["owner:1"] == 120

    @pytest.mark.asyncio
    async def test_delete_field_keeps_siblings(self, store):
        await store.set_field("owner:1", "collections", "[]")
        await store.set_field("owner:1", "collection:2", "{}")

        assert await store.delete_field("owner:1", "collections") is True
        assert await store.get_field("owner:1", "collections") is None
        assert await store.get_field("owner:1", "collection:2") == "{}"

    @pytest.mark.asyncio
    async def test_delete_missing_field(self, store):
        assert await store.delete_field("owner:1", "collections") is False

    @pytest.mark.asyncio
    async def test_delete_record(self, store):
        await store.set_field("owner:1", "collections", "[]")
        await store.set_field("owner:1", "items:2", "[]")

        assert await store.delete_record("owner:1") is True
        assert await store.get_field("owner:1", "collections") is None
        assert await store.get_field("owner:1", "items:2") is None
        assert await store.delete_record("owner:1") is False

    @pytest.mark.asyncio
    async def test_refresh_ttl(self, store, fake_redis):
        assert await store.refresh_ttl("owner:1") is False

        await store.set_field("owner:1", "collections", "[]")
        assert await store.refresh_ttl("owner:1", 30) is True
        assert fake_redis.expiry["owner:1"] == 30

    @pytest.mark.asyncio
    async def test_list_fields_and_flush(self, store):
        await store.set_field("owner:1", "collections", "[]")
        await store.set_field("owner:2", "item:4", "{}")

        assert await store.list_fields("owner:1") == {"collections": "[]"}

        await store.flush()
        assert await store.list_fields("owner:2") == {}

    @pytest.mark.asyncio
    async def test_get_decodes_bytes(self):
        client = MagicMock()
        client.hget = AsyncMock(return_value=b'{"id": 1}')
        store = CacheStore(client=client)

        assert await store.get_field("owner:1", "item:1") == '{"id": 1}'

    @pytest.mark.asyncio
    async def test_redis_error_raises_store_error(self):
        client = MagicMock()
        client.hget = AsyncMock(side_effect=RedisConnectionError("connection refused"))
        store = CacheStore(client=client)

        with pytest.raises(StoreError) as exc_info:
            await store.get_field("owner:1", "collections")

        assert exc_info.value.code == "CACHE_STORE_ERROR"
        assert exc_info.value.operation == "hget"
        assert isinstance(exc_info.value.__cause__, RedisConnectionError)

    @pytest.mark.asyncio
    async def test_timeout_raises_store_error_not_miss(self):
        async def slow_hget(*args):
            await asyncio.sleep(1)
            return "late"

        client = MagicMock()
        client.hget = slow_hget
        store = CacheStore(client=client, op_timeout=0.01)

        with pytest.raises(StoreError) as exc_info:
            await store.get_field("owner:1", "collections")

        assert "timed out" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_delete_error_raises_store_error(self):
        client = MagicMock()
        client.delete = AsyncMock(side_effect=RedisConnectionError("down"))
        store = CacheStore(client=client)

        with pytest.raises(StoreError):
            await store.delete_record("owner:1")

    @pytest.mark.asyncio
    async def test_errors_are_counted(self):
        metrics = MetricsCollector("todo")
        client = MagicMock()
        client.hdel = AsyncMock(side_effect=RedisConnectionError("down"))
        store = CacheStore(client=client, metrics=metrics)

        with pytest.raises(StoreError):
            await store.delete_field("owner:1", "collections")

        value = metrics.registry.get_sample_value("cache_errors_total", {"operation": "hdel"})
        assert value == 1.0

    @pytest.mark.asyncio
    async def test_health_check(self, store):
        assert await store.health_check() is True

        client = MagicMock()
        client.ping = AsyncMock(side_effect=RedisConnectionError("down"))
        assert await CacheStore(client=client).health_check() is False

    @pytest.mark.asyncio
    async def test_start_and_stop(self, store, fake_redis):
        await store.start()
        await store.stop()

        assert fake_redis.closed is True

    def test_requires_url_or_client(self):
        with pytest.raises(ValueError):
            CacheStore()

    def test_rejects_non_positive_ttl(self, fake_redis):
        with pytest.raises(ValueError):
            CacheStore(client=fake_redis, ttl_seconds=0)
