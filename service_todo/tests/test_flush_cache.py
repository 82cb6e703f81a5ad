"""
Unit tests for the cache flush script.
"""

import pytest
from unittest.mock import patch

from service_todo.app.cache import CacheStore
from scripts import flush_cache


@pytest.fixture
def patched_store(fake_redis):
    with patch.object(flush_cache, "CacheStore", lambda *args, **kwargs: CacheStore(client=fake_redis, **kwargs)):
        yield fake_redis


def _run(**overrides):
    options = dict(
        redis_url="redis://localhost:6379/0",
        owner=None,
        flush_all=False,
        inspect=False,
        dry_run=False,
        op_timeout=1.0,
    )
    options.update(overrides)
    return flush_cache.run(**options)


class TestFlushCache:
    """Test cases for the flush_cache script."""

    @pytest.mark.asyncio
    async def test_owner_flush(self, patched_store):
        patched_store.hashes["owner:5"] = {"collections": "[]", "item:3": "{}"}
        patched_store.hashes["owner:6"] = {"collections": "[]"}

        summary = await _run(owner=5)

        assert summary["fields"] == ["collections", "item:3"]
        assert summary["deleted"] is True
        assert "owner:5" not in patched_store.hashes
        assert "owner:6" in patched_store.hashes
        assert patched_store.closed is True

    @pytest.mark.asyncio
    async def test_inspect_does_not_delete(self, patched_store):
        patched_store.hashes["owner:5"] = {"collections": "[]", "items:1": "[]"}

        summary = await _run(owner=5, inspect=True)

        assert summary["kinds"] == ["collections", "items"]
        assert summary["invalid_fields"] == []
        assert "owner:5" in patched_store.hashes

    @pytest.mark.asyncio
    async def test_dry_run(self, patched_store):
        patched_store.hashes["owner:5"] = {"collections": "[]"}

        summary = await _run(owner=5, flush_all=True, dry_run=True)

        assert "deleted" not in summary
        assert "flushed" not in summary
        assert "owner:5" in patched_store.hashes

    @pytest.mark.asyncio
    async def test_flush_all(self, patched_store):
        patched_store.hashes["owner:5"] = {"collections": "[]"}

        summary = await _run(flush_all=True)

        assert summary["flushed"] is True
        assert patched_store.hashes == {}

    @pytest.mark.asyncio
    async def test_inspect_reports_malformed_fields(self, patched_store):
        patched_store.hashes["owner:5"] = {"collections": "[]", "items:abc": "[]", "legacy": "{}"}

        summary = await _run(owner=5, inspect=True)

        assert summary["kinds"] == ["collections"]
        assert summary["invalid_fields"] == ["items:abc", "legacy"]
        assert "owner:5" in patched_store.hashes
