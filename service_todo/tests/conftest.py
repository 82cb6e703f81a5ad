"""
Shared fixtures for Todo service tests.
"""

import asyncio
from typing import Dict, List, Optional
from unittest.mock import AsyncMock

import jwt
import pytest
from fastapi.testclient import TestClient

from shared.config import get_config
from service_todo.app.cache import CacheStore, CollectionCacheAdapter, ItemCacheAdapter
from service_todo.app.main import TodoService
from service_todo.app.persistence.postgres import TodoRepository


JWT_SECRET = "todo-access-layer-test-secret-0123456789abcdefghijklmnopqrstuvwxyz"


class FakeRedis:
    """In-memory stand-in for the redis.asyncio hash commands the store uses."""

    def __init__(self):
        self.hashes: Dict[str, Dict[str, str]] = {}
        self.expiry: Dict[str, int] = {}
        self.transactions: List[bool] = []
        self.closed = False

    async def ping(self):
        return True

    async def hget(self, key: str, field: str) -> Optional[str]:
        return self.hashes.get(key, {}).get(field)

    async def hgetall(self, key: str) -> Dict[str, str]:
        return dict(self.hashes.get(key, {}))

    async def hsetnx(self, key: str, field: str, value: str) -> int:
        return self._hsetnx(key, field, value)

    async def hdel(self, key: str, *fields: str) -> int:
        record = self.hashes.get(key, {})
        removed = sum(1 for f in fields if record.pop(f, None) is not None)
        if key in self.hashes and not record:
            self._drop(key)
        return removed

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if key in self.hashes:
                self._drop(key)
                removed += 1
        return removed

    async def expire(self, key: str, seconds: int) -> bool:
        return self._expire(key, seconds)

    async def flushdb(self):
        self.hashes.clear()
        self.expiry.clear()
        return True

    async def aclose(self):
        self.closed = True

    def pipeline(self, transaction: bool = True) -> "FakePipeline":
        self.transactions.append(transaction)
        return FakePipeline(self)

    def _hsetnx(self, key: str, field: str, value: str) -> int:
        record = self.hashes.setdefault(key, {})
        if field in record:
            return 0
        record[field] = value
        return 1

    def _expire(self, key: str, seconds: int) -> bool:
        if key not in self.hashes:
            return False
        self.expiry[key] = seconds
        return True

    def _drop(self, key: str):
        self.hashes.pop(key, None)
        self.expiry.pop(key, None)


class FakePipeline:
    """Buffers commands and applies them in one step on execute()."""

    def __init__(self, redis: FakeRedis):
        self.redis = redis
        self.commands = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.commands = []
        return False

    def hsetnx(self, key, field, value):
        self.commands.append((self.redis._hsetnx, (key, field, value)))
        return self

    def expire(self, key, seconds):
        self.commands.append((self.redis._expire, (key, seconds)))
        return self

    async def execute(self):
        # Yield so concurrent callers interleave up to the atomic apply
        await asyncio.sleep(0)
        return [func(*args) for func, args in self.commands]


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def store(fake_redis):
    return CacheStore(client=fake_redis, ttl_seconds=3600, op_timeout=1.0)


@pytest.fixture
def collections_cache(store):
    return CollectionCacheAdapter(store)


@pytest.fixture
def items_cache(store):
    return ItemCacheAdapter(store)


@pytest.fixture
def repository():
    """Repository double; tests set return values per call."""
    return AsyncMock(spec=TodoRepository)


@pytest.fixture
def todo_service(store, repository):
    config = get_config(
        "todo", 8020,
        jwt_secret=JWT_SECRET,
        cache_flush_on_start=False,
    )
    return TodoService(config, cache_store=store, repository=repository)


@pytest.fixture
def client(todo_service):
    return TestClient(todo_service.app)


def make_token(user_id, secret: str = JWT_SECRET, **claims) -> str:
    return jwt.encode({"user_id": user_id, **claims}, secret, algorithm="HS256")


@pytest.fixture
def token_factory():
    return make_token


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token(5)}"}
