"""
Redis hash store backing the owner cache records.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Optional, TYPE_CHECKING

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.logging import get_logger
from shared.errors import StoreError

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_TTL_SECONDS = 3600
DEFAULT_OP_TIMEOUT_SECONDS = 2.0


class CacheStore:
    """Thin async wrapper over Redis hash commands.

    All state lives in Redis. Every call is bounded by ``op_timeout`` and any
    Redis failure, including a timeout, is raised as :class:`StoreError`. A
    missing field is not an error: :meth:`get_field` returns ``None``.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        *,
        client: Optional[redis.Redis] = None,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        op_timeout: float = DEFAULT_OP_TIMEOUT_SECONDS,
        metrics: Optional["MetricsCollector"] = None,
    ):
        if client is None and redis_url is None:
            raise ValueError("either redis_url or client is required")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        self.redis_url = redis_url
        self.redis: Optional[redis.Redis] = client
        self.ttl_seconds = ttl_seconds
        self.op_timeout = op_timeout
        self.metrics = metrics
        self.logger = get_logger("todo.cache.store")

    async def start(self):
        """Connect to Redis and verify the connection."""
        if self.redis is None:
            self.redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                health_check_interval=30
            )

        await self._call("ping", lambda: self.redis.ping())
        self.logger.info("Redis cache store started")

    async def stop(self):
        """Close the Redis connection."""
        if self.redis is not None:
            await self.redis.aclose()
            self.logger.info("Redis cache store stopped")

    async def _call(self, operation: str, command: Callable[[], Awaitable[Any]], **log_context) -> Any:
        """Run one remote command under the operation timeout."""
        start_time = time.time()
        try:
            return await asyncio.wait_for(command(), timeout=self.op_timeout)
        except asyncio.TimeoutError as e:
            self._record_error(operation)
            self.logger.error("Cache operation timed out", operation=operation, timeout=self.op_timeout, **log_context)
            raise StoreError(operation, f"timed out after {self.op_timeout}s", log_context) from e
        except RedisError as e:
            self._record_error(operation)
            self.logger.error("Cache operation failed", operation=operation, error=str(e), **log_context)
            raise StoreError(operation, str(e), log_context) from e
        finally:
            if self.metrics:
                self.metrics.observe_histogram(
                    "cache_operation_duration_seconds",
                    time.time() - start_time,
                    operation=operation
                )

    def _record_error(self, operation: str):
        if self.metrics:
            self.metrics.increment_counter("cache_errors_total", operation=operation)

    async def get_field(self, record_key: str, field_key: str) -> Optional[str]:
        """Read one field. ``None`` means the field is not cached."""
        value = await self._call(
            "hget",
            lambda: self.redis.hget(record_key, field_key),
            key=record_key,
            field=field_key
        )
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def set_field(self, record_key: str, field_key: str, payload: str) -> bool:
        """Store a field only if it is absent, refreshing the record TTL.

        ``HSETNX`` and ``EXPIRE`` run in one MULTI/EXEC transaction so the
        record always ends up with an expiry. Returns ``True`` when this call
        stored the payload and ``False`` when another writer got there first.
        """

        async def _write():
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.hsetnx(record_key, field_key, payload)
                pipe.expire(record_key, self.ttl_seconds)
                return await pipe.execute()

        results = await self._call("hsetnx", _write, key=record_key, field=field_key)
        stored = bool(results[0])
        self.logger.debug(
            "Cached field" if stored else "Field already cached",
            key=record_key,
            field=field_key,
            ttl=self.ttl_seconds
        )
        return stored

    async def refresh_ttl(self, record_key: str, ttl_seconds: Optional[int] = None) -> bool:
        """Reset the expiry of a whole record. ``False`` if the record is gone."""
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        result = await self._call("expire", lambda: self.redis.expire(record_key, ttl), key=record_key)
        return bool(result)

    async def delete_field(self, record_key: str, field_key: str) -> bool:
        """Delete one field. ``False`` if it was not cached."""
        removed = await self._call(
            "hdel",
            lambda: self.redis.hdel(record_key, field_key),
            key=record_key,
            field=field_key
        )
        return bool(removed)

    async def delete_record(self, record_key: str) -> bool:
        """Delete every field of a record. ``False`` if nothing was cached."""
        removed = await self._call("del", lambda: self.redis.delete(record_key), key=record_key)
        return bool(removed)

    async def list_fields(self, record_key: str) -> Dict[str, str]:
        """All cached fields of a record, for inspection tooling."""
        return await self._call("hgetall", lambda: self.redis.hgetall(record_key), key=record_key)

    async def flush(self):
        """Drop the whole cache database (bootstrap and admin use only)."""
        await self._call("flushdb", lambda: self.redis.flushdb())
        self.logger.warning("Cache database flushed")

    async def health_check(self) -> bool:
        """Check Redis health."""
        try:
            await self._call("ping", lambda: self.redis.ping())
            return True
        except StoreError:
            return False
