"""
Domain façades over the cache store.

Handlers talk to these adapters with list and item identifiers; the adapters
resolve field names through the key space and never hand out raw Redis keys.
Payloads are JSON text produced and parsed by the caller.
"""

from typing import Optional, TYPE_CHECKING

from shared.logging import get_logger
from .keyspace import KeySpace, FieldKey, field_name, record_key
from .store import CacheStore

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class _OwnerCacheAdapter:
    """Get/set/invalidate plumbing shared by both adapters."""

    logger_name = "todo.cache"

    def __init__(
        self,
        store: CacheStore,
        keyspace: Optional[KeySpace] = None,
        *,
        metrics: Optional["MetricsCollector"] = None
    ):
        self.store = store
        self.keyspace = keyspace or KeySpace()
        self.metrics = metrics
        self.logger = get_logger(self.logger_name)

    async def _get(self, owner_id: int, key: FieldKey) -> Optional[str]:
        field = field_name(key)
        payload = await self.store.get_field(record_key(owner_id), field)

        if payload is None:
            self.logger.debug("Cache miss", owner_id=owner_id, field=field)
            self._count("cache_misses_total", field=key.kind)
        else:
            self.logger.debug("Cache hit", owner_id=owner_id, field=field)
            self._count("cache_hits_total", field=key.kind)
        return payload

    async def _set(self, owner_id: int, key: FieldKey, payload: str) -> bool:
        return await self.store.set_field(record_key(owner_id), field_name(key), payload)

    async def _invalidate_one(self, owner_id: int, key: FieldKey) -> bool:
        field = field_name(key)
        removed = await self.store.delete_field(record_key(owner_id), field)
        self.logger.info("Invalidated cache field", owner_id=owner_id, field=field, removed=removed)
        self._count("cache_invalidations_total", scope=key.kind)
        return removed

    async def invalidate_all(self, owner_id: int) -> bool:
        """Drop the whole cache record of an owner."""
        removed = await self.store.delete_record(record_key(owner_id))
        self.logger.info("Invalidated owner cache", owner_id=owner_id, removed=removed)
        self._count("cache_invalidations_total", scope="owner")
        return removed

    def _count(self, metric_name: str, **labels):
        if self.metrics:
            self.metrics.increment_counter(metric_name, **labels)


class CollectionCacheAdapter(_OwnerCacheAdapter):
    """Cache of the ``collections`` and ``collection:<id>`` fields.

    ``collection_id=None`` addresses the owner's full list.
    """

    logger_name = "todo.cache.collections"

    async def get(self, owner_id: int, collection_id: Optional[int] = None) -> Optional[str]:
        return await self._get(owner_id, self.keyspace.collection_key(collection_id))

    async def set(self, owner_id: int, payload: str, collection_id: Optional[int] = None) -> bool:
        return await self._set(owner_id, self.keyspace.collection_key(collection_id), payload)

    async def invalidate_one(self, owner_id: int, collection_id: Optional[int] = None) -> bool:
        return await self._invalidate_one(owner_id, self.keyspace.collection_key(collection_id))


class ItemCacheAdapter(_OwnerCacheAdapter):
    """Cache of the ``items:<collection_id>`` and ``item:<id>`` fields.

    Pass ``collection_id`` for a list's items or ``item_id`` for one item,
    never both.
    """

    logger_name = "todo.cache.items"

    async def get(
        self,
        owner_id: int,
        *,
        collection_id: Optional[int] = None,
        item_id: Optional[int] = None
    ) -> Optional[str]:
        return await self._get(owner_id, self.keyspace.item_key(collection_id, item_id))

    async def set(
        self,
        owner_id: int,
        payload: str,
        *,
        collection_id: Optional[int] = None,
        item_id: Optional[int] = None
    ) -> bool:
        return await self._set(owner_id, self.keyspace.item_key(collection_id, item_id), payload)

    async def invalidate_one(
        self,
        owner_id: int,
        *,
        collection_id: Optional[int] = None,
        item_id: Optional[int] = None
    ) -> bool:
        return await self._invalidate_one(owner_id, self.keyspace.item_key(collection_id, item_id))
