"""
Cache-aside read path and the mutation-to-invalidation policy.
"""

import json
from typing import Any, Awaitable, Callable, Optional

from shared.logging import get_logger
from .adapters import CollectionCacheAdapter, ItemCacheAdapter


logger = get_logger("todo.cache.aside")


def to_payload(value: Any) -> str:
    """JSON text for a pydantic model, a list of them, or plain data."""
    if isinstance(value, list):
        return json.dumps([_plain(v) for v in value])
    return json.dumps(_plain(value))


def _plain(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    return value


async def read_through(
    get: Callable[[], Awaitable[Optional[str]]],
    load: Callable[[], Awaitable[Any]],
    put: Callable[[str], Awaitable[bool]],
    serialize: Callable[[Any], str] = to_payload,
) -> str:
    """Return the cached payload, filling the cache from the source on a miss.

    Store errors from ``get`` or ``put`` propagate; the source of truth is
    not consulted when the cache itself fails. If ``load`` raises, nothing is
    written to the cache.
    """
    payload = await get()
    if payload is not None:
        return payload

    value = await load()
    payload = serialize(value)
    if not await put(payload):
        # A concurrent filler won the HSETNX race with an equivalent value
        logger.debug("Cache fill skipped, field already populated")
    return payload


class CacheInvalidator:
    """Maps source-of-truth mutations to cache invalidations.

    Creates only drop the list that gained an entry. Updates and deletes drop
    the owner's whole record: a collection can appear in several cached
    projections, and an item update does not know which list's item field is
    stale without an extra lookup.
    """

    def __init__(self, collections: CollectionCacheAdapter, items: ItemCacheAdapter):
        self.collections = collections
        self.items = items

    async def collection_created(self, owner_id: int):
        await self.collections.invalidate_one(owner_id)

    async def collection_updated(self, owner_id: int, collection_id: int):
        await self.collections.invalidate_all(owner_id)

    async def collection_deleted(self, owner_id: int, collection_id: int):
        await self.collections.invalidate_all(owner_id)

    async def item_created(self, owner_id: int, collection_id: int):
        await self.items.invalidate_one(owner_id, collection_id=collection_id)

    async def item_updated(self, owner_id: int, item_id: int):
        await self.items.invalidate_all(owner_id)

    async def item_deleted(self, owner_id: int, item_id: int):
        await self.items.invalidate_all(owner_id)
