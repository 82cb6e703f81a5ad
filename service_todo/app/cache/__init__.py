"""
Cache package for the Todo service.

Per-owner Redis hashes hold JSON projections of lists and items. Reads go
through the cache first and fill it on a miss; writes to PostgreSQL are
followed by field-level or owner-level invalidation.
"""

from .keyspace import (
    KeySpace,
    FieldKey,
    CollectionsField,
    CollectionField,
    ItemsField,
    ItemField,
    field_name,
    parse_field_name,
    record_key,
)
from .store import CacheStore
from .adapters import CollectionCacheAdapter, ItemCacheAdapter
from .aside import CacheInvalidator, read_through, to_payload

__all__ = [
    "KeySpace",
    "FieldKey",
    "CollectionsField",
    "CollectionField",
    "ItemsField",
    "ItemField",
    "field_name",
    "parse_field_name",
    "record_key",
    "CacheStore",
    "CollectionCacheAdapter",
    "ItemCacheAdapter",
    "CacheInvalidator",
    "read_through",
    "to_payload",
]
