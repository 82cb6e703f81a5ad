"""
Key naming for the per-owner cache records.

Every owner gets one Redis hash at ``owner:<owner_id>``. Fields inside the
hash are one of::

    collections                 all lists of the owner
    collection:<collection_id>  one list
    items:<collection_id>       all items of one list
    item:<item_id>              one item

Identifiers that do not apply are passed as ``None``; negative integers are
accepted as "not applicable" too.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from shared.errors import InvalidKeyCombination


RECORD_PREFIX = "owner"


@dataclass(frozen=True)
class CollectionsField:
    """The owner's full list of collections."""

    kind = "collections"


@dataclass(frozen=True)
class CollectionField:
    collection_id: int

    kind = "collection"


@dataclass(frozen=True)
class ItemsField:
    """All items of one collection."""

    collection_id: int

    kind = "items"


@dataclass(frozen=True)
class ItemField:
    item_id: int

    kind = "item"


FieldKey = Union[CollectionsField, CollectionField, ItemsField, ItemField]


def field_name(key: FieldKey) -> str:
    """Serialize a field key to the hash field name stored in Redis."""
    if isinstance(key, CollectionsField):
        return "collections"
    if isinstance(key, CollectionField):
        return f"collection:{key.collection_id}"
    if isinstance(key, ItemsField):
        return f"items:{key.collection_id}"
    if isinstance(key, ItemField):
        return f"item:{key.item_id}"
    raise TypeError(f"unsupported field key: {key!r}")


def parse_field_name(name: str) -> FieldKey:
    """Inverse of :func:`field_name`."""
    if name == "collections":
        return CollectionsField()

    kind, sep, raw_id = name.partition(":")
    if not sep or not raw_id.isdigit():
        raise ValueError(f"malformed cache field name: {name!r}")

    ident = int(raw_id)
    if kind == "collection":
        return CollectionField(ident)
    if kind == "items":
        return ItemsField(ident)
    if kind == "item":
        return ItemField(ident)
    raise ValueError(f"unknown cache field kind: {kind!r}")


def record_key(owner_id: int) -> str:
    """Redis key of the hash holding every cached field of an owner."""
    return f"{RECORD_PREFIX}:{owner_id}"


def _applicable(ident: Optional[int]) -> bool:
    return ident is not None and ident >= 0


class KeySpace:
    """Resolves domain identifiers to ``(record_key, field_key)`` pairs."""

    def collection_key(
        self,
        collection_id: Optional[int] = None,
        item_id: Optional[int] = None
    ) -> FieldKey:
        """Field for the collection read paths.

        No collection id selects the full collection list. An item id is never
        valid here.
        """
        if _applicable(item_id):
            raise InvalidKeyCombination(collection_id, item_id, "collection")
        if _applicable(collection_id):
            return CollectionField(collection_id)
        return CollectionsField()

    def item_key(
        self,
        collection_id: Optional[int] = None,
        item_id: Optional[int] = None
    ) -> FieldKey:
        """Field for the item read paths.

        Exactly one of ``collection_id`` (item list) or ``item_id`` (single
        item) must be supplied.
        """
        has_collection = _applicable(collection_id)
        has_item = _applicable(item_id)
        if has_collection == has_item:
            raise InvalidKeyCombination(collection_id, item_id, "item")
        if has_collection:
            return ItemsField(collection_id)
        return ItemField(item_id)

    def resolve_collection(
        self,
        owner_id: int,
        collection_id: Optional[int] = None,
        item_id: Optional[int] = None
    ) -> Tuple[str, str]:
        return record_key(owner_id), field_name(self.collection_key(collection_id, item_id))

    def resolve_item(
        self,
        owner_id: int,
        collection_id: Optional[int] = None,
        item_id: Optional[int] = None
    ) -> Tuple[str, str]:
        return record_key(owner_id), field_name(self.item_key(collection_id, item_id))
