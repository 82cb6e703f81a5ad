"""
Todo service for the Todo Access Layer.

Lists and items live in PostgreSQL; GET routes are served cache-aside from a
per-owner Redis hash and every mutation invalidates the affected fields.
"""

import json
from typing import Dict, Optional

from fastapi import Depends, Path, Response
from fastapi.responses import JSONResponse

from shared.base_service import BaseService
from shared.config import ServiceConfig

from .auth import TokenVerifier, OwnerDependency
from .cache import (
    CacheStore, CollectionCacheAdapter, ItemCacheAdapter, CacheInvalidator, read_through
)
from .models import (
    ListCreateRequest, ItemCreateRequest, UpdateListInput, UpdateItemInput,
    AllListsResponse, CreatedResponse, StatusResponse
)
from .persistence.postgres import TodoRepository


SERVICE_NAME = "todo"
SERVICE_PORT = 8020


def _json(payload: str) -> Response:
    """Serve cached JSON text without re-encoding it."""
    return Response(content=payload, media_type="application/json")


class TodoService(BaseService):
    """Todo lists service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        cache_store: Optional[CacheStore] = None,
        repository: Optional[TodoRepository] = None
    ):
        super().__init__(SERVICE_NAME, SERVICE_PORT, config)

        self.repository = repository or TodoRepository(self.config.postgres_dsn)
        self.cache_store = cache_store or CacheStore(
            self.config.redis_url,
            ttl_seconds=self.config.cache_ttl_seconds,
            op_timeout=self.config.cache_op_timeout_seconds,
            metrics=self.metrics
        )
        self.collections_cache = CollectionCacheAdapter(self.cache_store, metrics=self.metrics)
        self.items_cache = ItemCacheAdapter(self.cache_store, metrics=self.metrics)
        self.invalidator = CacheInvalidator(self.collections_cache, self.items_cache)

        self.owner = OwnerDependency(
            TokenVerifier(self.config.jwt_secret, self.config.jwt_algorithm)
        )

        self._setup_todo_routes()

    def _setup_todo_routes(self):
        """Set up list and item routes."""
        owner = self.owner

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": SERVICE_NAME,
                "message": "Todo Access Layer - Todo Service",
                "version": "1.0.0",
                "capabilities": ["lists", "items", "caching", "persistence"]
            }

        # Lists

        @self.app.post("/api/lists", response_model=CreatedResponse)
        async def create_list(request: ListCreateRequest, owner_id: int = Depends(owner)):
            """Create a list; only the cached list of lists goes stale."""
            list_id = await self.repository.create_collection(owner_id, request)
            await self.invalidator.collection_created(owner_id)
            return CreatedResponse(id=list_id)

        @self.app.get("/api/lists", response_model=AllListsResponse)
        async def get_all_lists(owner_id: int = Depends(owner)):
            """Get all lists of the caller."""
            payload = await read_through(
                lambda: self.collections_cache.get(owner_id),
                lambda: self.repository.read_collections(owner_id),
                lambda data: self.collections_cache.set(owner_id, data),
            )
            return JSONResponse(content={"data": json.loads(payload)})

        @self.app.get("/api/lists/{list_id}")
        async def get_list(list_id: int = Path(..., ge=0), owner_id: int = Depends(owner)):
            """Get one list."""
            payload = await read_through(
                lambda: self.collections_cache.get(owner_id, list_id),
                lambda: self.repository.read_collection(owner_id, list_id),
                lambda data: self.collections_cache.set(owner_id, data, list_id),
            )
            return _json(payload)

        @self.app.put("/api/lists/{list_id}", response_model=StatusResponse)
        async def update_list(
            request: UpdateListInput,
            list_id: int = Path(..., ge=0),
            owner_id: int = Depends(owner)
        ):
            """Update a list."""
            request.validate_has_values()
            await self.repository.update_collection(owner_id, list_id, request)
            await self.invalidator.collection_updated(owner_id, list_id)
            return StatusResponse()

        @self.app.delete("/api/lists/{list_id}", response_model=StatusResponse)
        async def delete_list(list_id: int = Path(..., ge=0), owner_id: int = Depends(owner)):
            """Delete a list and its items."""
            await self.repository.delete_collection(owner_id, list_id)
            await self.invalidator.collection_deleted(owner_id, list_id)
            return StatusResponse()

        # Items

        @self.app.post("/api/lists/{list_id}/items", response_model=CreatedResponse)
        async def create_item(
            request: ItemCreateRequest,
            list_id: int = Path(..., ge=0),
            owner_id: int = Depends(owner)
        ):
            """Create an item; only the list's cached item list goes stale."""
            item_id = await self.repository.create_item(owner_id, list_id, request)
            await self.invalidator.item_created(owner_id, list_id)
            return CreatedResponse(id=item_id)

        @self.app.get("/api/lists/{list_id}/items")
        async def get_all_items(list_id: int = Path(..., ge=0), owner_id: int = Depends(owner)):
            """Get all items of a list."""
            payload = await read_through(
                lambda: self.items_cache.get(owner_id, collection_id=list_id),
                lambda: self.repository.read_items(owner_id, list_id),
                lambda data: self.items_cache.set(owner_id, data, collection_id=list_id),
            )
            return _json(payload)

        @self.app.get("/api/items/{item_id}")
        async def get_item(item_id: int = Path(..., ge=0), owner_id: int = Depends(owner)):
            """Get one item."""
            payload = await read_through(
                lambda: self.items_cache.get(owner_id, item_id=item_id),
                lambda: self.repository.read_item(owner_id, item_id),
                lambda data: self.items_cache.set(owner_id, data, item_id=item_id),
            )
            return _json(payload)

        @self.app.put("/api/items/{item_id}", response_model=StatusResponse)
        async def update_item(
            request: UpdateItemInput,
            item_id: int = Path(..., ge=0),
            owner_id: int = Depends(owner)
        ):
            """Update an item."""
            request.validate_has_values()
            await self.repository.update_item(owner_id, item_id, request)
            await self.invalidator.item_updated(owner_id, item_id)
            return StatusResponse()

        @self.app.delete("/api/items/{item_id}", response_model=StatusResponse)
        async def delete_item(item_id: int = Path(..., ge=0), owner_id: int = Depends(owner)):
            """Delete an item."""
            await self.repository.delete_item(owner_id, item_id)
            await self.invalidator.item_deleted(owner_id, item_id)
            return StatusResponse()

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check Redis and PostgreSQL."""
        return {
            "redis": "ok" if await self.cache_store.health_check() else "error",
            "postgres": "ok" if await self.repository.health_check() else "error",
        }

    async def start(self):
        """Start todo service components."""
        await self.repository.start()
        await self.cache_store.start()

        if self.config.cache_flush_on_start:
            await self.cache_store.flush()

        self.logger.info("Todo service started", cache_ttl_seconds=self.cache_store.ttl_seconds)

    async def stop(self):
        """Stop todo service components."""
        await self.repository.stop()
        await self.cache_store.stop()

        self.logger.info("Todo service stopped")


def create_app(config: Optional[ServiceConfig] = None):
    """Create todo service application."""
    service = TodoService(config)
    return service.app


if __name__ == "__main__":
    service = TodoService()
    service.run()
