"""
PostgreSQL persistence layer for the Todo service.

This is the source of truth behind the cache. Every query is scoped to the
owner through the ``users_lists`` and ``lists_items`` join tables, so a list
or item that belongs to someone else looks exactly like a missing one.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import List, Optional

import asyncpg

from shared.logging import get_logger
from shared.errors import ResourceNotFoundError, SourceOfTruthError
from ..models import (
    TodoList, TodoItem, ListCreateRequest, ItemCreateRequest,
    UpdateListInput, UpdateItemInput
)


# asyncpg raises asyncio.TimeoutError when command_timeout fires
DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


class TodoRepository:
    """asyncpg-backed repository for lists and items."""

    def __init__(self, dsn: str, *, pool: Optional[asyncpg.Pool] = None):
        self.dsn = dsn
        self.logger = get_logger("todo.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = pool

    async def start(self):
        """Start the persistence layer."""
        if self.pool is None:
            try:
                self.pool = await asyncpg.create_pool(
                    self.dsn,
                    min_size=2,
                    max_size=10,
                    command_timeout=30
                )
            except DB_ERRORS as e:
                self.logger.error("Failed to start PostgreSQL persistence", error=str(e))
                raise SourceOfTruthError("connect", str(e)) from e

        await self._create_tables()
        self.logger.info("PostgreSQL persistence started")

    async def stop(self):
        """Stop the persistence layer."""
        if self.pool:
            await self.pool.close()
            self.logger.info("PostgreSQL persistence stopped")

    @asynccontextmanager
    async def _connection(self, operation: str):
        """Acquire a connection, translating driver errors."""
        try:
            async with self.pool.acquire() as conn:
                yield conn
        except DB_ERRORS as e:
            self.logger.error("Database operation failed", operation=operation, error=str(e))
            raise SourceOfTruthError(operation, str(e)) from e

    async def _create_tables(self):
        """Create database tables."""
        async with self._connection("create_tables") as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS todo_lists (
                    id SERIAL PRIMARY KEY,
                    title VARCHAR(255) NOT NULL,
                    description VARCHAR(255) NOT NULL DEFAULT ''
                );
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS users_lists (
                    id SERIAL PRIMARY KEY,
                    user_id INTEGER NOT NULL,
                    list_id INTEGER NOT NULL REFERENCES todo_lists (id) ON DELETE CASCADE
                );
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS todo_items (
                    id SERIAL PRIMARY KEY,
                    title VARCHAR(255) NOT NULL,
                    description VARCHAR(255) NOT NULL DEFAULT '',
                    done BOOLEAN NOT NULL DEFAULT FALSE
                );
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS lists_items (
                    id SERIAL PRIMARY KEY,
                    item_id INTEGER NOT NULL REFERENCES todo_items (id) ON DELETE CASCADE,
                    list_id INTEGER NOT NULL REFERENCES todo_lists (id) ON DELETE CASCADE
                );
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_users_lists_user ON users_lists(user_id);
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_lists_items_list ON lists_items(list_id);
            """)

    # Lists

    async def read_collections(self, owner_id: int) -> List[TodoList]:
        """All lists of an owner."""
        async with self._connection("read_collections") as conn:
            rows = await conn.fetch("""
                SELECT tl.id, tl.title, tl.description
                FROM todo_lists tl
                JOIN users_lists ul ON ul.list_id = tl.id
                WHERE ul.user_id = $1
                ORDER BY tl.id
            """, owner_id)
            return [self._row_to_list(row) for row in rows]

    async def read_collection(self, owner_id: int, collection_id: int) -> TodoList:
        """One list of an owner."""
        async with self._connection("read_collection") as conn:
            row = await conn.fetchrow("""
                SELECT tl.id, tl.title, tl.description
                FROM todo_lists tl
                JOIN users_lists ul ON ul.list_id = tl.id
                WHERE ul.user_id = $1 AND tl.id = $2
            """, owner_id, collection_id)

        if row is None:
            raise ResourceNotFoundError("list", collection_id)
        return self._row_to_list(row)

    async def create_collection(self, owner_id: int, data: ListCreateRequest) -> int:
        """Insert a list and link it to its owner."""
        async with self._connection("create_collection") as conn:
            async with conn.transaction():
                list_id = await conn.fetchval("""
                    INSERT INTO todo_lists (title, description) VALUES ($1, $2) RETURNING id
                """, data.title, data.description)
                await conn.execute("""
                    INSERT INTO users_lists (user_id, list_id) VALUES ($1, $2)
                """, owner_id, list_id)

        self.logger.info("List created", owner_id=owner_id, list_id=list_id)
        return list_id

    async def update_collection(self, owner_id: int, collection_id: int, data: UpdateListInput):
        """Apply a partial update to a list."""
        async with self._connection("update_collection") as conn:
            result = await conn.execute("""
                UPDATE todo_lists tl
                SET title = COALESCE($3, tl.title),
                    description = COALESCE($4, tl.description)
                FROM users_lists ul
                WHERE tl.id = ul.list_id AND ul.user_id = $1 AND tl.id = $2
            """, owner_id, collection_id, data.title, data.description)

        if result == "UPDATE 0":
            raise ResourceNotFoundError("list", collection_id)
        self.logger.info("List updated", owner_id=owner_id, list_id=collection_id)

    async def delete_collection(self, owner_id: int, collection_id: int):
        """Delete a list together with its items."""
        async with self._connection("delete_collection") as conn:
            async with conn.transaction():
                owned = await conn.fetchval("""
                    SELECT 1 FROM users_lists WHERE user_id = $1 AND list_id = $2
                """, owner_id, collection_id)
                if not owned:
                    raise ResourceNotFoundError("list", collection_id)

                await conn.execute("""
                    DELETE FROM todo_items ti
                    USING lists_items li
                    WHERE ti.id = li.item_id AND li.list_id = $1
                """, collection_id)
                await conn.execute("""
                    DELETE FROM todo_lists WHERE id = $1
                """, collection_id)

        self.logger.info("List deleted", owner_id=owner_id, list_id=collection_id)

    # Items

    async def read_items(self, owner_id: int, collection_id: int) -> List[TodoItem]:
        """All items of one of the owner's lists."""
        async with self._connection("read_items") as conn:
            rows = await conn.fetch("""
                SELECT ti.id, ti.title, ti.description, ti.done
                FROM todo_items ti
                JOIN lists_items li ON li.item_id = ti.id
                JOIN users_lists ul ON ul.list_id = li.list_id
                WHERE ul.user_id = $1 AND li.list_id = $2
                ORDER BY ti.id
            """, owner_id, collection_id)
            return [self._row_to_item(row) for row in rows]

    async def read_item(self, owner_id: int, item_id: int) -> TodoItem:
        """One item of the owner."""
        async with self._connection("read_item") as conn:
            row = await conn.fetchrow("""
                SELECT ti.id, ti.title, ti.description, ti.done
                FROM todo_items ti
                JOIN lists_items li ON li.item_id = ti.id
                JOIN users_lists ul ON ul.list_id = li.list_id
                WHERE ul.user_id = $1 AND ti.id = $2
            """, owner_id, item_id)

        if row is None:
            raise ResourceNotFoundError("item", item_id)
        return self._row_to_item(row)

    async def create_item(self, owner_id: int, collection_id: int, data: ItemCreateRequest) -> int:
        """Insert an item into one of the owner's lists."""
        async with self._connection("create_item") as conn:
            async with conn.transaction():
                owned = await conn.fetchval("""
                    SELECT 1 FROM users_lists WHERE user_id = $1 AND list_id = $2
                """, owner_id, collection_id)
                if not owned:
                    raise ResourceNotFoundError("list", collection_id)

                item_id = await conn.fetchval("""
                    INSERT INTO todo_items (title, description, done) VALUES ($1, $2, $3) RETURNING id
                """, data.title, data.description, data.done)
                await conn.execute("""
                    INSERT INTO lists_items (item_id, list_id) VALUES ($1, $2)
                """, item_id, collection_id)

        self.logger.info("Item created", owner_id=owner_id, list_id=collection_id, item_id=item_id)
        return item_id

    async def update_item(self, owner_id: int, item_id: int, data: UpdateItemInput):
        """Apply a partial update to an item."""
        async with self._connection("update_item") as conn:
            result = await conn.execute("""
                UPDATE todo_items ti
                SET title = COALESCE($3, ti.title),
                    description = COALESCE($4, ti.description),
                    done = COALESCE($5, ti.done)
                FROM lists_items li, users_lists ul
                WHERE ti.id = li.item_id AND li.list_id = ul.list_id
                  AND ul.user_id = $1 AND ti.id = $2
            """, owner_id, item_id, data.title, data.description, data.done)

        if result == "UPDATE 0":
            raise ResourceNotFoundError("item", item_id)
        self.logger.info("Item updated", owner_id=owner_id, item_id=item_id)

    async def delete_item(self, owner_id: int, item_id: int):
        """Delete one of the owner's items."""
        async with self._connection("delete_item") as conn:
            result = await conn.execute("""
                DELETE FROM todo_items ti
                USING lists_items li, users_lists ul
                WHERE ti.id = li.item_id AND li.list_id = ul.list_id
                  AND ul.user_id = $1 AND ti.id = $2
            """, owner_id, item_id)

        if result == "DELETE 0":
            raise ResourceNotFoundError("item", item_id)
        self.logger.info("Item deleted", owner_id=owner_id, item_id=item_id)

    def _row_to_list(self, row) -> TodoList:
        return TodoList(id=row['id'], title=row['title'], description=row['description'])

    def _row_to_item(self, row) -> TodoItem:
        return TodoItem(
            id=row['id'],
            title=row['title'],
            description=row['description'],
            done=row['done']
        )

    async def health_check(self) -> bool:
        """Check database health."""
        if self.pool is None:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
                return True
        except DB_ERRORS:
            return False
