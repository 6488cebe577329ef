"""
Postgres-backed database layer for MediaRelay.

Media records are stored as JSONB documents in a single table per collection
and accessed through a small collection-style API (find, find_one,
insert_one, delete_one, count_documents, sum_field).
"""

from __future__ import annotations

import asyncio
import datetime as dt
import json
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional

import asyncpg
from loguru import logger

from . import config

TABLE_PREFIX = "mediarelay_"
DEFAULT_COLLECTIONS = ("media",)
INDEX_SPECS = {
    "media": [
        ("identifier", "((doc->>'identifier'))"),
        ("kind", "((doc->>'kind'))"),
        ("created_at", "((doc->>'created_at'))"),
    ],
}


# ---------------------- Result helpers ----------------------


@dataclass
class InsertOneResult:
    inserted_id: Optional[str]


@dataclass
class DeleteResult:
    deleted_count: int


# ---------------------- Utility helpers ----------------------


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dt.datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=dt.timezone.utc)
        return value.isoformat()
    if isinstance(value, dt.date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    return value


def _decode_doc(raw: Any) -> Dict[str, Any]:
    # asyncpg hands JSONB back as text unless a codec is registered
    if isinstance(raw, str):
        return json.loads(raw)
    return dict(raw)


# ---------------------- Cursor ----------------------


class PostgresCursor:
    def __init__(
        self,
        collection: "PostgresCollection",
        filt: Optional[Dict[str, Any]],
        limit: Optional[int] = None,
    ):
        self._collection = collection
        self._filt = filt or {}
        self._docs: Optional[List[Dict[str, Any]]] = None
        self._sorts: List[tuple[str, int]] = []
        self._limit = limit

    async def _ensure_loaded(self) -> None:
        if self._docs is None:
            self._docs = await self._collection._find_docs(
                self._filt, self._sorts, self._limit
            )

    def sort(self, key: str, direction: int = 1) -> "PostgresCursor":
        self._sorts.append((key, direction))
        return self

    async def to_list(self, length: Optional[int]) -> List[Dict[str, Any]]:
        await self._ensure_loaded()
        if self._docs is None:
            return []
        if length is None:
            return list(self._docs)
        return list(self._docs[:length])

    def __aiter__(self) -> AsyncIterator[Dict[str, Any]]:
        async def iterator():
            await self._ensure_loaded()
            for doc in self._docs or []:
                yield doc

        return iterator()


# ---------------------- Collection ----------------------


class PostgresCollection:
    def __init__(self, name: str, table_name: str, db: "Database"):
        self.name = name
        self._table_name = table_name
        self._db = db

    async def _ensure_table(self) -> None:
        await self._db.ensure_table(self._table_name)

    def _json_path_expr(self, path: str) -> str:
        if not path or not path.replace("_", "").isalnum():
            raise ValueError(f"Invalid field path '{path}'")
        if path == "_id":
            return "id"
        return f"(doc->>'{path}')"

    def _build_where_clause(self, filt: Optional[Dict[str, Any]], params: List[Any]) -> str:
        """Equality-only filter: every key must match the given value as text."""
        if not filt:
            return ""
        clauses: List[str] = []
        for key, value in filt.items():
            expr = self._json_path_expr(key)
            if value is None:
                clauses.append(f"{expr} IS NULL")
                continue
            params.append(str(_jsonable(value)))
            clauses.append(f"{expr} = ${len(params)}::text")
        return " AND ".join(clauses)

    def _build_order_clause(self, sorts: List[tuple[str, int]]) -> str:
        parts = []
        for key, direction in sorts:
            expr = self._json_path_expr(key)
            order = "DESC" if direction < 0 else "ASC"
            parts.append(f"{expr} {order}")
        return ", ".join(parts)

    def find(
        self,
        filt: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
    ) -> PostgresCursor:
        return PostgresCursor(self, filt, limit)

    async def _find_docs(
        self,
        filt: Optional[Dict[str, Any]],
        sorts: List[tuple[str, int]],
        limit: Optional[int],
    ) -> List[Dict[str, Any]]:
        await self._ensure_table()
        params: List[Any] = []
        where_clause = self._build_where_clause(filt or {}, params)
        order_clause = self._build_order_clause(sorts)

        query = f"SELECT doc FROM {self._table_name}"
        if where_clause:
            query += f" WHERE {where_clause}"
        if order_clause:
            query += f" ORDER BY {order_clause}"
        if limit is not None:
            params.append(limit)
            query += f" LIMIT ${len(params)}"

        rows = await self._db.fetch(query, *params)
        return [_decode_doc(row["doc"]) for row in rows]

    async def find_one(self, filt: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        results = await self._find_docs(filt, [], 1)
        return results[0] if results else None

    async def insert_one(self, document: Dict[str, Any]) -> InsertOneResult:
        await self._ensure_table()
        doc = dict(document)
        if "_id" not in doc:
            doc["_id"] = str(uuid.uuid4())
        json_payload = json.dumps(_jsonable(doc), ensure_ascii=False)
        await self._db.execute(
            f"""
            INSERT INTO {self._table_name} (id, doc)
            VALUES ($1, $2::jsonb)
            ON CONFLICT (id) DO UPDATE SET doc = EXCLUDED.doc
            """,
            str(doc["_id"]),
            json_payload,
        )
        return InsertOneResult(inserted_id=str(doc["_id"]))

    async def delete_one(self, filt: Dict[str, Any]) -> DeleteResult:
        await self._ensure_table()
        params: List[Any] = []
        where_clause = self._build_where_clause(filt or {}, params)

        target_cte = f"SELECT id FROM {self._table_name}"
        if where_clause:
            target_cte += f" WHERE {where_clause}"
        target_cte += " LIMIT 1"

        query = (
            f"WITH target AS ({target_cte}), "
            f"deleted AS ("
            f"DELETE FROM {self._table_name} t USING target "
            f"WHERE t.id = target.id RETURNING 1"
            f") "
            "SELECT COUNT(*) AS count FROM deleted"
        )

        rows = await self._db.fetch(query, *params)
        if not rows:
            return DeleteResult(deleted_count=0)
        return DeleteResult(deleted_count=int(rows[0]["count"]))

    async def count_documents(self, filt: Optional[Dict[str, Any]] = None) -> int:
        await self._ensure_table()
        params: List[Any] = []
        where_clause = self._build_where_clause(filt or {}, params)
        query = f"SELECT COUNT(*) AS count FROM {self._table_name}"
        if where_clause:
            query += f" WHERE {where_clause}"
        rows = await self._db.fetch(query, *params)
        if not rows:
            return 0
        return int(rows[0]["count"])

    async def sum_field(self, key: str, filt: Optional[Dict[str, Any]] = None) -> int:
        await self._ensure_table()
        params: List[Any] = []
        where_clause = self._build_where_clause(filt or {}, params)
        expr = self._json_path_expr(key)
        query = f"SELECT COALESCE(SUM(({expr})::numeric), 0) AS total FROM {self._table_name}"
        if where_clause:
            query += f" WHERE {where_clause}"
        rows = await self._db.fetch(query, *params)
        if not rows:
            return 0
        return int(rows[0]["total"])


# ---------------------- Database ----------------------


class Database:
    """Manages Postgres connection and collection-style access."""

    def __init__(self, dsn: str = config.POSTGRES_DSN):
        self._dsn = dsn
        self.pool: Optional[asyncpg.Pool] = None
        self.is_connected = False
        self._connection_lock = asyncio.Lock()
        self._wrapped_collections: Dict[str, PostgresCollection] = {}
        self._ensured_tables: set[str] = set()
        self._ensured_indexes: set[str] = set()

    def _reset_state(self) -> None:
        self.pool = None
        self.is_connected = False
        self._wrapped_collections.clear()
        self._ensured_tables.clear()
        self._ensured_indexes.clear()

    async def connect(self, retries: int = 3, initial_delay: float = 1.0) -> None:
        async with self._connection_lock:
            if self.is_connected:
                return

            attempt = 0
            delay = initial_delay
            while attempt <= retries and not self.is_connected:
                try:
                    logger.info("Connecting to Postgres at {}", self._dsn)
                    self.pool = await asyncpg.create_pool(self._dsn, min_size=1, max_size=10)
                    await self._ensure_tables(DEFAULT_COLLECTIONS)
                    self.is_connected = True
                    logger.info("Connected to Postgres and storage table ensured")
                    return
                except Exception:
                    attempt += 1
                    logger.exception("Failed to connect to Postgres (attempt {})", attempt)
                    if self.pool is not None:
                        await self.pool.close()
                    self._reset_state()
                    if attempt > retries:
                        break
                    await asyncio.sleep(delay)
                    delay = min(delay * 2, 30)

    def _table_name_for_collection(self, collection: str) -> str:
        if not collection or not collection.replace("_", "").isalnum():
            raise ValueError(f"Invalid collection name '{collection}'")
        return f"{TABLE_PREFIX}{collection}"

    async def _ensure_tables(self, collections: Iterable[str]) -> None:
        for collection in collections:
            table_name = self._table_name_for_collection(collection)
            await self.ensure_table(table_name)

    async def ensure_table(self, table_name: str) -> None:
        if self.pool is None or table_name in self._ensured_tables:
            return
        await self.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {table_name} (
                id TEXT NOT NULL,
                doc JSONB NOT NULL,
                PRIMARY KEY (id)
            );
            """
        )
        self._ensured_tables.add(table_name)

    async def ensure_indexes(self, collections: Iterable[str] = DEFAULT_COLLECTIONS) -> None:
        """Create lookup indexes; a failed index is logged and the connection kept."""
        if not self.is_connected:
            return
        for collection in collections:
            table_name = self._table_name_for_collection(collection)
            for suffix, expression in INDEX_SPECS.get(collection, []):
                index_name = f"{table_name}_{suffix}_idx"
                if index_name in self._ensured_indexes:
                    continue
                try:
                    await self.execute(
                        f"CREATE INDEX IF NOT EXISTS {index_name} ON {table_name} {expression};"
                    )
                except Exception:
                    logger.exception("Failed to create index {}", index_name)
                    continue
                self._ensured_indexes.add(index_name)

    async def disconnect(self) -> None:
        async with self._connection_lock:
            if self.pool:
                await self.pool.close()
            self._reset_state()

    def get_collection(self, name: str) -> Optional[PostgresCollection]:
        if not self.is_connected:
            return None
        if name in self._wrapped_collections:
            return self._wrapped_collections[name]
        table_name = self._table_name_for_collection(name)
        collection = PostgresCollection(name, table_name, self)
        self._wrapped_collections[name] = collection
        return collection

    async def execute(self, query: str, *args: Any) -> None:
        pool = self.pool
        if pool is None:
            raise RuntimeError("Database not connected")
        async with pool.acquire() as conn:
            await conn.execute(query, *args)

    async def fetch(self, query: str, *args: Any) -> List[asyncpg.Record]:
        pool = self.pool
        if pool is None:
            raise RuntimeError("Database not connected")
        async with pool.acquire() as conn:
            return await conn.fetch(query, *args)

    async def get_pool_stats(self) -> Dict[str, Any]:
        if self.pool is None:
            return {"status": "not_connected"}
        return {
            "status": "connected",
            "pool_size": self.pool.get_max_size(),
            "free": self.pool.get_idle_size(),
        }


# Global database instance
db_instance = Database()


def get_media_collection() -> Optional[PostgresCollection]:
    return db_instance.get_collection("media")


async def init_database() -> None:
    try:
        await db_instance.connect()
        if db_instance.is_connected:
            await db_instance.ensure_indexes()
            pool_stats = await db_instance.get_pool_stats()
            logger.info("Database pool stats: {}", pool_stats)
    except Exception:
        logger.exception("Error initializing database")
