# =============================================================================
# File: viewsync/infra/persistence/pg_document_store.py
# Description: DocumentStorePort on PostgreSQL (one JSONB row per document)
# =============================================================================
#
# Table layout:
#   path        TEXT PRIMARY KEY      users/u1/favorites/f9
#   collection  TEXT                  users/u1/favorites
#   doc_id      TEXT                  f9
#   data        JSONB
#   version     BIGINT                bumped on every write
#
# Transactions run at SERIALIZABLE isolation. Serialization failures,
# deadlocks and unique violations on create surface as
# TransactionConflictError and the whole body is re-run.
# =============================================================================

from __future__ import annotations

import logging
import re
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple, TypeVar

import asyncpg
from asyncpg.exceptions import DeadlockDetectedError, SerializationError, UniqueViolationError

from viewsync.common.exceptions.exceptions import (
    DocumentNotFoundError,
    TransactionConflictError,
)
from viewsync.config.document_store_config import DocumentStoreConfig, get_document_store_config
from viewsync.infra.persistence import pg_client
from viewsync.infra.persistence.transactions import (
    BufferedWritesMixin,
    PendingWrites,
    WriteKind,
    run_optimistic_transaction,
)
from viewsync.ports.document_store_port import DocumentSnapshot, TransactionPort
from viewsync.utils.document_paths import document_id, is_document_path, parent_collection

log = logging.getLogger("viewsync.infra.pg_document_store")

T = TypeVar("T")

_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS {table} (
    path        TEXT PRIMARY KEY,
    collection  TEXT NOT NULL,
    doc_id      TEXT NOT NULL,
    data        JSONB NOT NULL,
    version     BIGINT NOT NULL DEFAULT 1,
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS {table}_collection_idx ON {table} (collection, doc_id);
CREATE INDEX IF NOT EXISTS {table}_data_idx ON {table} USING GIN (data jsonb_path_ops);
"""


def _build_select(
        table: str,
        collection: str,
        where: Optional[Mapping[str, Any]],
        order_by: Optional[str],
        descending: bool,
        limit: Optional[int],
        start_after: Optional[str],
        count_only: bool = False,
) -> Tuple[str, List[Any]]:
    """SELECT for one collection with equality filters and a stable order."""
    params: List[Any] = [collection]
    clauses = ["collection = $1"]

    if where:
        params.append(dict(where))
        clauses.append(f"data @> ${len(params)}::jsonb")

    if start_after is not None:
        if order_by is not None:
            raise ValueError("start_after requires document-id ordering")
        params.append(start_after)
        clauses.append(f"doc_id {'<' if descending else '>'} ${len(params)}")

    if count_only:
        return f"SELECT count(*) FROM {table} WHERE {' AND '.join(clauses)}", params

    direction = "DESC" if descending else "ASC"
    order_terms = []
    if order_by is not None:
        if not _FIELD_NAME.match(order_by):
            raise ValueError(f"Invalid order_by field: {order_by!r}")
        order_terms.append(f"data -> '{order_by}' {direction}")
    order_terms.append(f"doc_id {direction}")

    sql = f"SELECT path, data FROM {table} WHERE {' AND '.join(clauses)} ORDER BY {', '.join(order_terms)}"
    if limit is not None:
        params.append(limit)
        sql += f" LIMIT ${len(params)}"
    return sql, params


class PgTransaction(BufferedWritesMixin):
    """One attempt of a SERIALIZABLE transaction; writes flushed at commit."""

    def __init__(self, conn: asyncpg.Connection, table: str):
        self._conn = conn
        self._table = table
        self._pending = PendingWrites()

    async def get(self, path: str) -> DocumentSnapshot:
        row = await self._conn.fetchrow(f"SELECT data FROM {self._table} WHERE path = $1", path)
        return DocumentSnapshot(path=path, data=row["data"] if row else None)

    async def query(
        self,
        collection: str,
        *,
        where: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[DocumentSnapshot]:
        sql, params = _build_select(self._table, collection, where, order_by, descending, limit, None)
        rows = await self._conn.fetch(sql, *params)
        return [DocumentSnapshot(path=row["path"], data=row["data"]) for row in rows]

    async def count(self, collection: str, *, where: Optional[Mapping[str, Any]] = None) -> int:
        sql, params = _build_select(self._table, collection, where, None, False, None, None, count_only=True)
        return await self._conn.fetchval(sql, *params)

    async def flush(self) -> None:
        for write in self._pending:
            if write.kind is WriteKind.CREATE:
                await self._conn.execute(
                    f"INSERT INTO {self._table} (path, collection, doc_id, data) VALUES ($1, $2, $3, $4::jsonb)",
                    write.path, parent_collection(write.path), document_id(write.path), write.data,
                )
            elif write.kind is WriteKind.SET:
                await _upsert(self._conn.execute, self._table, write.path, write.data)
            elif write.kind is WriteKind.UPDATE:
                status = await self._conn.execute(
                    f"UPDATE {self._table} SET data = data || $2::jsonb, version = version + 1, "
                    f"updated_at = NOW() WHERE path = $1",
                    write.path, write.data,
                )
                if pg_client.affected_rows(status) == 0:
                    raise DocumentNotFoundError(write.path)
            elif write.kind is WriteKind.DELETE:
                await self._conn.execute(f"DELETE FROM {self._table} WHERE path = $1", write.path)


async def _upsert(execute: Callable[..., Awaitable[str]], table: str, path: str, data: Dict[str, Any]) -> None:
    await execute(
        f"INSERT INTO {table} (path, collection, doc_id, data) VALUES ($1, $2, $3, $4::jsonb) "
        f"ON CONFLICT (path) DO UPDATE SET data = EXCLUDED.data, "
        f"version = {table}.version + 1, updated_at = NOW()",
        path, parent_collection(path), document_id(path), data,
    )


class PostgresDocumentStore:
    """
    DocumentStorePort backed by a single PostgreSQL JSONB table.

    Uses the module-level asyncpg pool from pg_client; call
    ensure_schema() once at startup.
    """

    def __init__(self, config: Optional[DocumentStoreConfig] = None):
        self.config = config or get_document_store_config()
        self.table = self.config.table_name

    async def ensure_schema(self) -> None:
        async with pg_client.acquire_connection() as conn:
            await conn.execute(SCHEMA_SQL.format(table=self.table))
        log.info(f"Document store schema checked/applied (table={self.table})")

    # =========================================================================
    # Reads
    # =========================================================================

    async def get(self, path: str) -> DocumentSnapshot:
        if not is_document_path(path):
            raise ValueError(f"Not a document path: {path!r}")
        row = await pg_client.fetchrow(f"SELECT data FROM {self.table} WHERE path = $1", path)
        return DocumentSnapshot(path=path, data=row["data"] if row else None)

    async def query(
        self,
        collection: str,
        *,
        where: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        start_after: Optional[str] = None,
    ) -> List[DocumentSnapshot]:
        sql, params = _build_select(self.table, collection, where, order_by, descending, limit, start_after)
        rows = await pg_client.fetch(sql, *params)
        return [DocumentSnapshot(path=row["path"], data=row["data"]) for row in rows]

    async def count(self, collection: str, *, where: Optional[Mapping[str, Any]] = None) -> int:
        sql, params = _build_select(self.table, collection, where, None, False, None, None, count_only=True)
        return await pg_client.fetchval(sql, *params)

    # =========================================================================
    # Writes
    # =========================================================================

    async def set(self, path: str, data: Dict[str, Any]) -> None:
        if not is_document_path(path):
            raise ValueError(f"Not a document path: {path!r}")
        await _upsert(pg_client.execute, self.table, path, data)

    async def update(self, path: str, fields: Dict[str, Any]) -> None:
        status = await pg_client.execute(
            f"UPDATE {self.table} SET data = data || $2::jsonb, version = version + 1, "
            f"updated_at = NOW() WHERE path = $1",
            path, fields,
        )
        if pg_client.affected_rows(status) == 0:
            raise DocumentNotFoundError(path)

    async def delete_batch(self, paths: List[str]) -> int:
        if not paths:
            return 0
        status = await pg_client.execute(f"DELETE FROM {self.table} WHERE path = ANY($1::text[])", list(paths))
        return pg_client.affected_rows(status)

    # =========================================================================
    # Transactions
    # =========================================================================

    async def run_transaction(
        self,
        body: Callable[[TransactionPort], Awaitable[T]],
        *,
        context: str = "transaction",
    ) -> T:
        async def attempt() -> T:
            try:
                async with pg_client.transaction(isolation="serializable") as conn:
                    tx = PgTransaction(conn, self.table)
                    result = await body(tx)
                    await tx.flush()
                return result
            except (SerializationError, DeadlockDetectedError) as e:
                raise TransactionConflictError(str(e)) from e
            except UniqueViolationError as e:
                # create() lost a race against another writer of the same path
                raise TransactionConflictError(f"Concurrent create: {e}") from e

        return await run_optimistic_transaction(attempt, context=context)
