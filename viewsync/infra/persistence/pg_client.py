# =============================================================================
# File: viewsync/infra/persistence/pg_client.py
# =============================================================================
# AsyncPG pool helper: lazy idempotent pool init, retried acquisition,
# transaction context with selectable isolation, slow query logging.
# =============================================================================

from __future__ import annotations

import asyncio
import json
import logging
import time
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, AsyncIterator, List, Optional

import asyncpg

from viewsync.common.exceptions.exceptions import InfrastructureError
from viewsync.config.document_store_config import DocumentStoreConfig, get_document_store_config
from viewsync.config.reliability_config import ReliabilityConfigs
from viewsync.infra.reliability.retry import retry_async

log = logging.getLogger("viewsync.infra.pg_client")

# Connection of the transaction open in the current task, if any
_current_transaction_connection: ContextVar[Optional[asyncpg.Connection]] = ContextVar(
    'transaction_connection', default=None
)

_POOL: Optional[asyncpg.Pool] = None
_POOL_LOCK = asyncio.Lock()
_CONFIG: Optional[DocumentStoreConfig] = None


def get_config() -> DocumentStoreConfig:
    """Get database configuration"""
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = get_document_store_config()
    return _CONFIG


# =============================================================================
# Pool Management
# =============================================================================

async def _init_connection(conn: asyncpg.Connection) -> None:
    """JSONB codec for automatic dict<->JSONB conversion"""
    await conn.set_type_codec(
        'jsonb',
        encoder=json.dumps,
        decoder=json.loads,
        schema='pg_catalog'
    )


async def init_db_pool(dsn: Optional[str] = None) -> asyncpg.Pool:
    """Initialize the global asyncpg pool with retry. Idempotent."""
    global _POOL

    config = get_config()

    async with _POOL_LOCK:
        if _POOL is None or _POOL.is_closing():
            dsn = dsn or config.get_dsn()
            params = config.to_asyncpg_params()
            params["init"] = _init_connection

            log.info(f"Initializing PostgreSQL pool (hidden DSN): {dsn.split('@')[-1]}")

            async def create_pool() -> asyncpg.Pool:
                pool = await asyncpg.create_pool(dsn=dsn, **params)
                async with pool.acquire() as conn:
                    await conn.fetchval("SELECT 1")
                return pool

            try:
                _POOL = await retry_async(
                    create_pool,
                    retry_config=ReliabilityConfigs.pool_retry(),
                    context="PostgreSQL pool initialization"
                )
                log.info(
                    f"PostgreSQL pool ready. Min/Max size: {config.pool_min_size}/{config.pool_max_size}"
                )
            except Exception as e:
                log.critical(f"Failed to init PostgreSQL pool: {e}", exc_info=True)
                _POOL = None
                raise InfrastructureError(f"PostgreSQL pool init error: {e}") from e

    return _POOL


async def get_pool(ensure_initialized: bool = True) -> asyncpg.Pool:
    """Get the global pool, init if needed (default)."""
    if _POOL is None or _POOL.is_closing():
        if not ensure_initialized:
            raise InfrastructureError("PostgreSQL pool not available")
        return await init_db_pool()
    return _POOL


async def close_db_pool() -> None:
    """Close the global pool gracefully."""
    global _POOL

    async with _POOL_LOCK:
        pool, _POOL = _POOL, None
        if pool and not pool.is_closing():
            log.info("Closing PostgreSQL pool...")
            try:
                await pool.close()
                log.info("PostgreSQL pool closed.")
            except Exception as e:
                log.error(f"Error closing pool: {e}", exc_info=True)


@asynccontextmanager
async def acquire_connection() -> AsyncIterator[asyncpg.Connection]:
    """Acquire a connection from the pool, retrying acquisition failures."""
    pool = await get_pool()
    conn: Optional[asyncpg.Connection] = await retry_async(
        pool.acquire,
        retry_config=ReliabilityConfigs.pool_retry(),
        context="connection acquisition"
    )
    try:
        yield conn
    finally:
        await pool.release(conn)


# =============================================================================
# CRUD Wrappers (join the current transaction when one is open)
# =============================================================================

def _log_if_slow(kind: str, query: str, started: float) -> None:
    elapsed_ms = (time.time() - started) * 1000
    if elapsed_ms > get_config().slow_query_threshold_ms:
        log.warning(f"[SLOW QUERY] {kind} took {elapsed_ms:.1f}ms: {query[:150]}")


async def fetch(query: str, *args: Any, timeout: Optional[float] = None) -> List[asyncpg.Record]:
    """Execute the query and return all rows."""
    started = time.time()
    conn = _current_transaction_connection.get()
    if conn is not None:
        rows = await conn.fetch(query, *args, timeout=timeout)
    else:
        async with acquire_connection() as conn:
            rows = await conn.fetch(query, *args, timeout=timeout)
    _log_if_slow("FETCH", query, started)
    return rows


async def fetchrow(query: str, *args: Any, timeout: Optional[float] = None) -> Optional[asyncpg.Record]:
    """Execute the query and return the first row."""
    started = time.time()
    conn = _current_transaction_connection.get()
    if conn is not None:
        row = await conn.fetchrow(query, *args, timeout=timeout)
    else:
        async with acquire_connection() as conn:
            row = await conn.fetchrow(query, *args, timeout=timeout)
    _log_if_slow("FETCHROW", query, started)
    return row


async def fetchval(query: str, *args: Any, column: int = 0, timeout: Optional[float] = None) -> Any:
    """Execute the query and return a single value."""
    started = time.time()
    conn = _current_transaction_connection.get()
    if conn is not None:
        value = await conn.fetchval(query, *args, column=column, timeout=timeout)
    else:
        async with acquire_connection() as conn:
            value = await conn.fetchval(query, *args, column=column, timeout=timeout)
    _log_if_slow("FETCHVAL", query, started)
    return value


async def execute(query: str, *args: Any, timeout: Optional[float] = None) -> str:
    """Execute a command and return the status string (e.g. 'DELETE 3')."""
    started = time.time()
    conn = _current_transaction_connection.get()
    if conn is not None:
        result = await conn.execute(query, *args, timeout=timeout)
    else:
        async with acquire_connection() as conn:
            result = await conn.execute(query, *args, timeout=timeout)
    _log_if_slow("EXECUTE", query, started)
    return result


def affected_rows(status: str) -> int:
    """'UPDATE 3' -> 3"""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, IndexError):
        return 0


# =============================================================================
# Transaction Context Manager
# =============================================================================

@asynccontextmanager
async def transaction(isolation: str = "read_committed") -> AsyncIterator[asyncpg.Connection]:
    """
    Transaction context manager.

    Commits on clean exit, rolls back on exception. While open, the
    module-level CRUD wrappers in the same task use this connection.

    Usage:
        async with transaction(isolation="serializable") as conn:
            await conn.execute("INSERT INTO ...")
    """
    async with acquire_connection() as conn:
        tx_start = time.time()
        token = _current_transaction_connection.set(conn)
        try:
            async with conn.transaction(isolation=isolation):
                yield conn

            tx_duration_ms = (time.time() - tx_start) * 1000
            if tx_duration_ms > get_config().long_transaction_threshold_ms:
                log.warning(f"[LONG TRANSACTION] took {tx_duration_ms:.0f}ms")
        finally:
            _current_transaction_connection.reset(token)
