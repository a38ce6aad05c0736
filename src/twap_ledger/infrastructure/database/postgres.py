"""
asyncpg-backed implementation of IDatabaseAdapter.

Connection strings are tried in order until one works (direct URL or the
Supabase pooler variants). Every pooled session disables statement and
idle-in-transaction timeouts so multi-minute COPY and migration statements
are not cancelled.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import asyncpg

from twap_ledger.common.exceptions import ConfigurationError, MigrationLockError
from twap_ledger.config.state import DatabaseConfig
from twap_ledger.infrastructure.observability import get_database_logger
from twap_ledger.storage.csv.writer import NULL_TOKEN

logger = logging.getLogger(__name__)

# Errors a database call can raise for reasons outside the caller's data
DATABASE_ERRORS = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    asyncio.TimeoutError,
)

SESSION_SETTINGS = (
    "SET statement_timeout = 0",
    "SET idle_in_transaction_session_timeout = 0",
)


def rows_from_status(status: str) -> int:
    """Row count from a command tag such as 'COPY 120' or 'INSERT 0 5'."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, AttributeError, IndexError):
        return 0


def describe_dsn(dsn: str) -> str:
    """Host:port/db without credentials, for logs."""
    parsed = urlparse(dsn)
    return f"{parsed.hostname}:{parsed.port or 5432}{parsed.path}"


async def _init_session(conn: asyncpg.Connection) -> None:
    for statement in SESSION_SETTINGS:
        await conn.execute(statement)


class PostgresDatabase:
    """
    Concrete IDatabaseAdapter wrapping an asyncpg connection pool.
    """

    def __init__(
        self,
        dsns: list[str],
        min_pool_size: int = 1,
        max_pool_size: int = 4,
        connect_timeout: float = 30.0,
        statement_cache_size: int = 0,
    ):
        """
        Initialize adapter.

        Args:
            dsns: Connection strings to try, in order
            min_pool_size: Minimum pooled connections
            max_pool_size: Maximum pooled connections
            connect_timeout: Seconds to wait per connection attempt
            statement_cache_size: asyncpg prepared statement cache (0 for pgbouncer)
        """
        if not dsns:
            raise ConfigurationError("No database connection strings configured")
        self._dsns = dsns
        self._min_pool_size = min_pool_size
        self._max_pool_size = max_pool_size
        self._connect_timeout = connect_timeout
        self._statement_cache_size = statement_cache_size
        self.pool: asyncpg.Pool | None = None

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> "PostgresDatabase":
        return cls(
            dsns=config.candidate_dsns(),
            min_pool_size=config.min_pool_size,
            max_pool_size=config.max_pool_size,
            connect_timeout=config.connect_timeout,
            statement_cache_size=config.statement_cache_size,
        )

    async def __aenter__(self) -> "PostgresDatabase":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    async def connect(self) -> None:
        """
        Create the pool with the first working connection string.

        Raises:
            ConfigurationError: If every candidate fails
        """
        last_error: Exception | None = None

        for index, dsn in enumerate(self._dsns, start=1):
            try:
                self.pool = await asyncpg.create_pool(
                    dsn=dsn,
                    min_size=self._min_pool_size,
                    max_size=self._max_pool_size,
                    timeout=self._connect_timeout,
                    statement_cache_size=self._statement_cache_size,
                    init=_init_session,
                )
                logger.info(
                    f"✅ Connected to {describe_dsn(dsn)} "
                    f"(method {index}/{len(self._dsns)})"
                )
                get_database_logger(target=describe_dsn(dsn), method=index).info("pool_created")
                return
            except DATABASE_ERRORS as e:
                last_error = e
                logger.warning(f"⚠️ Connection method {index} failed: {e}")
                get_database_logger(target=describe_dsn(dsn), method=index).warning(
                    "connection_method_failed", error=str(e)
                )

        raise ConfigurationError(
            f"All {len(self._dsns)} connection methods failed: {last_error}",
            remediation="check DATABASE_URL or SUPABASE_URL/POSTGRES_PASSWORD",
        ) from last_error

    async def disconnect(self) -> None:
        if self.pool is not None:
            await self.pool.close()
            self.pool = None
            logger.info("Database pool closed")

    def _require_pool(self) -> asyncpg.Pool:
        if self.pool is None:
            raise RuntimeError("Database not connected")
        return self.pool

    async def execute(self, query: str, *args: Any) -> str:
        async with self._require_pool().acquire() as conn:
            return await conn.execute(query, *args)

    async def fetch_one(self, query: str, *args: Any) -> dict[str, Any] | None:
        async with self._require_pool().acquire() as conn:
            row = await conn.fetchrow(query, *args)
            return dict(row) if row else None

    async def fetch_all(self, query: str, *args: Any) -> list[dict[str, Any]]:
        async with self._require_pool().acquire() as conn:
            rows = await conn.fetch(query, *args)
            return [dict(row) for row in rows]

    async def fetchval(self, query: str, *args: Any) -> Any:
        async with self._require_pool().acquire() as conn:
            return await conn.fetchval(query, *args)

    async def copy_csv(self, table: str, path: Path, columns: Sequence[str]) -> int:
        async with self._require_pool().acquire() as conn:
            status = await conn.copy_to_table(
                table,
                source=str(path),
                columns=list(columns),
                format="csv",
                null=NULL_TOKEN,
            )
        return rows_from_status(status)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        async with self._require_pool().acquire() as conn:
            async with conn.transaction():
                yield conn

    @asynccontextmanager
    async def advisory_lock(self, key: int) -> AsyncIterator[None]:
        async with self._require_pool().acquire() as conn:
            locked = await conn.fetchval("SELECT pg_try_advisory_lock($1)", key)
            if not locked:
                raise MigrationLockError(
                    f"Advisory lock {key} is held by another session",
                    remediation="wait for the running import to finish",
                )
            try:
                yield
            finally:
                await conn.execute("SELECT pg_advisory_unlock($1)", key)
