"""
ClinExtract - Database Connection Manager
=========================================

Async connection pool management for PostgreSQL.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import asyncpg
from asyncpg import Connection, Pool

from clinextract.core.logging_config import get_logger

logger = get_logger(__name__)


class DatabaseConnection:
    """
    Manages the asyncpg connection pool.

    Usage:
        db = DatabaseConnection(connection_string)
        await db.connect()

        async with db.acquire() as conn:
            rows = await conn.fetch("SELECT * FROM disease_templates")

        await db.close()
    """

    def __init__(
        self,
        connection_string: str,
        min_connections: int = 2,
        max_connections: int = 10
    ):
        self.connection_string = connection_string
        self.min_connections = min_connections
        self.max_connections = max_connections
        self._pool: Optional[Pool] = None

    async def connect(self) -> None:
        """Initialize connection pool."""
        if self._pool is not None:
            return

        try:
            self._pool = await asyncpg.create_pool(
                self.connection_string,
                min_size=self.min_connections,
                max_size=self.max_connections,
                command_timeout=60
            )
            logger.info(
                "database_pool_created",
                min_size=self.min_connections,
                max_size=self.max_connections,
            )
        except Exception as e:
            logger.error("database_pool_failed", error=str(e))
            raise

    async def close(self) -> None:
        """Close connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("database_pool_closed")

    @property
    def pool(self) -> Pool:
        if not self._pool:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._pool

    @asynccontextmanager
    async def acquire(self) -> AsyncGenerator[Connection, None]:
        """Acquire a connection from the pool."""
        async with self.pool.acquire() as conn:
            yield conn

    async def execute(self, query: str, *args) -> str:
        async with self.acquire() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args) -> list:
        async with self.acquire() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args) -> Optional[asyncpg.Record]:
        async with self.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args):
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args)

    async def health_check(self) -> bool:
        """Check database connectivity."""
        try:
            return await self.fetchval("SELECT 1") == 1
        except (asyncpg.PostgresError, OSError) as e:
            logger.error("health_check_failed", error=str(e))
            return False
