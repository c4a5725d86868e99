# newsdrip/database/connection.py
import asyncio
import asyncpg
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from newsdrip.errors import StoreUnavailable
import logging

logger = logging.getLogger(__name__)

# Errors that mean the database cannot be reached, as opposed to a bad query
CONNECTION_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.CannotConnectNowError,
    asyncpg.exceptions.TooManyConnectionsError,
)

class Database:
    """Owns the asyncpg connection pool handed to every repository"""

    def __init__(
        self,
        dsn: str,
        min_size: int = 1,
        max_size: int = 10,
        command_timeout: int = 60
    ):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.command_timeout = command_timeout
        self._pool: Optional[asyncpg.Pool] = None

    async def get_pool(self) -> asyncpg.Pool:
        """Get or create database connection pool"""
        if self._pool is None:
            try:
                self._pool = await asyncpg.create_pool(
                    self.dsn,
                    min_size=self.min_size,
                    max_size=self.max_size,
                    command_timeout=self.command_timeout
                )
                logger.info("Database connection pool created")
            except CONNECTION_ERRORS as e:
                logger.error(f"Failed to create database pool: {e}")
                raise StoreUnavailable("Database is unreachable") from e
        return self._pool

    async def close(self):
        """Close database connection pool"""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("Database connection pool closed")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Borrow a pooled connection; connectivity errors become StoreUnavailable"""
        pool = await self.get_pool()
        try:
            async with pool.acquire() as connection:
                yield connection
        except CONNECTION_ERRORS as e:
            logger.error(f"Database connection error: {e}")
            raise StoreUnavailable("Database is unreachable") from e

    async def ping(self) -> bool:
        async with self.acquire() as connection:
            return await connection.fetchval('SELECT 1') == 1
