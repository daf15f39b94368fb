"""PostgreSQL connection pool shared by every store."""
from contextlib import asynccontextmanager
from typing import Optional, Any, AsyncIterator
import asyncpg

from pokerpal.config import config
from pokerpal.utils.logger import get_logger

logger = get_logger(__name__)


class Database:
    """Process-wide asyncpg pool.

    Stores call the query helpers directly for single statements, or receive
    the connection yielded by :meth:`transaction` when several statements
    must commit together. Both expose ``execute``/``fetch``/``fetchrow``/
    ``fetchval`` with the same signatures.
    """

    _instance: Optional["Database"] = None
    _pool: Optional[asyncpg.Pool] = None

    def __new__(cls) -> "Database":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    async def connect(self) -> None:
        if self._pool is None:
            self._pool = await asyncpg.create_pool(
                config.database_url,
                min_size=config.db_pool_min_size,
                max_size=config.db_pool_max_size,
                server_settings={"application_name": "pokerpal"},
            )
            logger.info(
                f"Connected to PostgreSQL (pool {config.db_pool_min_size}-{config.db_pool_max_size})"
            )

    async def disconnect(self) -> None:
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("Disconnected from PostgreSQL")

    @property
    def pool(self) -> asyncpg.Pool:
        """Get connection pool, raise if not connected."""
        if self._pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._pool

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Borrow a pooled connection in autocommit mode."""
        async with self.pool.acquire() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """Borrow a connection and run the block in one transaction.

        Leaving the block normally commits; any exception rolls back and
        propagates.
        """
        async with self.acquire() as conn:
            async with conn.transaction():
                yield conn

    async def ping(self) -> bool:
        """Round-trip a trivial query; raises if the database is unreachable."""
        return await self.fetchval("SELECT 1") == 1

    async def execute(self, query: str, *args: Any) -> str:
        async with self.acquire() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        async with self.acquire() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> Optional[asyncpg.Record]:
        async with self.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args)


db = Database()
