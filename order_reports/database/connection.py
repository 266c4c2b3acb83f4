"""
Database Connection Management

Bounded async connection pool for the read-only report queries, built on
SQLAlchemy 2.0. The pool is one explicitly constructed resource with an
init/close lifecycle; it is handed to the report gateway rather than reached
through module globals.
"""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional

import structlog
from sqlalchemy import text
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.sql.elements import TextClause

from order_reports.config import DatabaseSettings

logger = structlog.get_logger(__name__)


class DatabaseNotInitializedError(RuntimeError):
    """Raised when the pool is used before init() or after close()."""


class ReportDatabase:
    """
    Process-wide connection pool used by the report gateway.

    Pool contract (from ``DatabaseSettings``):
    - at most ``max_connections`` connections, no overflow; callers queue
      for a free connection when the pool is saturated
    - connections are recycled after ``idle_timeout`` seconds
    - ``connect_timeout`` bounds both waiting for a pooled connection and
      opening a new one

    Example:
        db = ReportDatabase(settings.database)
        await db.init()
        rows = await db.fetch_all(text("SELECT 1"))
        await db.close()
    """

    def __init__(self, settings: DatabaseSettings):
        self.settings = settings
        self._engine: Optional[AsyncEngine] = None

    async def init(self) -> AsyncEngine:
        """
        Create the engine and verify that a connection can be opened.

        Returns:
            AsyncEngine: The initialized database engine
        """
        if self._engine is not None:
            logger.warning("Database already initialized")
            return self._engine

        self._engine = create_async_engine(
            self.settings.async_url,
            echo=self.settings.echo,
            pool_size=self.settings.max_connections,
            max_overflow=0,
            pool_timeout=self.settings.connect_timeout,
            pool_recycle=self.settings.idle_timeout,
            pool_pre_ping=True,
            connect_args={"timeout": self.settings.connect_timeout},
        )

        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info(
                "Database connection established",
                host=self.settings.host,
                database=self.settings.db,
                max_connections=self.settings.max_connections,
            )
        except Exception as e:
            logger.error("Failed to connect to database", error=str(e))
            raise

        return self._engine

    async def close(self) -> None:
        """Dispose of every pooled connection."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            logger.info("Database connection pool closed")

    @property
    def engine(self) -> AsyncEngine:
        """
        Raises:
            DatabaseNotInitializedError: If the database is not initialized
        """
        if self._engine is None:
            raise DatabaseNotInitializedError("Database not initialized. Call init() first.")
        return self._engine

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[AsyncConnection, None]:
        """
        Check a connection out of the pool for the duration of one query.

        Nothing is ever committed; the implicit transaction is rolled back
        when the connection returns to the pool.
        """
        engine = self.engine
        async with engine.connect() as conn:
            yield conn

    async def fetch_all(self, statement: TextClause) -> List[RowMapping]:
        """Run a read query on its own pooled connection and return all rows."""
        async with self.connection() as conn:
            result = await conn.execute(statement)
            return list(result.mappings().all())

    async def fetch_scalar(self, statement: TextClause) -> Any:
        """Run a read query on its own pooled connection and return the first column."""
        async with self.connection() as conn:
            result = await conn.execute(statement)
            return result.scalar()

    async def check_health(self) -> Dict[str, Any]:
        """
        Check database health status.

        Returns:
            dict: Health status with latency information
        """
        if not self.is_initialized:
            return {"status": "unhealthy", "error": "Database not initialized"}

        try:
            start = time.perf_counter()
            await self.fetch_scalar(text("SELECT 1"))
            latency_ms = (time.perf_counter() - start) * 1000

            return {
                "status": "healthy",
                "latency_ms": round(latency_ms, 2),
                "max_connections": self.settings.max_connections,
            }
        except Exception as e:
            return {
                "status": "unhealthy",
                "error": str(e),
            }
