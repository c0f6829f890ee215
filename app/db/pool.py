"""
Postgres pool for the registration document tables.

Participants, teams and audit rows live in Supabase Postgres as JSONB
documents. The pool is opened by the application lifespan and closed on
shutdown; everything else borrows connections through `db_pool.connection()`.
"""

import asyncio
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

CLOSE_TIMEOUT_SECONDS = 30.0


class DatabasePoolManager:
    def __init__(self):
        self.pool: AsyncConnectionPool | None = None
        self._initialized = False
        self._closed = False

    @property
    def initialized(self) -> bool:
        return self._initialized and not self._closed

    async def initialize(self) -> None:
        if self._initialized:
            logger.warning("Database pool already initialized")
            return
        if self._closed:
            raise RuntimeError("Cannot reinitialize closed pool")

        pool_config = settings.get_db_pool_config()
        logger.info("Opening database pool", **pool_config)

        self.pool = AsyncConnectionPool(
            conninfo=settings.SUPABASE_DB_URL,
            open=False,
            check=AsyncConnectionPool.check_connection,
            configure=self._configure_connection,
            **pool_config,
        )

        try:
            await self.pool.open()
            await self.pool.wait()
            self._initialized = True
            await self._ping()
        except Exception as e:
            self._initialized = False
            await self._discard_pool()
            raise RuntimeError(f"Database pool initialization failed: {e}") from e

        logger.info("Database pool ready")

    async def _discard_pool(self) -> None:
        if self.pool is None:
            return
        try:
            await self.pool.close()
        except Exception as e:
            logger.warning("Error closing half-open pool", error=str(e))
        self.pool = None

    async def _configure_connection(self, conn: psycopg.AsyncConnection) -> None:
        """Dict rows, autocommit and UTC for every pooled connection."""
        conn.row_factory = dict_row
        await conn.set_autocommit(True)
        app_name = f"sih-internals-{settings.environment}"
        # SET does not accept bind parameters
        await conn.execute(sql.SQL("SET application_name = {}").format(sql.Literal(app_name)))
        await conn.execute("SET timezone = 'UTC'")
        await conn.execute("SET statement_timeout = '60s'")

    async def _ping(self) -> None:
        async with self.connection() as conn:
            cursor = await conn.execute("SELECT 1 AS ok")
            row = await cursor.fetchone()
        if not row or row["ok"] != 1:
            raise RuntimeError("Database ping returned an unexpected result")

    async def close(self) -> None:
        if not self._initialized or self._closed:
            return

        logger.info("Closing database pool")
        try:
            await asyncio.wait_for(self.pool.close(), timeout=CLOSE_TIMEOUT_SECONDS)
        except TimeoutError:
            logger.warning("Database pool close timed out, forcing shutdown")
        finally:
            self._initialized = False
            self._closed = True

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        if not self.initialized:
            raise RuntimeError("Database pool not available")

        async with self.pool.connection() as conn:
            yield conn

    async def health_check(self) -> dict[str, Any]:
        if not self.initialized:
            return {"healthy": False, "error": "Pool not initialized"}

        started = time.time()
        try:
            await self._ping()
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {"healthy": False, "error": f"{type(e).__name__}: {e}"}

        stats = self.pool.get_stats()
        return {
            "healthy": True,
            "connection_time_ms": round((time.time() - started) * 1000, 2),
            "pool_stats": {
                "pool_size": stats.get("pool_size", 0),
                "pool_available": stats.get("pool_available", 0),
                "requests_waiting": stats.get("requests_waiting", 0),
            },
        }


# Global pool instance
db_pool = DatabasePoolManager()


async def db_health_check() -> dict[str, Any]:
    return await db_pool.health_check()
