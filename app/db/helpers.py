"""
Query helpers for the JSONB document tables.

Repositories call these instead of touching the pool directly. Every psycopg
failure comes out as DatabaseError, which the routes turn into a 500 with a
retry message.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import psycopg

from app.db.pool import db_pool
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class DatabaseError(Exception):
    """A document store read or write failed."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


@asynccontextmanager
async def _connection(connection: psycopg.AsyncConnection | None) -> AsyncIterator[psycopg.AsyncConnection]:
    if connection is not None:
        yield connection
        return
    async with db_pool.connection() as conn:
        yield conn


def _wrap(operation: str, query: str, error: psycopg.Error) -> DatabaseError:
    logger.error("Document store query failed", operation=operation, query=query[:100], error=str(error))
    return DatabaseError(f"Query failed: {error}", operation=operation)


async def fetch_one(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> dict[str, Any] | None:
    """First row as a dict (rows use dict_row), or None."""
    try:
        async with _connection(connection) as conn:
            cursor = await conn.execute(query, params)
            return await cursor.fetchone()
    except psycopg.Error as e:
        raise _wrap("fetch_one", query, e) from e


async def fetch_all(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> list[dict[str, Any]]:
    try:
        async with _connection(connection) as conn:
            cursor = await conn.execute(query, params)
            return await cursor.fetchall()
    except psycopg.Error as e:
        raise _wrap("fetch_all", query, e) from e


async def execute_query(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> int:
    """Run a write and return the affected row count."""
    try:
        async with _connection(connection) as conn:
            cursor = await conn.execute(query, params)
            return cursor.rowcount
    except psycopg.Error as e:
        raise _wrap("execute", query, e) from e
