"""
Query helpers used by the repositories.

Every helper borrows a pooled connection unless one is passed in, and turns
driver-level failures (psycopg errors, pool timeouts) into DatabaseError
tagged with the helper that failed.
"""

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg_pool import PoolTimeout

from storefront.db.pool import db_pool
from storefront.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

Params = Sequence[Any] | dict[str, Any]


class DatabaseError(Exception):
    """Storage failure raised by the query helpers."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


@contextmanager
def _driver_errors(operation: str, query: str) -> Iterator[None]:
    try:
        yield
    except psycopg.IntegrityError as e:
        logger.warning("Query rejected by constraint", operation=operation, error=str(e))
        raise DatabaseError(
            f"Constraint violation: {e}", operation=operation, recoverable=False
        ) from e
    except (psycopg.Error, PoolTimeout) as e:
        logger.error(
            "Database query failed", operation=operation, query=query[:100], error=str(e)
        )
        raise DatabaseError(f"Query failed: {e}", operation=operation) from e


async def fetch_one(
    query: str, params: Params = (), *, connection: psycopg.AsyncConnection | None = None
) -> dict[str, Any] | None:
    """First row of ``query`` as a dict, or None."""
    with _driver_errors("fetch_one", query):
        if connection is not None:
            cur = await connection.execute(query, params)
            return await cur.fetchone()
        async with db_pool.connection() as conn:
            cur = await conn.execute(query, params)
            return await cur.fetchone()


async def fetch_all(
    query: str, params: Params = (), *, connection: psycopg.AsyncConnection | None = None
) -> list[dict[str, Any]]:
    with _driver_errors("fetch_all", query):
        if connection is not None:
            cur = await connection.execute(query, params)
            return await cur.fetchall()
        async with db_pool.connection() as conn:
            cur = await conn.execute(query, params)
            return await cur.fetchall()


async def fetch_val(
    query: str, params: Params = (), *, connection: psycopg.AsyncConnection | None = None
) -> Any:
    """First column of the first row, or None."""
    row = await fetch_one(query, params, connection=connection)
    return next(iter(row.values())) if row else None


async def execute_query(
    query: str, params: Params = (), *, connection: psycopg.AsyncConnection | None = None
) -> int:
    """Run a statement and return the affected row count."""
    with _driver_errors("execute", query):
        if connection is not None:
            cur = await connection.execute(query, params)
            return cur.rowcount
        async with db_pool.connection() as conn:
            cur = await conn.execute(query, params)
            return cur.rowcount


async def execute_transaction(statements: Sequence[tuple[str, Params]]) -> list[int]:
    """
    Run ``(query, params)`` pairs in one transaction.

    Returns:
        Affected row count per statement, in order. Nothing is committed
        when any statement fails.
    """
    rowcounts: list[int] = []
    first_query = statements[0][0] if statements else ""
    with _driver_errors("transaction", first_query):
        async with db_pool.transaction() as conn:
            for query, params in statements:
                cur = await conn.execute(query, params)
                rowcounts.append(cur.rowcount)

    logger.debug("Transaction committed", statement_count=len(statements))
    return rowcounts
