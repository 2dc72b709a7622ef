# ============================================================================
# DATABASE CONNECTION POOL
# ============================================================================
# STATUS: Core - Async PostgreSQL connection management
# PURPOSE: One psycopg3 pool per process for the PostgreSQL stores
# CREATED: 24 SEP 2026
# ============================================================================
"""
Database Connection Pool

The pool is opened once in the FastAPI lifespan (or by the schema script)
and shared by the operation, orchestration and instance repositories.

Connection string: DATABASE_URL, or assembled from POSTGRES_* variables.
Pool bounds: DATABASE_POOL_MIN / DATABASE_POOL_MAX.
"""

import logging
import os
from typing import Optional
from urllib.parse import quote

from psycopg import sql
from psycopg_pool import AsyncConnectionPool

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA = "fleet"

OPERATIONS_TABLE = "operations"
ORCHESTRATIONS_TABLE = "orchestrations"
INSTANCES_TABLE = "instances"

_pool: Optional[AsyncConnectionPool] = None


def get_connection_string() -> str:
    url = os.environ.get("DATABASE_URL")
    if url:
        return url

    user = quote(os.environ.get("POSTGRES_USER", "postgres"), safe="")
    password = quote(os.environ.get("POSTGRES_PASSWORD", ""), safe="")
    return "postgresql://{}:{}@{}:{}/{}?sslmode={}".format(
        user,
        password,
        os.environ.get("POSTGRES_HOST", "localhost"),
        os.environ.get("POSTGRES_PORT", "5432"),
        os.environ.get("POSTGRES_DB", "postgres"),
        os.environ.get("POSTGRES_SSLMODE", "prefer"),
    )


def redact(conninfo: str) -> str:
    """Connection string without credentials, for logs."""
    if "@" in conninfo:
        return conninfo.rsplit("@", 1)[-1]
    return " ".join(
        "password=***" if part.startswith("password=") else part
        for part in conninfo.split()
    )


async def init_pool(
    min_size: Optional[int] = None,
    max_size: Optional[int] = None,
    connection_string: Optional[str] = None,
) -> AsyncConnectionPool:
    """
    Open the process-wide pool. A second call returns the open pool.

    Bounds default to DATABASE_POOL_MIN (2) and DATABASE_POOL_MAX (10).
    """
    global _pool
    if _pool is not None:
        return _pool

    conninfo = connection_string or get_connection_string()
    min_size = min_size if min_size is not None else int(os.environ.get("DATABASE_POOL_MIN", 2))
    max_size = max_size if max_size is not None else int(os.environ.get("DATABASE_POOL_MAX", 10))

    pool = AsyncConnectionPool(conninfo=conninfo, min_size=min_size, max_size=max_size, open=False)
    await pool.open(wait=True)
    _pool = pool
    logger.info(f"Connection pool open on {redact(conninfo)} (min={min_size}, max={max_size})")
    return pool


async def close_pool() -> None:
    global _pool
    if _pool is None:
        return
    pool, _pool = _pool, None
    await pool.close()
    logger.info("Connection pool closed")


def table(schema: str, name: str) -> sql.Identifier:
    """schema.name identifier for sql.SQL().format()."""
    return sql.Identifier(schema, name)


__all__ = [
    "DEFAULT_SCHEMA",
    "OPERATIONS_TABLE",
    "ORCHESTRATIONS_TABLE",
    "INSTANCES_TABLE",
    "get_connection_string",
    "redact",
    "init_pool",
    "close_pool",
    "table",
]
