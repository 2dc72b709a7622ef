# ============================================================================
# SCHEMA DDL
# ============================================================================
# STATUS: Core - PostgreSQL schema for the stores
# PURPOSE: Idempotent DDL for operations, orchestrations and instances
# CREATED: 25 SEP 2026
# EXPORTS: build_statements, deploy_schema
# DEPENDENCIES: psycopg
# ============================================================================
"""
Schema DDL

All statements are idempotent (IF NOT EXISTS / CREATE OR REPLACE) so the
deployment can be re-run against an existing database.

Usage:
    for stmt in build_statements("fleet"):
        print(stmt.as_string(conn))
"""

import logging
from typing import List, Sequence

from psycopg import sql
from psycopg_pool import AsyncConnectionPool

from core.models import Instance, Operation, Orchestration
from repositories.database import DEFAULT_SCHEMA

logger = logging.getLogger(__name__)


_TABLE_COLUMNS = {
    Operation.__sql_table__: """
        operation_id      VARCHAR(64) PRIMARY KEY,
        instance_id       VARCHAR(64) NOT NULL,
        orchestration_id  VARCHAR(64),
        type              VARCHAR(32) NOT NULL,
        state             VARCHAR(32) NOT NULL,
        description       TEXT NOT NULL DEFAULT '',
        version           INTEGER NOT NULL DEFAULT 1,
        created_at        TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at        TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        started_at        TIMESTAMPTZ,
        finished_stages   JSONB NOT NULL DEFAULT '[]'::jsonb,
        parameters        JSONB NOT NULL DEFAULT '{{}}'::jsonb,
        runtime           JSONB,
        payload           JSONB NOT NULL DEFAULT '{{}}'::jsonb
    """,
    Orchestration.__sql_table__: """
        orchestration_id  VARCHAR(64) PRIMARY KEY,
        type              VARCHAR(32) NOT NULL,
        state             VARCHAR(32) NOT NULL,
        description       TEXT NOT NULL DEFAULT '',
        parameters        JSONB NOT NULL DEFAULT '{{}}'::jsonb,
        created_at        TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at        TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        version           INTEGER NOT NULL DEFAULT 1
    """,
    Instance.__sql_table__: """
        instance_id        VARCHAR(64) PRIMARY KEY,
        runtime_id         VARCHAR(64) NOT NULL DEFAULT '',
        global_account_id  VARCHAR(64) NOT NULL DEFAULT '',
        subaccount_id      VARCHAR(64) NOT NULL DEFAULT '',
        plan_id            VARCHAR(64) NOT NULL DEFAULT '',
        plan_name          VARCHAR(64) NOT NULL DEFAULT '',
        region             VARCHAR(64) NOT NULL DEFAULT '',
        provider           VARCHAR(32) NOT NULL DEFAULT '',
        created_at         TIMESTAMPTZ NOT NULL DEFAULT NOW()
    """,
}

_INDEXES = [
    (Operation.__sql_table__, ("orchestration_id", "state")),
    (Operation.__sql_table__, ("type", "state")),
    (Operation.__sql_table__, ("instance_id",)),
    (Orchestration.__sql_table__, ("type", "state")),
]


def btree_index(schema: str, table: str, columns: Sequence[str]) -> sql.Composed:
    """CREATE INDEX IF NOT EXISTS idx_<table>_<cols> ON schema.table (cols)."""
    return sql.SQL("CREATE INDEX IF NOT EXISTS {name} ON {schema}.{table} ({columns})").format(
        name=sql.Identifier(f"idx_{table}_{'_'.join(columns)}"),
        schema=sql.Identifier(schema),
        table=sql.Identifier(table),
        columns=sql.SQL(", ").join(sql.Identifier(c) for c in columns),
    )


def build_statements(schema: str = DEFAULT_SCHEMA) -> List[sql.Composed]:
    """Ordered DDL: schema, tables, indexes."""
    stmts = [sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(schema))]

    for table, columns in _TABLE_COLUMNS.items():
        stmts.append(
            sql.SQL("CREATE TABLE IF NOT EXISTS {schema}.{table} (" + columns + ")").format(
                schema=sql.Identifier(schema),
                table=sql.Identifier(table),
            )
        )

    for table, columns in _INDEXES:
        stmts.append(btree_index(schema, table, columns))

    return stmts


async def deploy_schema(
    pool: AsyncConnectionPool,
    schema: str = DEFAULT_SCHEMA,
    dry_run: bool = False,
) -> List[str]:
    """
    Execute the DDL in one transaction.

    Returns:
        The rendered statements (executed unless dry_run)
    """
    rendered: List[str] = []
    async with pool.connection() as conn:
        for stmt in build_statements(schema):
            rendered.append(stmt.as_string(conn))
        if dry_run:
            return rendered

        async with conn.transaction():
            for stmt in build_statements(schema):
                await conn.execute(stmt)

    logger.info(f"Deployed schema {schema} ({len(rendered)} statements)")
    return rendered


__all__ = ["btree_index", "build_statements", "deploy_schema"]
