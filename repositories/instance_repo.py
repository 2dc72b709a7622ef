# ============================================================================
# INSTANCE REPOSITORY
# ============================================================================
# STATUS: Core - Instance read model
# PURPOSE: Database access for the instances table (target resolution)
# CREATED: 25 SEP 2026
# ============================================================================
"""
Instance Repository

PostgreSQL implementation of InstanceStore.
"""

import logging
from typing import Any, Dict, List

from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from core.errors import NotFoundError
from core.models import Instance
from repositories.base import InstanceStore
from repositories.database import DEFAULT_SCHEMA, INSTANCES_TABLE, table

logger = logging.getLogger(__name__)

_COLUMNS = (
    "instance_id",
    "runtime_id",
    "global_account_id",
    "subaccount_id",
    "plan_id",
    "plan_name",
    "region",
    "provider",
    "created_at",
)


class InstanceRepository(InstanceStore):

    def __init__(self, pool: AsyncConnectionPool, schema: str = DEFAULT_SCHEMA):
        self.pool = pool
        self.table = table(schema, INSTANCES_TABLE)

    async def upsert(self, instance: Instance) -> Instance:
        columns = sql.SQL(", ").join(sql.Identifier(c) for c in _COLUMNS)
        values = sql.SQL(", ").join(sql.Placeholder(c) for c in _COLUMNS)
        updates = sql.SQL(", ").join(
            sql.SQL("{} = EXCLUDED.{}").format(sql.Identifier(c), sql.Identifier(c))
            for c in _COLUMNS
            if c not in ("instance_id", "created_at")
        )

        async with self.pool.connection() as conn:
            await conn.execute(
                sql.SQL("""
                INSERT INTO {} ({}) VALUES ({})
                ON CONFLICT (instance_id) DO UPDATE SET {}
                """).format(self.table, columns, values, updates),
                instance.model_dump(include=set(_COLUMNS)),
            )
        logger.debug(f"Upserted instance {instance.instance_id}")
        return instance

    async def get(self, instance_id: str) -> Instance:
        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL("SELECT * FROM {} WHERE instance_id = %s").format(self.table),
                (instance_id,),
            )
            row = await result.fetchone()

        if row is None:
            raise NotFoundError("instance", instance_id)
        return self._row_to_instance(row)

    async def list(self) -> List[Instance]:
        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL("SELECT * FROM {} ORDER BY created_at ASC").format(self.table),
            )
            rows = await result.fetchall()
        return [self._row_to_instance(row) for row in rows]

    @staticmethod
    def _row_to_instance(row: Dict[str, Any]) -> Instance:
        return Instance(**{k: v for k, v in row.items() if k in _COLUMNS and v is not None})


__all__ = ["InstanceRepository"]
