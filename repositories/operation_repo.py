# ============================================================================
# OPERATION REPOSITORY
# ============================================================================
# STATUS: Core - Operation CRUD operations
# PURPOSE: Database access for the operations table
# CREATED: 25 SEP 2026
# ============================================================================
"""
Operation Repository

PostgreSQL implementation of OperationStore.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from psycopg import errors as pg_errors, sql
from psycopg.rows import dict_row
from psycopg.types.json import Json
from psycopg_pool import AsyncConnectionPool

from core.contracts import OperationState, OperationType
from core.errors import ConflictError, NotFoundError
from core.models import Operation, Runtime
from repositories.base import OperationFilter, OperationStore, empty_stats
from repositories.database import DEFAULT_SCHEMA, OPERATIONS_TABLE, table

logger = logging.getLogger(__name__)


class OperationRepository(OperationStore):
    """Repository for Operation entities."""

    def __init__(self, pool: AsyncConnectionPool, schema: str = DEFAULT_SCHEMA):
        self.pool = pool
        self.table = table(schema, OPERATIONS_TABLE)

    async def insert(self, operation: Operation) -> Operation:
        async with self.pool.connection() as conn:
            try:
                await conn.execute(
                    sql.SQL("""
                    INSERT INTO {} (
                        operation_id, instance_id, orchestration_id, type, state,
                        description, version, created_at, updated_at, started_at,
                        finished_stages, parameters, runtime, payload
                    ) VALUES (
                        %(operation_id)s, %(instance_id)s, %(orchestration_id)s,
                        %(type)s, %(state)s, %(description)s, %(version)s,
                        %(created_at)s, %(updated_at)s, %(started_at)s, %(finished_stages)s,
                        %(parameters)s, %(runtime)s, %(payload)s
                    )
                    """).format(self.table),
                    self._params(operation),
                )
            except pg_errors.UniqueViolation as e:
                raise ConflictError("operation", operation.operation_id) from e

        logger.info(
            f"Created operation {operation.operation_id} "
            f"type={operation.type.value} instance={operation.instance_id}"
        )
        return operation

    async def get(self, operation_id: str) -> Operation:
        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL("SELECT * FROM {} WHERE operation_id = %s").format(self.table),
                (operation_id,),
            )
            row = await result.fetchone()

        if row is None:
            raise NotFoundError("operation", operation_id)
        return self._row_to_operation(row)

    async def update(self, operation: Operation) -> Operation:
        """
        Update with optimistic locking.

        Zero rows updated means either a newer version exists (ConflictError)
        or the row is gone (NotFoundError); one extra lookup tells them apart.
        """
        updated_at = datetime.now(timezone.utc)
        params = self._params(operation)
        params["updated_at"] = updated_at

        async with self.pool.connection() as conn:
            result = await conn.execute(
                sql.SQL("""
                UPDATE {} SET
                    state = %(state)s,
                    description = %(description)s,
                    created_at = %(created_at)s,
                    updated_at = %(updated_at)s,
                    started_at = %(started_at)s,
                    finished_stages = %(finished_stages)s,
                    parameters = %(parameters)s,
                    runtime = %(runtime)s,
                    payload = %(payload)s,
                    version = version + 1
                WHERE operation_id = %(operation_id)s
                  AND version = %(version)s
                """).format(self.table),
                params,
            )

            if result.rowcount == 0:
                exists = await conn.execute(
                    sql.SQL("SELECT 1 FROM {} WHERE operation_id = %s").format(self.table),
                    (operation.operation_id,),
                )
                if await exists.fetchone() is None:
                    raise NotFoundError("operation", operation.operation_id)
                logger.warning(
                    f"Version conflict updating operation {operation.operation_id} "
                    f"(expected version {operation.version})"
                )
                raise ConflictError("operation", operation.operation_id, operation.version)

        operation.version += 1
        operation.updated_at = updated_at
        logger.debug(
            f"Updated operation {operation.operation_id} state={operation.state.value} "
            f"version={operation.version}"
        )
        return operation

    async def delete(self, operation_id: str) -> None:
        async with self.pool.connection() as conn:
            await conn.execute(
                sql.SQL("DELETE FROM {} WHERE operation_id = %s").format(self.table),
                (operation_id,),
            )

    async def list(self, op_filter: Optional[OperationFilter] = None) -> List[Operation]:
        op_filter = op_filter or OperationFilter()
        clauses = []
        params: List[Any] = []

        if op_filter.orchestration_id is not None:
            clauses.append(sql.SQL("orchestration_id = %s"))
            params.append(op_filter.orchestration_id)
        if op_filter.instance_id is not None:
            clauses.append(sql.SQL("instance_id = %s"))
            params.append(op_filter.instance_id)
        if op_filter.types:
            clauses.append(sql.SQL("type = ANY(%s)"))
            params.append([t.value for t in op_filter.types])
        if op_filter.states:
            clauses.append(sql.SQL("state = ANY(%s)"))
            params.append([s.value for s in op_filter.states])

        query = sql.SQL("SELECT * FROM {}").format(self.table)
        if clauses:
            query = query + sql.SQL(" WHERE ") + sql.SQL(" AND ").join(clauses)
        query = query + sql.SQL(" ORDER BY created_at ASC")
        if op_filter.limit is not None:
            query = query + sql.SQL(" LIMIT %s")
            params.append(op_filter.limit)

        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(query, params)
            rows = await result.fetchall()
        return [self._row_to_operation(row) for row in rows]

    async def get_stats_for_orchestration(self, orchestration_id: str) -> Dict[OperationState, int]:
        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL("""
                SELECT state, COUNT(*) AS count
                FROM {}
                WHERE orchestration_id = %s
                GROUP BY state
                """).format(self.table),
                (orchestration_id,),
            )
            rows = await result.fetchall()

        stats = empty_stats()
        for row in rows:
            stats[OperationState(row["state"])] = row["count"]
        return stats

    @staticmethod
    def _params(operation: Operation) -> Dict[str, Any]:
        return {
            "operation_id": operation.operation_id,
            "instance_id": operation.instance_id,
            "orchestration_id": operation.orchestration_id,
            "type": operation.type.value,
            "state": operation.state.value,
            "description": operation.description,
            "version": operation.version,
            "created_at": operation.created_at,
            "updated_at": operation.updated_at,
            "started_at": operation.started_at,
            "finished_stages": Json(operation.finished_stages),
            "parameters": Json(operation.parameters),
            "runtime": Json(operation.runtime.model_dump(mode="json")) if operation.runtime else None,
            "payload": Json(operation.payload),
        }

    @staticmethod
    def _row_to_operation(row: Dict[str, Any]) -> Operation:
        """Convert database row to Operation model."""
        runtime = row.get("runtime")
        return Operation(
            operation_id=row["operation_id"],
            instance_id=row["instance_id"],
            orchestration_id=row.get("orchestration_id"),
            type=OperationType(row["type"]),
            state=OperationState(row["state"]),
            description=row.get("description") or "",
            version=row.get("version", 1),
            created_at=row["created_at"],
            updated_at=row.get("updated_at") or row["created_at"],
            started_at=row.get("started_at"),
            finished_stages=row.get("finished_stages") or [],
            parameters=row.get("parameters") or {},
            runtime=Runtime.model_validate(runtime) if runtime else None,
            payload=row.get("payload") or {},
        )


__all__ = ["OperationRepository"]
