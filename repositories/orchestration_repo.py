# ============================================================================
# ORCHESTRATION REPOSITORY
# ============================================================================
# STATUS: Core - Orchestration CRUD operations
# PURPOSE: Database access for the orchestrations table
# CREATED: 25 SEP 2026
# ============================================================================
"""
Orchestration Repository

PostgreSQL implementation of OrchestrationStore. Parameters are stored as
one JSONB document.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from psycopg import errors as pg_errors, sql
from psycopg.rows import dict_row
from psycopg.types.json import Json
from psycopg_pool import AsyncConnectionPool

from core.contracts import OrchestrationState, OrchestrationType
from core.errors import ConflictError, NotFoundError
from core.models import Orchestration, OrchestrationParameters
from repositories.base import OrchestrationFilter, OrchestrationStore
from repositories.database import DEFAULT_SCHEMA, ORCHESTRATIONS_TABLE, table

logger = logging.getLogger(__name__)


class OrchestrationRepository(OrchestrationStore):
    """Repository for Orchestration entities."""

    def __init__(self, pool: AsyncConnectionPool, schema: str = DEFAULT_SCHEMA):
        self.pool = pool
        self.table = table(schema, ORCHESTRATIONS_TABLE)

    async def insert(self, orchestration: Orchestration) -> Orchestration:
        async with self.pool.connection() as conn:
            try:
                await conn.execute(
                    sql.SQL("""
                    INSERT INTO {} (
                        orchestration_id, type, state, description, parameters,
                        created_at, updated_at, version
                    ) VALUES (
                        %(orchestration_id)s, %(type)s, %(state)s, %(description)s,
                        %(parameters)s, %(created_at)s, %(updated_at)s, %(version)s
                    )
                    """).format(self.table),
                    self._params(orchestration),
                )
            except pg_errors.UniqueViolation as e:
                raise ConflictError("orchestration", orchestration.orchestration_id) from e

        logger.info(
            f"Created orchestration {orchestration.orchestration_id} "
            f"type={orchestration.type.value}"
        )
        return orchestration

    async def get(self, orchestration_id: str) -> Orchestration:
        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(
                sql.SQL("SELECT * FROM {} WHERE orchestration_id = %s").format(self.table),
                (orchestration_id,),
            )
            row = await result.fetchone()

        if row is None:
            raise NotFoundError("orchestration", orchestration_id)
        return self._row_to_orchestration(row)

    async def update(self, orchestration: Orchestration) -> Orchestration:
        updated_at = datetime.now(timezone.utc)
        params = self._params(orchestration)
        params["updated_at"] = updated_at

        async with self.pool.connection() as conn:
            result = await conn.execute(
                sql.SQL("""
                UPDATE {} SET
                    state = %(state)s,
                    description = %(description)s,
                    parameters = %(parameters)s,
                    updated_at = %(updated_at)s,
                    version = version + 1
                WHERE orchestration_id = %(orchestration_id)s
                  AND version = %(version)s
                """).format(self.table),
                params,
            )

            if result.rowcount == 0:
                exists = await conn.execute(
                    sql.SQL("SELECT 1 FROM {} WHERE orchestration_id = %s").format(self.table),
                    (orchestration.orchestration_id,),
                )
                if await exists.fetchone() is None:
                    raise NotFoundError("orchestration", orchestration.orchestration_id)
                logger.warning(
                    f"Version conflict updating orchestration {orchestration.orchestration_id} "
                    f"(expected version {orchestration.version})"
                )
                raise ConflictError(
                    "orchestration", orchestration.orchestration_id, orchestration.version
                )

        orchestration.version += 1
        orchestration.updated_at = updated_at
        return orchestration

    async def list(self, orch_filter: Optional[OrchestrationFilter] = None) -> List[Orchestration]:
        orch_filter = orch_filter or OrchestrationFilter()
        clauses = []
        params: List[Any] = []

        if orch_filter.types:
            clauses.append(sql.SQL("type = ANY(%s)"))
            params.append([t.value for t in orch_filter.types])
        if orch_filter.states:
            clauses.append(sql.SQL("state = ANY(%s)"))
            params.append([s.value for s in orch_filter.states])

        query = sql.SQL("SELECT * FROM {}").format(self.table)
        if clauses:
            query = query + sql.SQL(" WHERE ") + sql.SQL(" AND ").join(clauses)
        query = query + sql.SQL(" ORDER BY created_at ASC")
        if orch_filter.limit is not None:
            query = query + sql.SQL(" LIMIT %s")
            params.append(orch_filter.limit)

        async with self.pool.connection() as conn:
            conn.row_factory = dict_row
            result = await conn.execute(query, params)
            rows = await result.fetchall()
        return [self._row_to_orchestration(row) for row in rows]

    @staticmethod
    def _params(orchestration: Orchestration) -> Dict[str, Any]:
        return {
            "orchestration_id": orchestration.orchestration_id,
            "type": orchestration.type.value,
            "state": orchestration.state.value,
            "description": orchestration.description,
            "parameters": Json(orchestration.parameters.model_dump(mode="json")),
            "created_at": orchestration.created_at,
            "updated_at": orchestration.updated_at,
            "version": orchestration.version,
        }

    @staticmethod
    def _row_to_orchestration(row: Dict[str, Any]) -> Orchestration:
        return Orchestration(
            orchestration_id=row["orchestration_id"],
            type=OrchestrationType(row["type"]),
            state=OrchestrationState(row["state"]),
            description=row.get("description") or "",
            parameters=OrchestrationParameters.model_validate(row.get("parameters") or {}),
            created_at=row["created_at"],
            updated_at=row.get("updated_at") or row["created_at"],
            version=row.get("version", 1),
        )


__all__ = ["OrchestrationRepository"]
