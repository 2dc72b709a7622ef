# ============================================================================
# IN-MEMORY STORES
# ============================================================================
# STATUS: Core - Process-local storage backend
# PURPOSE: Store implementation for tests and local development
# CREATED: 24 SEP 2026
# ============================================================================
"""
In-memory stores.

Records are deep-copied on the way in and out, so a caller holding a model
never shares state with the store or with another caller. That keeps the
optimistic version check meaningful, exactly like the database backend.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from core.contracts import OperationState
from core.errors import ConflictError, NotFoundError
from core.models import Instance, Operation, Orchestration
from repositories.base import (
    InstanceStore,
    OperationFilter,
    OperationStore,
    OrchestrationFilter,
    OrchestrationStore,
    Storage,
    empty_stats,
)

logger = logging.getLogger(__name__)


def _versioned_write(kind: str, records: Dict, record_id: str, entity):
    stored = records.get(record_id)
    if stored is None:
        raise NotFoundError(kind, record_id)
    if stored.version != entity.version:
        logger.warning(
            f"Version conflict updating {kind} {record_id} "
            f"(expected version {entity.version}, stored {stored.version})"
        )
        raise ConflictError(kind, record_id, entity.version)

    entity.version += 1
    entity.updated_at = datetime.now(timezone.utc)
    records[record_id] = entity.model_copy(deep=True)
    return entity


class InMemoryOperationStore(OperationStore):

    def __init__(self):
        self._operations: Dict[str, Operation] = {}

    async def insert(self, operation: Operation) -> Operation:
        if operation.operation_id in self._operations:
            raise ConflictError("operation", operation.operation_id)
        self._operations[operation.operation_id] = operation.model_copy(deep=True)
        return operation

    async def get(self, operation_id: str) -> Operation:
        stored = self._operations.get(operation_id)
        if stored is None:
            raise NotFoundError("operation", operation_id)
        return stored.model_copy(deep=True)

    async def update(self, operation: Operation) -> Operation:
        return _versioned_write("operation", self._operations, operation.operation_id, operation)

    async def delete(self, operation_id: str) -> None:
        self._operations.pop(operation_id, None)

    async def list(self, op_filter: Optional[OperationFilter] = None) -> List[Operation]:
        op_filter = op_filter or OperationFilter()
        matched = sorted(
            (op for op in self._operations.values() if op_filter.matches(op)),
            key=lambda op: op.created_at,
        )
        if op_filter.limit is not None:
            matched = matched[:op_filter.limit]
        return [op.model_copy(deep=True) for op in matched]

    async def get_stats_for_orchestration(self, orchestration_id: str) -> Dict[OperationState, int]:
        stats = empty_stats()
        for op in self._operations.values():
            if op.orchestration_id == orchestration_id:
                stats[op.state] += 1
        return stats


class InMemoryOrchestrationStore(OrchestrationStore):

    def __init__(self):
        self._orchestrations: Dict[str, Orchestration] = {}

    async def insert(self, orchestration: Orchestration) -> Orchestration:
        if orchestration.orchestration_id in self._orchestrations:
            raise ConflictError("orchestration", orchestration.orchestration_id)
        self._orchestrations[orchestration.orchestration_id] = orchestration.model_copy(deep=True)
        return orchestration

    async def get(self, orchestration_id: str) -> Orchestration:
        stored = self._orchestrations.get(orchestration_id)
        if stored is None:
            raise NotFoundError("orchestration", orchestration_id)
        return stored.model_copy(deep=True)

    async def update(self, orchestration: Orchestration) -> Orchestration:
        return _versioned_write(
            "orchestration", self._orchestrations, orchestration.orchestration_id, orchestration
        )

    async def list(self, orch_filter: Optional[OrchestrationFilter] = None) -> List[Orchestration]:
        orch_filter = orch_filter or OrchestrationFilter()
        matched = sorted(
            (o for o in self._orchestrations.values() if orch_filter.matches(o)),
            key=lambda o: o.created_at,
        )
        if orch_filter.limit is not None:
            matched = matched[:orch_filter.limit]
        return [o.model_copy(deep=True) for o in matched]


class InMemoryInstanceStore(InstanceStore):

    def __init__(self):
        self._instances: Dict[str, Instance] = {}

    async def upsert(self, instance: Instance) -> Instance:
        self._instances[instance.instance_id] = instance.model_copy(deep=True)
        return instance

    async def get(self, instance_id: str) -> Instance:
        stored = self._instances.get(instance_id)
        if stored is None:
            raise NotFoundError("instance", instance_id)
        return stored.model_copy(deep=True)

    async def list(self) -> List[Instance]:
        return [
            i.model_copy(deep=True)
            for i in sorted(self._instances.values(), key=lambda i: i.created_at)
        ]


def create_memory_storage() -> Storage:
    return Storage(
        operations=InMemoryOperationStore(),
        orchestrations=InMemoryOrchestrationStore(),
        instances=InMemoryInstanceStore(),
    )


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "InMemoryOperationStore",
    "InMemoryOrchestrationStore",
    "InMemoryInstanceStore",
    "create_memory_storage",
]
