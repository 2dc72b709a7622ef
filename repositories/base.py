# ============================================================================
# STORE INTERFACES
# ============================================================================
# STATUS: Core - Storage contracts for operations, orchestrations, instances
# PURPOSE: Version-checked persistence boundary shared by every manager
# CREATED: 24 SEP 2026
# ============================================================================
"""
Store Interfaces

Every write is version-checked. update() compares the entity's version with
the stored one and, on success, increments the version on the passed entity
in place (so callers keep working with a current copy):

    operation = await store.get(operation_id)
    operation.mark_in_progress()
    await store.update(operation)          # operation.version is now +1

Stale writes raise ConflictError, missing records raise NotFoundError, so
callers can choose between reload-and-retry and abort.

Two implementations ship: repositories.memory (tests and local development)
and the PostgreSQL repositories (operation_repo, orchestration_repo,
instance_repo).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from core.contracts import OperationState, OperationType, OrchestrationState, OrchestrationType
from core.models import Instance, Operation, Orchestration


# ============================================================================
# FILTERS
# ============================================================================

@dataclass
class OperationFilter:
    """Empty fields match everything."""
    orchestration_id: Optional[str] = None
    instance_id: Optional[str] = None
    types: Sequence[OperationType] = ()
    states: Sequence[OperationState] = ()
    limit: Optional[int] = None

    def matches(self, operation: Operation) -> bool:
        if self.orchestration_id is not None and operation.orchestration_id != self.orchestration_id:
            return False
        if self.instance_id is not None and operation.instance_id != self.instance_id:
            return False
        if self.types and operation.type not in self.types:
            return False
        if self.states and operation.state not in self.states:
            return False
        return True


@dataclass
class OrchestrationFilter:
    types: Sequence[OrchestrationType] = ()
    states: Sequence[OrchestrationState] = ()
    limit: Optional[int] = None

    def matches(self, orchestration: Orchestration) -> bool:
        if self.types and orchestration.type not in self.types:
            return False
        if self.states and orchestration.state not in self.states:
            return False
        return True


# ============================================================================
# STORES
# ============================================================================

class OperationStore(ABC):
    """Durable per-runtime operation records."""

    @abstractmethod
    async def insert(self, operation: Operation) -> Operation:
        """Persist a new operation. Duplicate id raises ConflictError."""

    @abstractmethod
    async def get(self, operation_id: str) -> Operation:
        """Load an operation. Missing id raises NotFoundError."""

    @abstractmethod
    async def update(self, operation: Operation) -> Operation:
        """Version-checked write; bumps operation.version on success."""

    @abstractmethod
    async def delete(self, operation_id: str) -> None:
        pass

    @abstractmethod
    async def list(self, op_filter: Optional[OperationFilter] = None) -> List[Operation]:
        """Operations matching the filter, oldest first."""

    @abstractmethod
    async def get_stats_for_orchestration(self, orchestration_id: str) -> Dict[OperationState, int]:
        """Count of operations per state. Every state is present in the result."""

    async def get_not_finished_by_type(self, operation_type: OperationType) -> List[Operation]:
        return await self.list(OperationFilter(
            types=[operation_type],
            states=OperationState.not_finished(),
        ))

    async def list_for_orchestration(
        self,
        orchestration_id: str,
        states: Sequence[OperationState] = (),
    ) -> List[Operation]:
        return await self.list(OperationFilter(orchestration_id=orchestration_id, states=states))


class OrchestrationStore(ABC):
    """Durable fleet campaign records."""

    @abstractmethod
    async def insert(self, orchestration: Orchestration) -> Orchestration:
        pass

    @abstractmethod
    async def get(self, orchestration_id: str) -> Orchestration:
        """Missing id raises NotFoundError."""

    @abstractmethod
    async def update(self, orchestration: Orchestration) -> Orchestration:
        """Version-checked write; bumps orchestration.version on success."""

    @abstractmethod
    async def list(self, orch_filter: Optional[OrchestrationFilter] = None) -> List[Orchestration]:
        """Orchestrations matching the filter, oldest first."""


class InstanceStore(ABC):
    """Read side of provisioned service instances, used for target resolution."""

    @abstractmethod
    async def upsert(self, instance: Instance) -> Instance:
        pass

    @abstractmethod
    async def get(self, instance_id: str) -> Instance:
        """Missing id raises NotFoundError."""

    @abstractmethod
    async def list(self) -> List[Instance]:
        pass


@dataclass
class Storage:
    """The three stores the engine works against."""
    operations: OperationStore
    orchestrations: OrchestrationStore
    instances: InstanceStore


def empty_stats() -> Dict[OperationState, int]:
    return {state: 0 for state in OperationState}


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "OperationFilter",
    "OrchestrationFilter",
    "OperationStore",
    "OrchestrationStore",
    "InstanceStore",
    "Storage",
    "empty_stats",
]
