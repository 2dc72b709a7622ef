# ============================================================================
# REPOSITORIES MODULE
# ============================================================================
# STATUS: Core - Storage layer
# PURPOSE: Store interfaces plus in-memory and PostgreSQL backends
# CREATED: 24 SEP 2026
# ============================================================================
"""
Repositories Module

Usage:
    from repositories import create_memory_storage, create_postgres_storage

    storage = create_memory_storage()
    operation = await storage.operations.get(operation_id)
"""

from psycopg_pool import AsyncConnectionPool

from .base import (
    InstanceStore,
    OperationFilter,
    OperationStore,
    OrchestrationFilter,
    OrchestrationStore,
    Storage,
)
from .database import DEFAULT_SCHEMA, init_pool, close_pool
from .memory import create_memory_storage
from .operation_repo import OperationRepository
from .orchestration_repo import OrchestrationRepository
from .instance_repo import InstanceRepository


def create_postgres_storage(pool: AsyncConnectionPool, schema: str = DEFAULT_SCHEMA) -> Storage:
    return Storage(
        operations=OperationRepository(pool, schema),
        orchestrations=OrchestrationRepository(pool, schema),
        instances=InstanceRepository(pool, schema),
    )


__all__ = [
    "InstanceStore",
    "OperationFilter",
    "OperationStore",
    "OrchestrationFilter",
    "OrchestrationStore",
    "Storage",
    "init_pool",
    "close_pool",
    "create_memory_storage",
    "create_postgres_storage",
    "OperationRepository",
    "OrchestrationRepository",
    "InstanceRepository",
]
