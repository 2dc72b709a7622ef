# ============================================================================
# ORCHESTRATOR MODULE
# ============================================================================
# STATUS: Core - Fleet campaign orchestration
# PURPOSE: Expand campaigns into per-runtime operations and drive them
# CREATED: 05 OCT 2026
# ============================================================================
"""
Orchestrator Module

Usage:
    from orchestrator import OrchestrationManager, OperationFactory, StoreRuntimeResolver

    manager = OrchestrationManager(storage, StoreRuntimeResolver(storage.instances), ...)
    orchestration_queue = Queue(manager, "orchestrations")
"""

from .factory import OperationFactory, to_runtime_operation
from .maintenance import (
    apply_maintenance_window,
    first_available_day_diff,
    next_available_day_diff,
    resolve_maintenance_window,
)
from .manager import OrchestrationManager, update_retrying_description
from .policy import (
    FileMaintenancePolicyProvider,
    MaintenancePolicyProvider,
    StaticMaintenancePolicyProvider,
)
from .polling import poll_immediate_until
from .resolver import RuntimeResolver, StoreRuntimeResolver
from .strategies import ExecutionStrategy, ParallelStrategy, parallel_strategy_factory

__all__ = [
    "OperationFactory",
    "to_runtime_operation",
    "apply_maintenance_window",
    "first_available_day_diff",
    "next_available_day_diff",
    "resolve_maintenance_window",
    "OrchestrationManager",
    "update_retrying_description",
    "FileMaintenancePolicyProvider",
    "MaintenancePolicyProvider",
    "StaticMaintenancePolicyProvider",
    "poll_immediate_until",
    "RuntimeResolver",
    "StoreRuntimeResolver",
    "ExecutionStrategy",
    "ParallelStrategy",
    "parallel_strategy_factory",
]
