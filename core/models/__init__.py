# ============================================================================
# MODELS MODULE
# ============================================================================
# STATUS: Model exports
# PURPOSE: Central export point for all Pydantic models
# CREATED: 21 SEP 2026
# ============================================================================
"""
Models Module - Central Export Point

All Pydantic models for the operation engine. Persisted models carry their
table name in a __sql_table__ ClassVar (see repositories.schema).
"""

from core.models.runtime import Instance, Runtime, RuntimeOperation
from core.models.operation import Operation
from core.models.orchestration import (
    TARGET_ALL,
    RuntimeTarget,
    TargetSpec,
    ParallelStrategySpec,
    StrategySpec,
    RetryOperationParameters,
    OrchestrationParameters,
    Orchestration,
)
from core.models.maintenance import (
    MAINTENANCE_WINDOW_FORMAT,
    MaintenancePolicyMatch,
    MaintenancePolicyEntry,
    MaintenancePolicyRule,
    MaintenancePolicy,
)
from core.models.events import (
    EventType,
    EngineEvent,
    StepProcessed,
    OperationStateChanged,
    OrchestrationStateChanged,
)

__all__ = [
    # Runtime
    "Instance",
    "Runtime",
    "RuntimeOperation",
    # Operation
    "Operation",
    # Orchestration
    "TARGET_ALL",
    "RuntimeTarget",
    "TargetSpec",
    "ParallelStrategySpec",
    "StrategySpec",
    "RetryOperationParameters",
    "OrchestrationParameters",
    "Orchestration",
    # Maintenance
    "MAINTENANCE_WINDOW_FORMAT",
    "MaintenancePolicyMatch",
    "MaintenancePolicyEntry",
    "MaintenancePolicyRule",
    "MaintenancePolicy",
    # Events
    "EventType",
    "EngineEvent",
    "StepProcessed",
    "OperationStateChanged",
    "OrchestrationStateChanged",
]
