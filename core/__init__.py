# ============================================================================
# CORE MODULE
# ============================================================================
# STATUS: Core module initialization
# PURPOSE: Export core contracts, errors and models
# CREATED: 21 SEP 2026
# ============================================================================

from core.contracts import (
    OperationState,
    OrchestrationState,
    NotificationState,
    OperationType,
    OrchestrationType,
    StrategyType,
    ScheduleType,
)
from core.errors import (
    EngineError,
    NotFoundError,
    ConflictError,
    TemporaryError,
    FatalError,
    ExecutionNotFoundError,
    NotificationError,
)
from core.models import (
    Operation,
    Orchestration,
    OrchestrationParameters,
    Instance,
    Runtime,
    RuntimeOperation,
    MaintenancePolicy,
)

__all__ = [
    # Enums
    "OperationState",
    "OrchestrationState",
    "NotificationState",
    "OperationType",
    "OrchestrationType",
    "StrategyType",
    "ScheduleType",
    # Errors
    "EngineError",
    "NotFoundError",
    "ConflictError",
    "TemporaryError",
    "FatalError",
    "ExecutionNotFoundError",
    "NotificationError",
    # Models
    "Operation",
    "Orchestration",
    "OrchestrationParameters",
    "Instance",
    "Runtime",
    "RuntimeOperation",
    "MaintenancePolicy",
]
