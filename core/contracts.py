# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# STATUS: Foundation - Core enums for operations and orchestrations
# PURPOSE: Define lifecycle states and type tags shared across the engine
# CREATED: 21 SEP 2026
# EXPORTS: OperationState, OrchestrationState, NotificationState,
#          OperationType, OrchestrationType, StrategyType, ScheduleType
# DEPENDENCIES: enum
# ============================================================================
"""
Base contracts for the runtime fleet engine.

These enums cross every boundary:
- SQL (PostgreSQL state columns)
- HTTP (API payloads)
- Python (manager and strategy logic)
"""

from enum import Enum


# ============================================================================
# STATUS ENUMS
# ============================================================================

class OperationState(str, Enum):
    """
    Per-runtime operation lifecycle states.

    State transitions:
        PENDING -> IN_PROGRESS -> SUCCEEDED
                               -> FAILED
                -> CANCELED (orchestration canceled before start)
        FAILED  -> PENDING (explicit retry)
    """
    PENDING = "pending"
    IN_PROGRESS = "in progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"
    RETRYING = "retrying"

    def is_terminal(self) -> bool:
        """Check if this is a terminal state (no further transitions)."""
        return self in (
            OperationState.SUCCEEDED,
            OperationState.FAILED,
            OperationState.CANCELED,
        )

    @classmethod
    def not_finished(cls) -> tuple:
        return (cls.PENDING, cls.IN_PROGRESS, cls.RETRYING)


class OrchestrationState(str, Enum):
    """
    Fleet campaign lifecycle states.

    State transitions:
        PENDING -> IN_PROGRESS -> SUCCEEDED
                               -> FAILED
                               -> CANCELING -> CANCELED
                -> SUCCEEDED (no targets)
        RETRYING -> IN_PROGRESS
                 -> SUCCEEDED
    """
    PENDING = "pending"
    IN_PROGRESS = "in progress"
    RETRYING = "retrying"
    CANCELING = "canceling"
    CANCELED = "canceled"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    def is_terminal(self) -> bool:
        """Check if this is a terminal state."""
        return self in (
            OrchestrationState.SUCCEEDED,
            OrchestrationState.FAILED,
            OrchestrationState.CANCELED,
        )


class NotificationState(str, Enum):
    """
    Customer notification lifecycle for one orchestration.

    Monotonic: PENDING -> CREATED -> CANCELLED
    """
    PENDING = "pending"
    CREATED = "created"
    CANCELLED = "cancelled"


# ============================================================================
# TYPE TAGS
# ============================================================================

class OperationType(str, Enum):
    """Kinds of per-runtime operations. Each type has one fixed pipeline."""
    PROVISION = "provision"
    DEPROVISION = "deprovision"
    UPDATE = "update"
    UPGRADE_KYMA = "upgradeKyma"
    UPGRADE_CLUSTER = "upgradeCluster"


class OrchestrationType(str, Enum):
    """Kinds of fleet campaigns."""
    UPGRADE_KYMA = "upgradeKyma"
    UPGRADE_CLUSTER = "upgradeCluster"

    @property
    def operation_type(self) -> OperationType:
        """Per-runtime operation type spawned by this campaign."""
        return OperationType(self.value)


class StrategyType(str, Enum):
    """Concurrency policies for a batch of per-runtime operations."""
    PARALLEL = "parallel"


class ScheduleType(str, Enum):
    """When the operations of a batch may start."""
    IMMEDIATE = "immediate"
    TIME = "time"
    MAINTENANCE_WINDOW = "maintenanceWindow"


__all__ = [
    "OperationState",
    "OrchestrationState",
    "NotificationState",
    "OperationType",
    "OrchestrationType",
    "StrategyType",
    "ScheduleType",
]
