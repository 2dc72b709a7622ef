# ============================================================================
# ORCHESTRATION MODEL
# ============================================================================
# STATUS: Core model - Fleet-wide campaign record
# PURPOSE: Track one upgrade campaign across many runtimes
# CREATED: 22 SEP 2026
# EXPORTS: Orchestration, OrchestrationParameters, StrategySpec,
#          ParallelStrategySpec, RetryOperationParameters, TargetSpec,
#          RuntimeTarget
# DEPENDENCIES: pydantic
# ============================================================================
"""
Orchestration Model

An Orchestration is the durable record of one fleet-wide campaign, e.g.
"upgrade every runtime on plan X to version Y". It is mutated only by the
orchestration manager, except for two out-of-band requests made through the
API: CANCELING (observed on the next poll) and a retry request
(retry_operation.retry_operations).
"""

from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Optional

from pydantic import BaseModel, Field, computed_field, field_validator

from core.contracts import (
    NotificationState,
    OrchestrationState,
    OrchestrationType,
    ScheduleType,
    StrategyType,
)


# ============================================================================
# TARGETS
# ============================================================================

TARGET_ALL = "all"


class RuntimeTarget(BaseModel):
    """
    One target rule. Every non-empty field must match.

    global_account, subaccount and region are regular expressions;
    runtime_id, instance_id and plan are exact matches.
    """
    target: Optional[str] = Field(default=None, description="'all' matches every runtime")
    global_account: Optional[str] = None
    subaccount: Optional[str] = None
    runtime_id: Optional[str] = None
    instance_id: Optional[str] = None
    region: Optional[str] = None
    plan: Optional[str] = None

    @field_validator("target")
    @classmethod
    def validate_target(cls, v):
        if v is not None and v != TARGET_ALL:
            raise ValueError(f"unknown target {v!r}, only {TARGET_ALL!r} is supported")
        return v


class TargetSpec(BaseModel):
    """Runtimes matching any include rule and no exclude rule."""
    include: List[RuntimeTarget] = Field(default_factory=list)
    exclude: List[RuntimeTarget] = Field(default_factory=list)


# ============================================================================
# STRATEGY
# ============================================================================

class ParallelStrategySpec(BaseModel):
    workers: int = Field(default=1, ge=1, le=1000)


class StrategySpec(BaseModel):
    """Concurrency and scheduling policy for the campaign's operations."""
    type: StrategyType = Field(default=StrategyType.PARALLEL)
    schedule: ScheduleType = Field(default=ScheduleType.IMMEDIATE)
    maintenance_window: bool = Field(
        default=False,
        description="Compute per-runtime maintenance windows from policy"
    )
    schedule_time: Optional[datetime] = Field(
        default=None,
        description="Earliest allowed start time"
    )
    parallel: ParallelStrategySpec = Field(default_factory=ParallelStrategySpec)


class RetryOperationParameters(BaseModel):
    immediate: bool = False
    retry_operations: List[str] = Field(default_factory=list)


class OrchestrationParameters(BaseModel):
    targets: TargetSpec = Field(default_factory=TargetSpec)
    strategy: StrategySpec = Field(default_factory=StrategySpec)
    retry_operation: RetryOperationParameters = Field(default_factory=RetryOperationParameters)
    notification_state: Optional[NotificationState] = None
    version: Optional[str] = Field(default=None, description="Target component version")
    dry_run: bool = False


# ============================================================================
# ORCHESTRATION
# ============================================================================

class Orchestration(BaseModel):
    """
    A fleet-wide campaign.

    Maps to: fleet.orchestrations table
    """

    __sql_table__: ClassVar[str] = "orchestrations"

    orchestration_id: str = Field(..., max_length=64)
    type: OrchestrationType
    state: OrchestrationState = Field(default=OrchestrationState.PENDING)
    description: str = Field(default="")
    parameters: OrchestrationParameters = Field(default_factory=OrchestrationParameters)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Optimistic locking
    version: int = Field(default=1, ge=1)

    @computed_field
    @property
    def is_finished(self) -> bool:
        """Check if orchestration is in a terminal state."""
        return self.state.is_terminal()

    @property
    def notifications_created(self) -> bool:
        return self.parameters.notification_state == NotificationState.CREATED

    def to_summary(self) -> Dict[str, Any]:
        return {
            "orchestration_id": self.orchestration_id,
            "type": self.type.value,
            "state": self.state.value,
            "description": self.description,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


__all__ = [
    "TARGET_ALL",
    "RuntimeTarget",
    "TargetSpec",
    "ParallelStrategySpec",
    "StrategySpec",
    "RetryOperationParameters",
    "OrchestrationParameters",
    "Orchestration",
]
