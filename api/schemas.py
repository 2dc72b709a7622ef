# ============================================================================
# API SCHEMAS
# ============================================================================
# STATUS: Core - Request/Response schemas
# PURPOSE: Pydantic models for API validation
# CREATED: 10 OCT 2026
# ============================================================================
"""
API Schemas

Request and response models for the API.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from core.contracts import (
    NotificationState,
    OperationState,
    OperationType,
    OrchestrationState,
    OrchestrationType,
)
from core.models import Operation, Orchestration, Runtime, StrategySpec, TargetSpec


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================

class OrchestrationCreate(BaseModel):
    """Request to start a fleet campaign."""
    type: OrchestrationType
    targets: TargetSpec = Field(..., description="Runtimes to include and exclude")
    strategy: StrategySpec = Field(default_factory=StrategySpec)
    version: Optional[str] = Field(None, max_length=64, description="Target component version")
    dry_run: bool = False
    description: str = Field(default="", max_length=256)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "type": "upgradeKyma",
                    "targets": {"include": [{"plan": "azure", "region": "europe.*"}]},
                    "strategy": {
                        "type": "parallel",
                        "schedule": "maintenanceWindow",
                        "maintenance_window": True,
                        "parallel": {"workers": 10},
                    },
                    "version": "2.4.1",
                }
            ]
        }
    }


class RetryRequest(BaseModel):
    """Request to retry failed operations of a campaign."""
    operation_ids: List[str] = Field(
        default_factory=list,
        description="Operations to retry; empty retries every failed operation"
    )
    immediate: bool = Field(default=False, description="Ignore maintenance windows")


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================

class ErrorResponse(BaseModel):
    detail: str


class OrchestrationResponse(BaseModel):
    orchestration_id: str
    type: OrchestrationType
    state: OrchestrationState
    description: str = ""
    notification_state: Optional[NotificationState] = None
    retry_operations: List[str] = []
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_orchestration(cls, o: Orchestration) -> "OrchestrationResponse":
        return cls(
            orchestration_id=o.orchestration_id,
            type=o.type,
            state=o.state,
            description=o.description,
            notification_state=o.parameters.notification_state,
            retry_operations=list(o.parameters.retry_operation.retry_operations),
            created_at=o.created_at,
            updated_at=o.updated_at,
        )


class OrchestrationDetailResponse(OrchestrationResponse):
    parameters: Dict[str, Any] = {}

    @classmethod
    def from_orchestration(cls, o: Orchestration) -> "OrchestrationDetailResponse":
        base = OrchestrationResponse.from_orchestration(o)
        return cls(**base.model_dump(), parameters=o.parameters.model_dump(mode="json"))


class OrchestrationListResponse(BaseModel):
    orchestrations: List[OrchestrationResponse]
    total: int


class OperationResponse(BaseModel):
    operation_id: str
    instance_id: str
    orchestration_id: Optional[str] = None
    type: OperationType
    state: OperationState
    description: str = ""
    finished_stages: List[str] = []
    runtime: Optional[Runtime] = None
    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime] = None

    @classmethod
    def from_operation(cls, op: Operation) -> "OperationResponse":
        return cls(
            operation_id=op.operation_id,
            instance_id=op.instance_id,
            orchestration_id=op.orchestration_id,
            type=op.type,
            state=op.state,
            description=op.description,
            finished_stages=list(op.finished_stages),
            runtime=op.runtime,
            created_at=op.created_at,
            updated_at=op.updated_at,
            started_at=op.started_at,
        )


class OperationListResponse(BaseModel):
    """Operations of one orchestration with per-state counts."""
    orchestration_id: str
    stats: Dict[str, int]
    operations: List[OperationResponse]
    total: int


class RetryResponse(BaseModel):
    orchestration_id: str
    state: OrchestrationState
    retried: List[str]
    skipped: List[str] = []


__all__ = [
    "OrchestrationCreate",
    "RetryRequest",
    "ErrorResponse",
    "OrchestrationResponse",
    "OrchestrationDetailResponse",
    "OrchestrationListResponse",
    "OperationResponse",
    "OperationListResponse",
    "RetryResponse",
]
