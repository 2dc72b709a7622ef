# ============================================================================
# OPERATION MODEL
# ============================================================================
# STATUS: Core model - Durable per-runtime lifecycle action
# PURPOSE: Track one provision/upgrade/deprovision run through its stages
# CREATED: 21 SEP 2026
# EXPORTS: Operation
# DEPENDENCIES: pydantic
# ============================================================================
"""
Operation Model

An Operation is the durable record of one in-progress lifecycle action for
one runtime instance. Created by the API layer (or by an orchestration for
fleet campaigns), mutated only by steps and managers through version-checked
store writes.

Pipeline progress lives in finished_stages: once a stage name is recorded
there the stage is never re-entered for this operation.
"""

from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Optional

from pydantic import BaseModel, Field, computed_field

from core.contracts import OperationState, OperationType
from core.models.runtime import Runtime


class Operation(BaseModel):
    """
    One lifecycle action for one runtime instance.

    Maps to: fleet.operations table

    Lifecycle:
        1. Created with state=PENDING by the API layer or an orchestration
        2. Transitions to IN_PROGRESS when the start step runs
        3. Transitions to SUCCEEDED once every stage is finished
        4. Transitions to FAILED on a fatal step error or timeout
    """

    __sql_table__: ClassVar[str] = "operations"

    operation_id: str = Field(..., max_length=64)
    instance_id: str = Field(..., max_length=64)
    orchestration_id: Optional[str] = Field(default=None, max_length=64)
    type: OperationType

    state: OperationState = Field(default=OperationState.PENDING)
    description: str = Field(default="")

    # Optimistic locking
    version: int = Field(
        default=1,
        ge=1,
        description="Version for optimistic locking - incremented on each update"
    )

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: Optional[datetime] = Field(
        default=None,
        description="Set when the operation first leaves PENDING"
    )

    finished_stages: List[str] = Field(default_factory=list)
    parameters: Dict[str, Any] = Field(
        default_factory=dict,
        description="Opaque provisioning/upgrade parameters"
    )
    runtime: Optional[Runtime] = Field(
        default=None,
        description="Target runtime for orchestrated operations"
    )
    payload: Dict[str, Any] = Field(
        default_factory=dict,
        description="Domain data written by steps"
    )

    @computed_field
    @property
    def is_terminal(self) -> bool:
        """Check if operation is in a terminal state."""
        return self.state.is_terminal()

    def is_stage_finished(self, stage: str) -> bool:
        return stage in self.finished_stages

    def finish_stage(self, stage: str) -> None:
        if stage not in self.finished_stages:
            self.finished_stages.append(stage)

    def append_description(self, text: str) -> None:
        """Append to the description log."""
        if not text:
            return
        self.description = f"{self.description} {text}".strip() if self.description else text

    def mark_in_progress(self, description: str = "") -> None:
        self.state = OperationState.IN_PROGRESS
        if self.started_at is None:
            self.started_at = datetime.now(timezone.utc)
        self.append_description(description)

    def mark_succeeded(self, description: str = "Processing finished") -> None:
        self.state = OperationState.SUCCEEDED
        self.append_description(description)

    def mark_failed(self, description: str) -> None:
        self.state = OperationState.FAILED
        self.append_description(description[:2000])

    def mark_canceled(self, description: str = "Operation canceled") -> None:
        self.state = OperationState.CANCELED
        self.append_description(description)

    def reset_for_retry(self) -> None:
        """
        Return a failed operation to PENDING with fresh stage progress.

        The processing time limit is measured from created_at (standalone)
        or started_at (orchestrated), so a retry restarts both clocks.
        """
        self.state = OperationState.PENDING
        self.finished_stages = []
        self.created_at = datetime.now(timezone.utc)
        self.started_at = None
        self.append_description("retrying")


__all__ = [
    "Operation",
]
