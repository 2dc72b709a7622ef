# ============================================================================
# ENGINE EVENT MODELS
# ============================================================================
# STATUS: Core model - Process-wide event stream payloads
# PURPOSE: Typed events for metrics, telemetry and notification consumers
# CREATED: 23 SEP 2026
# EXPORTS: EventType, StepProcessed, OperationStateChanged,
#          OrchestrationStateChanged
# DEPENDENCIES: pydantic, enum
# ============================================================================
"""
Engine Event Models

Published on the EventBroker (messaging.pubsub). Subscribers register per
event class. Events are fire-and-forget: a failing subscriber is logged and
never fails the step or manager that published the event.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import ClassVar, Optional

from pydantic import BaseModel, Field

from core.contracts import OperationState, OperationType, OrchestrationState, OrchestrationType
from core.models.operation import Operation


class EventType(str, Enum):
    """Types of events published by the engine."""
    STEP_PROCESSED = "step_processed"
    OPERATION_STATE_CHANGED = "operation_state_changed"
    ORCHESTRATION_STATE_CHANGED = "orchestration_state_changed"


class EngineEvent(BaseModel):
    event_type: ClassVar[EventType]
    published_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class StepProcessed(EngineEvent):
    """Published after every step run, successful or not."""
    event_type: ClassVar[EventType] = EventType.STEP_PROCESSED

    operation: Operation
    step_name: str
    duration_ms: int = 0
    delay_seconds: float = 0.0
    error_message: Optional[str] = None

    @property
    def operation_type(self) -> OperationType:
        return self.operation.type


class OperationStateChanged(EngineEvent):
    """Published when an operation reaches a terminal state."""
    event_type: ClassVar[EventType] = EventType.OPERATION_STATE_CHANGED

    operation: Operation
    previous_state: OperationState
    state: OperationState


class OrchestrationStateChanged(EngineEvent):
    event_type: ClassVar[EventType] = EventType.ORCHESTRATION_STATE_CHANGED

    orchestration_id: str
    orchestration_type: OrchestrationType
    state: OrchestrationState
    description: str = ""


__all__ = [
    "EventType",
    "EngineEvent",
    "StepProcessed",
    "OperationStateChanged",
    "OrchestrationStateChanged",
]
