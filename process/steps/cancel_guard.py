# ============================================================================
# ORCHESTRATION CANCEL GUARD STEP
# ============================================================================
# STATUS: Process - Guard for orchestrated operations
# PURPOSE: Keep pending operations of a canceled campaign from starting
# CREATED: 30 SEP 2026
# ============================================================================
"""
Orchestration Cancel Guard

Runs before StartStep. A still pending operation whose orchestration is
canceling or canceled is marked canceled and never starts. Operations that
are already in progress are left alone and finish their pipeline.
"""

import logging

from core.contracts import OperationState, OrchestrationState
from core.errors import ConflictError
from core.models import Operation
from process.step import Step, StepDependencies, StepResult

logger = logging.getLogger(__name__)

_CANCELED_STATES = (OrchestrationState.CANCELING, OrchestrationState.CANCELED)


class OrchestrationCancelGuardStep(Step):

    def __init__(self, deps: StepDependencies):
        self.operations = deps.storage.operations
        self.orchestrations = deps.storage.orchestrations
        self.conflict_retry = deps.defaults.timeouts.conflict_retry

    @property
    def name(self) -> str:
        return "Check_Orchestration_Canceled"

    async def run(self, operation: Operation) -> StepResult:
        if not operation.orchestration_id or operation.state != OperationState.PENDING:
            return operation, 0

        orchestration = await self.orchestrations.get(operation.orchestration_id)
        if orchestration.state not in _CANCELED_STATES:
            return operation, 0

        operation.mark_canceled(f"orchestration {orchestration.orchestration_id} was canceled")
        try:
            operation = await self.operations.update(operation)
        except ConflictError:
            return operation, self.conflict_retry

        logger.info(
            f"Operation {operation.operation_id} canceled before start "
            f"(orchestration {orchestration.orchestration_id} is {orchestration.state.value})"
        )
        return operation, 0


__all__ = ["OrchestrationCancelGuardStep"]
