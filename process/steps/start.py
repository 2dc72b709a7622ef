# ============================================================================
# START STEP
# ============================================================================
# STATUS: Process - First step of every pipeline
# PURPOSE: Move a pending operation to in progress
# CREATED: 30 SEP 2026
# ============================================================================
"""
Start Step

Idempotent: an operation that already left PENDING passes through.
"""

import logging

from core.contracts import OperationState
from core.errors import ConflictError
from core.models import Operation
from process.step import Step, StepDependencies, StepResult

logger = logging.getLogger(__name__)


class StartStep(Step):

    def __init__(self, deps: StepDependencies):
        self.operations = deps.storage.operations
        self.conflict_retry = deps.defaults.timeouts.conflict_retry

    @property
    def name(self) -> str:
        return "Starting"

    async def run(self, operation: Operation) -> StepResult:
        if operation.state != OperationState.PENDING:
            return operation, 0

        operation.mark_in_progress("Operation started")
        try:
            operation = await self.operations.update(operation)
        except ConflictError:
            logger.warning(f"Conflict starting operation {operation.operation_id}, retrying")
            return operation, self.conflict_retry

        logger.info(f"Operation {operation.operation_id} started")
        return operation, 0


__all__ = ["StartStep"]
