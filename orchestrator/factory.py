# ============================================================================
# OPERATION FACTORY
# ============================================================================
# STATUS: Orchestrator - Per-runtime operation lifecycle for campaigns
# PURPOSE: Create, resume, cancel and retry the operations of one campaign
# CREATED: 04 OCT 2026
# ============================================================================
"""
Operation Factory

Every per-runtime operation an orchestration touches goes through here.
All writes are version-checked; a ConflictError makes the factory reload
the record and decide again from its fresh state.
"""

import uuid
from typing import Callable, List, Optional, Sequence

from core.contracts import OperationState
from core.errors import ConflictError, FatalError, NotFoundError
from core.logging import ComponentType, get_logger
from core.models import Instance, Operation, Orchestration, Runtime, RuntimeOperation
from repositories.base import OperationStore

logger = get_logger(__name__, ComponentType.ORCHESTRATOR)

# Reload-and-retry attempts for a conflicting write
CONFLICT_ATTEMPTS = 3

RuntimeHook = Callable[[Runtime], None]


def to_runtime_operation(operation: Operation) -> RuntimeOperation:
    runtime = operation.runtime or Runtime(instance_id=operation.instance_id)
    return RuntimeOperation(
        operation_id=operation.operation_id,
        runtime=runtime,
        dry_run=bool(operation.parameters.get("dry_run", False)),
    )


class OperationFactory:
    """
    Usage:
        factory = OperationFactory(storage.operations)
        op = await factory.new_operation(orchestration, runtime, instance)
        pending = await factory.resume_operations(orchestration.orchestration_id)
    """

    def __init__(self, operations: OperationStore):
        self.operations = operations

    async def new_operation(
        self,
        orchestration: Orchestration,
        runtime: Runtime,
        instance: Optional[Instance] = None,
        state: OperationState = OperationState.PENDING,
    ) -> RuntimeOperation:
        """Create and persist the operation of one runtime in a campaign."""
        params = orchestration.parameters
        operation = Operation(
            operation_id=str(uuid.uuid4()),
            instance_id=runtime.instance_id,
            orchestration_id=orchestration.orchestration_id,
            type=orchestration.type.operation_type,
            state=state,
            description="Operation created",
            parameters={
                "version": params.version,
                "dry_run": params.dry_run,
                "plan_id": instance.plan_id if instance else "",
            },
            runtime=runtime,
        )
        await self.operations.insert(operation)
        return to_runtime_operation(operation)

    async def resume_operations(self, orchestration_id: str) -> List[RuntimeOperation]:
        """Not finished operations of the campaign, oldest first."""
        operations = await self.operations.list_for_orchestration(
            orchestration_id, OperationState.not_finished()
        )
        return [to_runtime_operation(op) for op in operations]

    async def cancel_operations(self, orchestration_id: str) -> int:
        """Mark every still pending operation canceled. Returns the count."""
        canceled = 0
        pending = await self.operations.list_for_orchestration(
            orchestration_id, [OperationState.PENDING]
        )
        for operation in pending:
            if await self._cancel_one(operation):
                canceled += 1

        if canceled:
            logger.info(f"Canceled {canceled} pending operations of orchestration {orchestration_id}")
        return canceled

    async def _cancel_one(self, operation: Operation) -> bool:
        for _ in range(CONFLICT_ATTEMPTS):
            if operation.state != OperationState.PENDING:
                return False
            operation.mark_canceled("Orchestration was canceled")
            try:
                await self.operations.update(operation)
                return True
            except ConflictError:
                operation = await self.operations.get(operation.operation_id)
        logger.warning(f"Could not cancel operation {operation.operation_id}: concurrent updates")
        return False

    async def retry_operations(
        self,
        orchestration_id: str,
        operation_ids: Sequence[str],
        prepare: Optional[RuntimeHook] = None,
    ) -> List[RuntimeOperation]:
        """
        Return failed operations of the campaign to pending.

        Operations already pending are returned unchanged, so a retry request
        interrupted halfway can be repeated. Operations in any other state
        are skipped.

        Args:
            orchestration_id: Campaign the operations must belong to
            operation_ids: Operations to retry
            prepare: Called on each runtime before it is persisted, e.g. to
                recompute its maintenance window

        Raises:
            FatalError: Unknown id or an operation of another campaign
        """
        result = []
        for operation_id in dict.fromkeys(operation_ids):
            try:
                operation = await self.operations.get(operation_id)
            except NotFoundError as e:
                raise FatalError(f"cannot retry unknown operation {operation_id}") from e
            if operation.orchestration_id != orchestration_id:
                raise FatalError(
                    f"operation {operation_id} does not belong to orchestration {orchestration_id}"
                )

            operation = await self._reset_one(operation, prepare)
            if operation is not None:
                result.append(to_runtime_operation(operation))

        logger.info(f"Retrying {len(result)} operations of orchestration {orchestration_id}")
        return result

    async def _reset_one(self, operation: Operation, prepare: Optional[RuntimeHook]) -> Optional[Operation]:
        for _ in range(CONFLICT_ATTEMPTS):
            if operation.state == OperationState.PENDING:
                return operation
            if operation.state != OperationState.FAILED:
                logger.warning(
                    f"Skipping retry of operation {operation.operation_id} in state {operation.state.value}"
                )
                return None

            operation.reset_for_retry()
            if prepare is not None:
                if operation.runtime is None:
                    operation.runtime = Runtime(instance_id=operation.instance_id)
                prepare(operation.runtime)
            try:
                return await self.operations.update(operation)
            except ConflictError:
                operation = await self.operations.get(operation.operation_id)
        raise ConflictError("operation", operation.operation_id, operation.version)


__all__ = [
    "CONFLICT_ATTEMPTS",
    "OperationFactory",
    "to_runtime_operation",
]
