# ============================================================================
# REPROCESS SERVICE
# ============================================================================
# STATUS: Service - Startup recovery
# PURPOSE: Rebuild the in-memory queues from the store after a restart
# CREATED: 07 OCT 2026
# ============================================================================
"""
Reprocess Service

Queues hold nothing but ids, so after a restart they are refilled from the
store:

- standalone operations that are not finished go back on the queue of
  their type (orchestrated operations are resumed by their orchestration)
- per orchestration type, oldest first: the oldest canceling orchestration
  that still has operations in progress, then every in progress, pending
  and retrying orchestration

Only one canceling orchestration is resumed per type so a backlog of
cancellations does not take every orchestration worker at startup.
"""

import logging
from typing import Dict, Mapping

from core.contracts import OperationState, OperationType, OrchestrationState, OrchestrationType
from process.queue import Queue
from repositories.base import OrchestrationFilter, Storage

logger = logging.getLogger(__name__)

RESUMED_ORCHESTRATION_STATES = (
    OrchestrationState.IN_PROGRESS,
    OrchestrationState.PENDING,
    OrchestrationState.RETRYING,
)


class ReprocessService:
    """Refills operation and orchestration queues at startup."""

    def __init__(
        self,
        storage: Storage,
        operation_queues: Mapping[OperationType, Queue],
        orchestration_queue: Queue,
    ):
        self.storage = storage
        self.operation_queues = operation_queues
        self.orchestration_queue = orchestration_queue

    async def reprocess(self) -> Dict[str, int]:
        """Enqueue everything that was running. Returns counts per kind."""
        result = {"operations": 0, "orchestrations": 0}

        for operation_type, queue in self.operation_queues.items():
            result["operations"] += await self.reprocess_operations(operation_type, queue)

        for orchestration_type in OrchestrationType:
            result["orchestrations"] += await self.reprocess_orchestrations(orchestration_type)

        logger.info(
            f"Reprocessing: {result['operations']} operations, "
            f"{result['orchestrations']} orchestrations enqueued"
        )
        return result

    async def reprocess_operations(self, operation_type: OperationType, queue: Queue) -> int:
        count = 0
        for operation in await self.storage.operations.get_not_finished_by_type(operation_type):
            if operation.orchestration_id:
                continue
            queue.add(operation.operation_id)
            count += 1
            logger.info(f"Resuming {operation_type.value} operation {operation.operation_id}")
        return count

    async def reprocess_orchestrations(self, orchestration_type: OrchestrationType) -> int:
        count = 0
        if await self._reprocess_canceling(orchestration_type):
            count += 1

        for state in RESUMED_ORCHESTRATION_STATES:
            orchestrations = await self.storage.orchestrations.list(
                OrchestrationFilter(types=[orchestration_type], states=[state])
            )
            for orchestration in sorted(orchestrations, key=lambda o: o.created_at):
                self.orchestration_queue.add(orchestration.orchestration_id)
                count += 1
                logger.info(
                    f"Resuming {state.value} {orchestration_type.value} "
                    f"orchestration {orchestration.orchestration_id}"
                )
        return count

    async def _reprocess_canceling(self, orchestration_type: OrchestrationType) -> bool:
        canceling = await self.storage.orchestrations.list(
            OrchestrationFilter(types=[orchestration_type], states=[OrchestrationState.CANCELING])
        )
        for orchestration in sorted(canceling, key=lambda o: o.created_at):
            in_progress = await self.storage.operations.list_for_orchestration(
                orchestration.orchestration_id, [OperationState.IN_PROGRESS]
            )
            if in_progress:
                self.orchestration_queue.add(orchestration.orchestration_id)
                logger.info(
                    f"Resuming canceling {orchestration_type.value} "
                    f"orchestration {orchestration.orchestration_id}"
                )
                return True
        return False


__all__ = ["ReprocessService", "RESUMED_ORCHESTRATION_STATES"]
