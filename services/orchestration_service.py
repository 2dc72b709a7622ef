# ============================================================================
# ORCHESTRATION SERVICE
# ============================================================================
# STATUS: Service - Campaign commands for the API layer
# PURPOSE: Create, query, cancel and retry orchestrations
# CREATED: 07 OCT 2026
# ============================================================================
"""
Orchestration Service

The API layer never drives an orchestration itself. It writes the request
into the store and hands the id to the orchestration queue:

- create: insert a pending orchestration, enqueue it
- cancel: set CANCELING; the running pass sees it on its next poll
- retry:  on a failed orchestration set RETRYING and enqueue it; on one
          in progress only append the ids, the running pass inserts them

Writes are version-checked. A conflict with the manager is resolved by
reloading and applying the request again.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from core.contracts import OperationState, OrchestrationState, OrchestrationType
from core.errors import ConflictError, NotFoundError
from core.models import Operation, Orchestration, OrchestrationParameters
from repositories.base import OperationFilter, OrchestrationFilter, Storage

logger = logging.getLogger(__name__)

CONFLICT_ATTEMPTS = 3


@dataclass
class RetryResult:
    orchestration: Orchestration
    retried: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


class OrchestrationService:
    """Service for orchestration commands and queries."""

    def __init__(self, storage: Storage, orchestration_queue):
        """
        Args:
            storage: Engine storage
            orchestration_queue: Anything with add(id), normally a process.Queue
        """
        self.storage = storage
        self.queue = orchestration_queue

    # =========================================================================
    # COMMANDS
    # =========================================================================

    async def create_orchestration(
        self,
        orchestration_type: OrchestrationType,
        parameters: Optional[OrchestrationParameters] = None,
        description: str = "",
    ) -> Orchestration:
        orchestration = Orchestration(
            orchestration_id=str(uuid.uuid4()),
            type=orchestration_type,
            state=OrchestrationState.PENDING,
            description=description,
            parameters=parameters or OrchestrationParameters(),
        )
        await self.storage.orchestrations.insert(orchestration)
        self.queue.add(orchestration.orchestration_id)
        logger.info(f"Created {orchestration_type.value} orchestration {orchestration.orchestration_id}")
        return orchestration

    async def cancel_orchestration(self, orchestration_id: str) -> Orchestration:
        """
        Request cancellation.

        Raises:
            NotFoundError: Unknown orchestration
            ValueError: Orchestration already succeeded or failed
        """

        def request_cancel(o: Orchestration) -> Optional[bool]:
            if o.state in (OrchestrationState.CANCELING, OrchestrationState.CANCELED):
                return None
            if o.is_finished:
                raise ValueError(f"cannot cancel orchestration in state {o.state.value}")
            o.state = OrchestrationState.CANCELING
            return True

        orchestration = await self._apply(orchestration_id, request_cancel)
        logger.info(f"Cancel requested for orchestration {orchestration_id}")
        return orchestration

    async def retry_orchestration(
        self,
        orchestration_id: str,
        operation_ids: Sequence[str] = (),
        immediate: bool = False,
    ) -> RetryResult:
        """
        Request a retry of failed operations.

        Args:
            orchestration_id: Campaign to retry
            operation_ids: Operations to retry; empty means every failed one
            immediate: Run the retried operations without waiting for their
                maintenance window

        Raises:
            NotFoundError: Unknown orchestration
            ValueError: Invalid state, unknown/foreign operation ids, or
                nothing to retry
        """
        orchestration = await self.storage.orchestrations.get(orchestration_id)
        if orchestration.state not in (OrchestrationState.FAILED, OrchestrationState.IN_PROGRESS):
            raise ValueError(f"cannot retry orchestration in state {orchestration.state.value}")

        retried, skipped = await self._retryable_operations(orchestration_id, operation_ids)
        if not retried:
            raise ValueError("no failed operations to retry")

        def request_retry(o: Orchestration) -> Optional[bool]:
            if o.state not in (OrchestrationState.FAILED, OrchestrationState.IN_PROGRESS):
                raise ValueError(f"cannot retry orchestration in state {o.state.value}")
            retry = o.parameters.retry_operation
            retry.retry_operations = list(dict.fromkeys(retry.retry_operations + retried))
            retry.immediate = immediate
            enqueue = o.state == OrchestrationState.FAILED
            if enqueue:
                o.state = OrchestrationState.RETRYING
            return enqueue

        orchestration = await self._apply(orchestration_id, request_retry)
        logger.info(
            f"Retry of {len(retried)} operations requested for orchestration {orchestration_id} "
            f"({len(skipped)} skipped)"
        )
        return RetryResult(orchestration=orchestration, retried=retried, skipped=skipped)

    async def _retryable_operations(
        self,
        orchestration_id: str,
        operation_ids: Sequence[str],
    ) -> Tuple[List[str], List[str]]:
        if not operation_ids:
            failed = await self.storage.operations.list_for_orchestration(
                orchestration_id, [OperationState.FAILED]
            )
            return [op.operation_id for op in failed], []

        retried, skipped = [], []
        for operation_id in dict.fromkeys(operation_ids):
            try:
                operation = await self.storage.operations.get(operation_id)
            except NotFoundError:
                raise ValueError(f"operation {operation_id} not found") from None
            if operation.orchestration_id != orchestration_id:
                raise ValueError(f"operation {operation_id} does not belong to orchestration {orchestration_id}")
            if operation.state == OperationState.FAILED:
                retried.append(operation_id)
            else:
                skipped.append(operation_id)
        return retried, skipped

    async def _apply(
        self,
        orchestration_id: str,
        request: Callable[[Orchestration], Optional[bool]],
    ) -> Orchestration:
        """
        Apply a request with reload-on-conflict.

        request() mutates the orchestration and returns whether to enqueue
        it afterwards, or None when nothing has to be written.
        """
        for _ in range(CONFLICT_ATTEMPTS):
            orchestration = await self.storage.orchestrations.get(orchestration_id)
            enqueue = request(orchestration)
            if enqueue is None:
                return orchestration
            try:
                orchestration = await self.storage.orchestrations.update(orchestration)
            except ConflictError:
                logger.info(f"Orchestration {orchestration_id} changed concurrently, reloading")
                continue
            if enqueue:
                self.queue.add(orchestration_id)
            return orchestration
        raise ConflictError("orchestration", orchestration_id)

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def get_orchestration(self, orchestration_id: str) -> Orchestration:
        return await self.storage.orchestrations.get(orchestration_id)

    async def list_orchestrations(
        self,
        states: Sequence[OrchestrationState] = (),
        types: Sequence[OrchestrationType] = (),
        limit: Optional[int] = None,
    ) -> List[Orchestration]:
        return await self.storage.orchestrations.list(
            OrchestrationFilter(types=types, states=states, limit=limit)
        )

    async def list_operations(
        self,
        orchestration_id: str,
        states: Sequence[OperationState] = (),
        limit: Optional[int] = None,
    ) -> Tuple[Dict[OperationState, int], List[Operation]]:
        """Per-state counts and the operations of a campaign."""
        await self.storage.orchestrations.get(orchestration_id)
        stats = await self.storage.operations.get_stats_for_orchestration(orchestration_id)
        operations = await self.storage.operations.list(
            OperationFilter(orchestration_id=orchestration_id, states=states, limit=limit)
        )
        return stats, operations

    async def get_operation(self, operation_id: str) -> Operation:
        return await self.storage.operations.get(operation_id)


__all__ = ["OrchestrationService", "RetryResult"]
