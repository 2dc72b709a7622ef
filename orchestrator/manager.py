# ============================================================================
# ORCHESTRATION MANAGER
# ============================================================================
# STATUS: Orchestrator - Control loop of one fleet campaign
# PURPOSE: Fan a campaign out to per-runtime operations and track them
# CREATED: 05 OCT 2026
# ============================================================================
"""
Orchestration Manager

Driven by the orchestration Queue: execute(orchestration_id) runs one pass
of a campaign and returns a repeat-after hint in seconds. No state is kept
between calls; every pass re-reads the orchestration and its operations
from the store, so a pass interrupted by a crash or shutdown simply runs
again.

One pass:
    1. Load the orchestration (missing: back off, finished: no-op)
    2. Load the maintenance policy (failure: continue without it)
    3. Resolve the operations of this pass
         pending     resolve targets, create one operation per runtime
         retrying    reset the requested failed operations to pending
         otherwise   resume the not finished operations
    4. Persist the orchestration
    5. Send the "created" customer notification once
    6. Start an execution strategy on the operations
    7. Poll until nothing is pending/in progress, handling cancel and
       mid-flight retry requests on every tick
    8. Persist the final state (succeeded, failed or canceled)

A pass holds one Queue worker for the whole campaign, so orchestrations get
a small queue of their own.
"""

import asyncio
from typing import Callable, Dict, List, Optional

from core.config import OrchestrationDefaults, TimeoutDefaults
from core.contracts import (
    NotificationState,
    OperationState,
    OperationType,
    OrchestrationState,
    StrategyType,
)
from core.errors import ConflictError, ExecutionNotFoundError, FatalError, NotFoundError, TemporaryError
from core.logging import ComponentType, get_logger, log_context
from core.models import (
    MaintenancePolicy,
    Orchestration,
    OrchestrationStateChanged,
    RuntimeOperation,
    StrategySpec,
)
from messaging import EventBroker
from notification.bundle import (
    BundleBuilder,
    NotificationEventType,
    NotificationParams,
    NotificationTenant,
)
from orchestrator.factory import CONFLICT_ATTEMPTS, OperationFactory, RuntimeHook, to_runtime_operation
from orchestrator.maintenance import apply_maintenance_window
from orchestrator.policy import MaintenancePolicyProvider
from orchestrator.polling import poll_immediate_until
from orchestrator.resolver import RuntimeResolver
from orchestrator.strategies import ExecutionStrategy, StrategyFactory, parallel_strategy_factory
from process.queue import Executor
from repositories.base import Storage

logger = get_logger(__name__, ComponentType.ORCHESTRATOR)

Mutation = Callable[[Orchestration], None]


def update_retrying_description(description: str, new_description: str) -> str:
    """Replace a "retrying" marker, or append to the description."""
    if "retrying" in description:
        return description.replace("retrying", new_description)
    if not description:
        return new_description
    return f"{description}, {new_description}"


class OrchestrationManager(Executor):
    """
    Executor for orchestration ids.

    Usage:
        manager = OrchestrationManager(
            storage, resolver, OperationFactory(storage.operations),
            FileMaintenancePolicyProvider(path), bundle_builder, broker,
            executors={OperationType.UPGRADE_KYMA: upgrade_kyma_manager},
        )
        orchestration_queue = Queue(manager, "orchestrations")
    """

    def __init__(
        self,
        storage: Storage,
        resolver: RuntimeResolver,
        factory: OperationFactory,
        policy_provider: MaintenancePolicyProvider,
        bundle_builder: BundleBuilder,
        broker: EventBroker,
        executors: Dict[OperationType, Executor],
        defaults: Optional[OrchestrationDefaults] = None,
        timeouts: Optional[TimeoutDefaults] = None,
        strategies: Optional[Dict[StrategyType, StrategyFactory]] = None,
        stop_event: Optional[asyncio.Event] = None,
    ):
        self.orchestrations = storage.orchestrations
        self.operations = storage.operations
        self.instances = storage.instances
        self.resolver = resolver
        self.factory = factory
        self.policy_provider = policy_provider
        self.bundle_builder = bundle_builder
        self.broker = broker
        self.executors = executors
        self.defaults = defaults or OrchestrationDefaults()
        self.timeouts = timeouts or TimeoutDefaults()
        self.strategies = strategies or {
            StrategyType.PARALLEL: parallel_strategy_factory(self.defaults.reschedule_delay),
        }
        self.stop_event = stop_event or asyncio.Event()
        self.speed_factor: float = 1

        self._passes = 0
        self._finished = 0
        self._failed = 0

    def speed_up(self, factor: float) -> None:
        """Test-only: speed up the strategies of subsequent passes."""
        self.speed_factor = factor

    @property
    def stats(self) -> Dict[str, int]:
        return {"passes": self._passes, "finished": self._finished, "failed": self._failed}

    # =========================================================================
    # EXECUTOR
    # =========================================================================

    async def execute(self, orchestration_id: str) -> float:
        with log_context(orchestration_id=orchestration_id):
            try:
                orchestration = await self.orchestrations.get(orchestration_id)
            except NotFoundError:
                logger.warning(
                    f"Orchestration not found, retrying in {self.defaults.not_found_backoff}s"
                )
                return self.defaults.not_found_backoff
            except Exception as e:
                logger.error(
                    f"Cannot load orchestration, retrying in {self.defaults.polling_interval}s: {e}"
                )
                return self.defaults.polling_interval

            if orchestration.is_finished:
                logger.debug(f"Orchestration already {orchestration.state.value}, nothing to do")
                return 0

            self._passes += 1
            with log_context(operation=orchestration.type.value):
                return await self._process(orchestration)

    async def _process(self, orchestration: Orchestration) -> float:
        retry = orchestration.parameters.retry_operation
        if orchestration.state == OrchestrationState.RETRYING and not retry.retry_operations:
            logger.error("Orchestration is retrying without operations to retry")
            raise FatalError(
                f"orchestration {orchestration.orchestration_id} is retrying without operations to retry"
            )

        policy = await self._load_policy()
        previous_state = orchestration.state

        try:
            operations = await self._resolve_operations(orchestration, policy)
        except Exception as e:
            logger.error(f"Cannot resolve operations: {e}", exc_info=True)
            return await self._fail(orchestration, f"failed to resolve operations: {e}")

        try:
            orchestration = await self.orchestrations.update(orchestration)
        except Exception as e:
            logger.warning(
                f"Cannot persist orchestration, retrying in {self.defaults.polling_interval}s: {e}"
            )
            return self.defaults.polling_interval

        if orchestration.state != previous_state:
            await self._publish(orchestration)
        if orchestration.is_finished:
            self._finished += 1
            logger.info(f"Orchestration {orchestration.state.value}: {orchestration.description}")
            return 0

        try:
            orchestration = await self._send_notification_create(orchestration, operations)
        except TemporaryError as e:
            logger.warning(
                f"Cannot create notification, retrying in {self.timeouts.temporary_backoff}s: {e}"
            )
            return self.timeouts.temporary_backoff
        except Exception as e:
            return await self._fail(orchestration, f"failed to create notification: {e}")

        executor = self.executors.get(orchestration.type.operation_type)
        strategy_factory = self.strategies.get(orchestration.parameters.strategy.type)
        if executor is None or strategy_factory is None:
            return await self._fail(
                orchestration,
                f"cannot run {orchestration.type.value} operations with "
                f"{orchestration.parameters.strategy.type.value} strategy",
            )

        strategy = strategy_factory(orchestration.parameters.strategy, executor)
        if self.speed_factor != 1:
            strategy.speed_up(self.speed_factor)

        execution_ids: List[str] = []
        execution_id = strategy.execute(operations, orchestration.parameters.strategy)
        if execution_id:
            execution_ids.append(execution_id)

        try:
            return await self._wait_for_completion(orchestration, strategy, execution_ids)
        finally:
            for execution_id in execution_ids:
                strategy.cancel(execution_id)
            for execution_id in execution_ids:
                await strategy.wait(execution_id)

    # =========================================================================
    # RESOLUTION
    # =========================================================================

    async def _load_policy(self) -> Optional[MaintenancePolicy]:
        try:
            return await self.policy_provider.get_policy()
        except Exception as e:
            logger.warning(f"Cannot load maintenance policy, continuing without it: {e}")
            return None

    async def _resolve_operations(
        self,
        orchestration: Orchestration,
        policy: Optional[MaintenancePolicy],
    ) -> List[RuntimeOperation]:
        if orchestration.state == OrchestrationState.PENDING:
            return await self._resolve_pending(orchestration, policy)

        if orchestration.state == OrchestrationState.RETRYING:
            return await self._resolve_retrying(orchestration, policy)

        if orchestration.state == OrchestrationState.CANCELING:
            await self.factory.cancel_operations(orchestration.orchestration_id)

        operations = await self.factory.resume_operations(orchestration.orchestration_id)
        logger.info(f"Resuming {len(operations)} operations")
        return operations

    async def _resolve_pending(
        self,
        orchestration: Orchestration,
        policy: Optional[MaintenancePolicy],
    ) -> List[RuntimeOperation]:
        strategy = orchestration.parameters.strategy
        runtimes = await self.resolver.resolve(orchestration.parameters.targets)

        # Operations left behind by a pass that could not persist the orchestration
        existing = {
            op.instance_id: op
            for op in await self.operations.list_for_orchestration(orchestration.orchestration_id)
        }

        result = []
        for runtime in runtimes:
            if runtime.instance_id in existing:
                result.append(to_runtime_operation(existing[runtime.instance_id]))
                continue
            if strategy.maintenance_window:
                apply_maintenance_window(runtime, policy, after=strategy.schedule_time)
            instance = await self.instances.get(runtime.instance_id)
            result.append(await self.factory.new_operation(orchestration, runtime, instance))

        orchestration.description = f"Scheduled {len(result)} operations"
        orchestration.state = OrchestrationState.IN_PROGRESS if result else OrchestrationState.SUCCEEDED
        logger.info(orchestration.description)
        return result

    def _retry_hook(
        self,
        orchestration: Orchestration,
        policy: Optional[MaintenancePolicy],
    ) -> Optional[RuntimeHook]:
        strategy = orchestration.parameters.strategy
        if orchestration.parameters.retry_operation.immediate:
            return lambda runtime: runtime.clear_window()
        if strategy.maintenance_window:
            return lambda runtime: apply_maintenance_window(runtime, policy, after=strategy.schedule_time)
        return None

    async def _resolve_retrying(
        self,
        orchestration: Orchestration,
        policy: Optional[MaintenancePolicy],
    ) -> List[RuntimeOperation]:
        retry = orchestration.parameters.retry_operation
        operations = await self.factory.retry_operations(
            orchestration.orchestration_id,
            retry.retry_operations,
            self._retry_hook(orchestration, policy),
        )

        orchestration.description = update_retrying_description(
            orchestration.description, f"retried {len(operations)} operations"
        )
        retry.retry_operations = []
        retry.immediate = False
        orchestration.state = OrchestrationState.IN_PROGRESS
        return operations

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    def _notification_params(self, orchestration: Orchestration, tenants=None) -> NotificationParams:
        return NotificationParams(
            orchestration_id=orchestration.orchestration_id,
            event_type=NotificationEventType.for_orchestration(orchestration.type).value,
            tenants=tenants or [],
        )

    async def _send_notification_create(
        self,
        orchestration: Orchestration,
        operations: List[RuntimeOperation],
    ) -> Orchestration:
        params = orchestration.parameters
        if self.bundle_builder.disabled_check() or orchestration.state != OrchestrationState.IN_PROGRESS:
            return orchestration
        if params.notification_state not in (None, NotificationState.PENDING):
            return orchestration

        use_window = params.strategy.maintenance_window
        tenants = [
            NotificationTenant(instance_id=op.instance_id, **op.tenant_dates(use_window))
            for op in operations
        ]
        bundle = self.bundle_builder.new_bundle(
            orchestration.orchestration_id, self._notification_params(orchestration, tenants)
        )
        await bundle.create_notification_event()

        def mark_created(o: Orchestration) -> None:
            o.parameters.notification_state = NotificationState.CREATED

        return await self._save(orchestration, mark_created)

    async def _send_notification_cancel(self, orchestration: Orchestration) -> Orchestration:
        if self.bundle_builder.disabled_check() or not orchestration.notifications_created:
            return orchestration

        bundle = self.bundle_builder.new_bundle(
            orchestration.orchestration_id, self._notification_params(orchestration)
        )
        await bundle.cancel_notification_event()

        def mark_cancelled(o: Orchestration) -> None:
            o.parameters.notification_state = NotificationState.CANCELLED

        return await self._save(orchestration, mark_cancelled)

    # =========================================================================
    # COMPLETION
    # =========================================================================

    async def _wait_for_completion(
        self,
        orchestration: Orchestration,
        strategy: ExecutionStrategy,
        execution_ids: List[str],
    ) -> float:
        orchestration_id = orchestration.orchestration_id

        async def finished() -> bool:
            nonlocal orchestration
            try:
                orchestration = await self.orchestrations.get(orchestration_id)

                if orchestration.state == OrchestrationState.CANCELING:
                    await self.factory.cancel_operations(orchestration_id)
                    stats = await self.operations.get_stats_for_orchestration(orchestration_id)
                    return stats[OperationState.IN_PROGRESS] == 0

                if orchestration.parameters.retry_operation.retry_operations:
                    orchestration = await self._insert_retries(orchestration, strategy, execution_ids)

                stats = await self.operations.get_stats_for_orchestration(orchestration_id)
                return sum(stats[state] for state in OperationState.not_finished()) == 0
            except Exception as e:
                logger.warning(f"Cannot check orchestration progress, retrying: {e}", exc_info=True)
                return False

        completed = await poll_immediate_until(finished, self.defaults.polling_interval, self.stop_event)
        if not completed:
            logger.info("Stopping, orchestration resumes after restart")
            return 0
        return await self._finish(orchestration)

    async def _insert_retries(
        self,
        orchestration: Orchestration,
        strategy: ExecutionStrategy,
        execution_ids: List[str],
    ) -> Orchestration:
        params = orchestration.parameters
        requested = list(params.retry_operation.retry_operations)
        policy = await self._load_policy()

        try:
            operations = await self.factory.retry_operations(
                orchestration.orchestration_id, requested, self._retry_hook(orchestration, policy)
            )
        except FatalError as e:
            logger.error(f"Dropping retry request: {e}")
            operations = None

        if operations:
            try:
                if execution_ids:
                    strategy.insert(execution_ids[-1], operations, params.strategy)
                else:
                    self._start_execution(strategy, operations, params.strategy, execution_ids)
            except ExecutionNotFoundError:
                self._start_execution(strategy, operations, params.strategy, execution_ids)
            except Exception as e:
                logger.warning(f"Cannot insert retried operations, keeping the request: {e}")
                return orchestration

        def mark_retried(o: Orchestration) -> None:
            retry = o.parameters.retry_operation
            retry.retry_operations = [i for i in retry.retry_operations if i not in requested]
            retry.immediate = False
            if operations is not None:
                o.description = update_retrying_description(
                    o.description, f"retried {len(operations)} operations"
                )

        return await self._save(orchestration, mark_retried)

    @staticmethod
    def _start_execution(
        strategy: ExecutionStrategy,
        operations: List[RuntimeOperation],
        spec: StrategySpec,
        execution_ids: List[str],
    ) -> None:
        execution_id = strategy.execute(operations, spec)
        if execution_id:
            execution_ids.append(execution_id)
        logger.info(f"Started execution {execution_id} for {len(operations)} retried operations")

    async def _finish(self, orchestration: Orchestration) -> float:
        orchestration_id = orchestration.orchestration_id

        try:
            if orchestration.state == OrchestrationState.CANCELING:
                await self.factory.cancel_operations(orchestration_id)
            else:
                stats = await self.operations.get_stats_for_orchestration(orchestration_id)
        except Exception as e:
            logger.warning(
                f"Cannot aggregate final state, retrying in {self.defaults.polling_interval}s: {e}"
            )
            return self.defaults.polling_interval

        if orchestration.state == OrchestrationState.CANCELING:
            try:
                orchestration = await self._send_notification_cancel(orchestration)
            except TemporaryError as e:
                logger.warning(
                    f"Cannot cancel notification, retrying in {self.timeouts.temporary_backoff}s: {e}"
                )
                return self.timeouts.temporary_backoff
            except Exception as e:
                logger.error(f"Cannot cancel notification: {e}")
            final_state = OrchestrationState.CANCELED
        else:
            failed = stats[OperationState.FAILED]
            final_state = OrchestrationState.FAILED if failed else OrchestrationState.SUCCEEDED

        def mark_final(o: Orchestration) -> None:
            # A retry request that arrived after the last poll starts a new pass
            if final_state != OrchestrationState.CANCELED and o.parameters.retry_operation.retry_operations:
                o.state = OrchestrationState.RETRYING
            else:
                o.state = final_state

        try:
            orchestration = await self._save(orchestration, mark_final)
        except Exception as e:
            logger.error(
                f"Cannot persist final state, retrying in {self.defaults.polling_interval}s: {e}"
            )
            return self.defaults.polling_interval

        await self._publish(orchestration)
        if orchestration.state == OrchestrationState.RETRYING:
            logger.info("Retry requested while finishing, starting another pass")
            return self.timeouts.conflict_retry

        self._finished += 1
        if orchestration.state == OrchestrationState.FAILED:
            self._failed += 1
        logger.info(f"Orchestration {orchestration.state.value}")
        return 0

    async def _fail(self, orchestration: Orchestration, description: str) -> float:
        logger.error(f"Orchestration failed: {description}")

        def mark_failed(o: Orchestration) -> None:
            o.state = OrchestrationState.FAILED
            o.description = description

        try:
            orchestration = await self._save(orchestration, mark_failed)
        except Exception as e:
            logger.error(
                f"Cannot persist failed orchestration, retrying in {self.defaults.polling_interval}s: {e}"
            )
            return self.defaults.polling_interval

        self._finished += 1
        self._failed += 1
        await self._publish(orchestration)
        return 0

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    async def _save(self, orchestration: Orchestration, mutate: Mutation) -> Orchestration:
        """Apply a mutation and persist it, reloading on version conflicts."""
        for _ in range(CONFLICT_ATTEMPTS):
            mutate(orchestration)
            try:
                return await self.orchestrations.update(orchestration)
            except ConflictError:
                logger.info("Orchestration changed concurrently, reloading")
                orchestration = await self.orchestrations.get(orchestration.orchestration_id)
        raise ConflictError("orchestration", orchestration.orchestration_id, orchestration.version)

    async def _publish(self, orchestration: Orchestration) -> None:
        await self.broker.publish(OrchestrationStateChanged(
            orchestration_id=orchestration.orchestration_id,
            orchestration_type=orchestration.type,
            state=orchestration.state,
            description=orchestration.description,
        ))


__all__ = [
    "OrchestrationManager",
    "update_retrying_description",
]
