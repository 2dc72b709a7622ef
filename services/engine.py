# ============================================================================
# FLEET ENGINE
# ============================================================================
# STATUS: Service - Composition root
# PURPOSE: Wire stores, pipelines, queues and the orchestration manager
# CREATED: 11 OCT 2026
# ============================================================================
"""
Fleet Engine

Builds every long-lived object of the process once and owns their
lifecycle:

    EventBroker        process-wide event topic (+ EngineMetrics, notifications)
    StagedManagers     one per operation type, from pipelines.yaml
    operation queues   standalone operation types (provision, update, ...)
    orchestration      OrchestrationManager behind a small queue of its own

Operation types spawned by orchestrations have no queue of their own: their
operations are driven by the orchestration's execution strategy.

Usage:
    engine = FleetEngine(storage, defaults, bundle_builder, pipelines)
    await engine.start()
    ...
    await engine.stop()
"""

import asyncio
from typing import Dict, Optional

from core.config import Defaults
from core.contracts import OperationType, OrchestrationType, StrategyType
from core.logging import ComponentType, get_logger
from core.models import Operation
from core.observability import EngineMetrics
from messaging import EventBroker
from notification import BundleBuilder, MaintenanceFinishedHandler
from orchestrator import (
    FileMaintenancePolicyProvider,
    MaintenancePolicyProvider,
    OperationFactory,
    OrchestrationManager,
    RuntimeResolver,
    StoreRuntimeResolver,
    parallel_strategy_factory,
)
from process.pipeline import PipelineFile, build_managers
from process.queue import Queue
from process.staged_manager import StagedManager
from process.step import StepDependencies
from repositories.base import Storage
from services.orchestration_service import OrchestrationService
from services.reprocess_service import ReprocessService

logger = get_logger(__name__, ComponentType.SERVICE)

ORCHESTRATED_TYPES = frozenset(t.operation_type for t in OrchestrationType)


class FleetEngine:
    """All engine components of one process."""

    def __init__(
        self,
        storage: Storage,
        defaults: Defaults,
        bundle_builder: BundleBuilder,
        pipelines: PipelineFile,
        policy_provider: Optional[MaintenancePolicyProvider] = None,
        resolver: Optional[RuntimeResolver] = None,
    ):
        self.storage = storage
        self.defaults = defaults
        self.bundle_builder = bundle_builder
        self.stop_event = asyncio.Event()
        speed_factor = defaults.queues.speed_factor

        self.broker = EventBroker()
        self.metrics = EngineMetrics()
        self.metrics.register(self.broker)
        MaintenanceFinishedHandler(storage.orchestrations, bundle_builder).register(self.broker)

        deps = StepDependencies(storage, self.broker, defaults, bundle_builder)
        self.managers: Dict[OperationType, StagedManager] = build_managers(pipelines, deps)

        self.operation_queues: Dict[OperationType, Queue] = {
            operation_type: Queue(manager, operation_type.value, speed_factor=speed_factor)
            for operation_type, manager in self.managers.items()
            if operation_type not in ORCHESTRATED_TYPES
        }

        orchestration_defaults = defaults.orchestration
        self.orchestration_manager = OrchestrationManager(
            storage,
            resolver or StoreRuntimeResolver(storage.instances),
            OperationFactory(storage.operations),
            policy_provider or FileMaintenancePolicyProvider(orchestration_defaults.maintenance_policy_path),
            bundle_builder,
            self.broker,
            executors=dict(self.managers),
            defaults=orchestration_defaults,
            timeouts=defaults.timeouts,
            strategies={
                StrategyType.PARALLEL: parallel_strategy_factory(
                    orchestration_defaults.reschedule_delay, speed_factor
                ),
            },
            stop_event=self.stop_event,
        )
        self.orchestration_queue = Queue(
            self.orchestration_manager, "orchestrations", speed_factor=speed_factor
        )

        self.orchestration_service = OrchestrationService(storage, self.orchestration_queue)
        self.reprocess_service = ReprocessService(storage, self.operation_queues, self.orchestration_queue)

    @property
    def queues(self) -> Dict[str, Queue]:
        queues = {t.value: q for t, q in self.operation_queues.items()}
        queues[self.orchestration_queue.name] = self.orchestration_queue
        return queues

    async def start(self, reprocess: bool = True) -> None:
        """Start every queue and, optionally, re-enqueue unfinished work."""
        for operation_type, queue in self.operation_queues.items():
            queue.run(self.stop_event, self.defaults.queues.workers_for(operation_type))
        self.orchestration_queue.run(self.stop_event, self.defaults.queues.orchestration_workers)

        if reprocess:
            await self.reprocess_service.reprocess()
        logger.info(f"Fleet engine started with {len(self.queues)} queues")

    async def stop(self) -> None:
        """Stop the queues and wait for running passes to return."""
        self.stop_event.set()
        await asyncio.gather(*(queue.wait_stopped() for queue in self.queues.values()))
        self.broker.close()
        logger.info("Fleet engine stopped")

    async def submit_operation(self, operation: Operation) -> Operation:
        """Persist a standalone operation and put it on its queue."""
        queue = self.operation_queues.get(operation.type)
        if queue is None:
            raise ValueError(f"no queue for {operation.type.value} operations")
        await self.storage.operations.insert(operation)
        queue.add(operation.operation_id)
        return operation


__all__ = ["FleetEngine", "ORCHESTRATED_TYPES"]
