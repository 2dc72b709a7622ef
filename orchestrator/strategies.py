# ============================================================================
# EXECUTION STRATEGIES
# ============================================================================
# STATUS: Orchestrator - Concurrency policy for a batch of operations
# PURPOSE: Run the per-runtime operations of one campaign pass
# CREATED: 03 OCT 2026
# ============================================================================
"""
Execution Strategies

An ExecutionStrategy drives a batch of per-runtime operations through the
StagedManager of their type. execute() returns an execution id that can
later receive more operations (insert) or be shut down (cancel).

ParallelStrategy gives every execution its own process.queue.Queue with
`strategy.parallel.workers` workers. Each operation is added after its
scheduling delay:

    schedule=maintenanceWindow  until the runtime's window begins; a window
                                already over moves to the next allowed day
                                (or by reschedule_delay when configured)
    schedule=time               until strategy.schedule_time
    schedule=immediate          right away

Workers re-add an operation after the delay its manager returned, so an
operation waiting on an external system never pins a worker.
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List

from core.contracts import ScheduleType
from core.errors import ExecutionNotFoundError
from core.logging import ComponentType, get_logger
from core.models import RuntimeOperation, StrategySpec
from orchestrator.maintenance import allowed_weekdays, next_available_day_diff
from process.queue import Executor, Queue

logger = get_logger(__name__, ComponentType.STRATEGY)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    # Naive timestamps from the API are UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class ExecutionStrategy(ABC):
    """Concurrency policy for per-runtime operations."""

    @abstractmethod
    def execute(self, operations: List[RuntimeOperation], spec: StrategySpec) -> str:
        """Start a batch and return its execution id ("" for an empty batch)."""

    @abstractmethod
    def insert(self, execution_id: str, operations: List[RuntimeOperation], spec: StrategySpec) -> None:
        """Add operations to a running batch. Raises ExecutionNotFoundError."""

    @abstractmethod
    def cancel(self, execution_id: str) -> None:
        """Stop a batch. Operations in flight finish their current call."""

    @abstractmethod
    async def wait(self, execution_id: str) -> None:
        """Wait for a canceled batch's in-flight calls to return."""

    @abstractmethod
    def speed_up(self, factor: float) -> None:
        """Test-only: divide every scheduling delay by factor."""


@dataclass
class _Execution:
    queue: Queue
    stop_event: asyncio.Event


class ParallelStrategy(ExecutionStrategy):
    """
    Fully parallel execution with per-runtime scheduling.

    Must be used from a running event loop.
    """

    def __init__(
        self,
        executor: Executor,
        reschedule_delay: float = 0.0,
        speed_factor: float = 1,
        clock: Clock = _utcnow,
    ):
        self.executor = executor
        self.reschedule_delay = reschedule_delay
        self.speed_factor = speed_factor
        self._clock = clock
        self._executions: Dict[str, _Execution] = {}
        self._canceled: Dict[str, _Execution] = {}

    # =========================================================================
    # STRATEGY API
    # =========================================================================

    def execute(self, operations: List[RuntimeOperation], spec: StrategySpec) -> str:
        if not operations:
            return ""

        execution_id = str(uuid.uuid4())
        stop_event = asyncio.Event()
        queue = Queue(self.executor, name=f"execution-{execution_id[:8]}", speed_factor=self.speed_factor)
        queue.run(stop_event, spec.parallel.workers)
        self._executions[execution_id] = _Execution(queue=queue, stop_event=stop_event)

        logger.info(
            f"Execution {execution_id} started: {len(operations)} operations, "
            f"{spec.parallel.workers} workers, schedule={spec.schedule.value}"
        )
        self._schedule(self._executions[execution_id], operations, spec)
        return execution_id

    def insert(self, execution_id: str, operations: List[RuntimeOperation], spec: StrategySpec) -> None:
        execution = self._executions.get(execution_id)
        if execution is None or execution.stop_event.is_set():
            raise ExecutionNotFoundError(execution_id)

        self._schedule(execution, operations, spec)
        logger.info(f"Inserted {len(operations)} operations into execution {execution_id}")

    def cancel(self, execution_id: str) -> None:
        execution = self._executions.pop(execution_id, None)
        if execution is None:
            return
        execution.stop_event.set()
        self._canceled[execution_id] = execution
        logger.info(f"Execution {execution_id} canceled")

    def speed_up(self, factor: float) -> None:
        self.speed_factor = factor
        for execution in self._executions.values():
            execution.queue.speed_up(factor)

    async def wait(self, execution_id: str) -> None:
        """Wait for a canceled execution's workers to exit."""
        execution = self._canceled.pop(execution_id, None)
        if execution is not None:
            await execution.queue.wait_stopped()

    @property
    def execution_ids(self) -> List[str]:
        return list(self._executions)

    # =========================================================================
    # SCHEDULING
    # =========================================================================

    def _schedule(self, execution: _Execution, operations: List[RuntimeOperation], spec: StrategySpec) -> None:
        for op in operations:
            delay = self.schedule_delay(op, spec)
            if delay > 0:
                logger.debug(f"Operation {op.operation_id} scheduled in {delay:.0f}s")
            execution.queue.add_after(op.operation_id, delay)

    def schedule_delay(self, op: RuntimeOperation, spec: StrategySpec) -> float:
        """Seconds until the operation may start."""
        now = self._clock()

        if spec.schedule == ScheduleType.TIME and spec.schedule_time is not None:
            return max(0.0, (_aware(spec.schedule_time) - now).total_seconds())

        if spec.schedule == ScheduleType.MAINTENANCE_WINDOW and op.runtime.has_window():
            begin = _aware(op.runtime.maintenance_window_begin)
            end = _aware(op.runtime.maintenance_window_end)
            if end <= now:
                begin = self._next_window_begin(op, now)
            return max(0.0, (begin - now).total_seconds())

        return 0.0

    def _next_window_begin(self, op: RuntimeOperation, now: datetime) -> datetime:
        if self.reschedule_delay > 0:
            return now + timedelta(seconds=self.reschedule_delay)

        runtime = op.runtime
        begin = _aware(runtime.maintenance_window_begin)
        allowed = allowed_weekdays(runtime.maintenance_days)
        if not allowed:
            return now

        # Same time of day on the next allowed weekday after today
        local_now = now.astimezone(begin.tzinfo)
        diff = next_available_day_diff(local_now.weekday(), allowed)
        next_begin = datetime.combine(local_now.date(), begin.timetz()) + timedelta(days=diff)
        logger.info(f"Maintenance window of {op.instance_id} is over, moved to {next_begin.isoformat()}")
        return next_begin


StrategyFactory = Callable[[StrategySpec, Executor], ExecutionStrategy]


def parallel_strategy_factory(
    reschedule_delay: float = 0.0,
    speed_factor: float = 1,
) -> StrategyFactory:
    """Factory used by the orchestration manager for StrategyType.PARALLEL."""

    def build(spec: StrategySpec, executor: Executor) -> ExecutionStrategy:
        return ParallelStrategy(executor, reschedule_delay=reschedule_delay, speed_factor=speed_factor)

    return build


__all__ = [
    "ExecutionStrategy",
    "ParallelStrategy",
    "StrategyFactory",
    "parallel_strategy_factory",
]
