# ============================================================================
# STAGED MANAGER
# ============================================================================
# STATUS: Core - Pipeline driver for one operation type
# PURPOSE: Advance an operation through ordered stages of steps
# CREATED: 27 SEP 2026
# ============================================================================
"""
Staged Manager

Each operation type has exactly one StagedManager. Its stages and steps are
fixed at startup (see process.pipeline); execute() is invoked by a Queue
worker with an operation id and returns a repeat-after hint in seconds.

One execute() call:
1. Load the operation (missing record is fatal, other store errors retry)
2. Terminal operation: no-op
3. Time limit exceeded: fail the operation. Standalone operations are
   measured from creation, orchestrated ones from started_at
4. Walk stages in definition order, skipping stages already recorded in
   finished_stages; within a stage run steps in registration order
5. A stage whose steps all returned delay 0 is recorded as finished
6. All stages finished: mark the operation succeeded

Progress is durable only at stage granularity, so every step in an
unfinished stage may run again after a restart.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from core.config import TimeoutDefaults
from core.contracts import OperationState, OperationType
from core.errors import ConflictError, FatalError, NotFoundError, TemporaryError
from core.logging import ComponentType, get_logger, log_context
from core.models import Operation, OperationStateChanged, StepProcessed
from messaging import EventBroker
from process.queue import Executor
from process.step import Step, StepCondition, StepResult
from repositories.base import OperationStore

logger = get_logger(__name__, ComponentType.STAGED_MANAGER)

TIME_LIMIT_DESCRIPTION = "operation has reached the time limit"


@dataclass
class StepEntry:
    step: Step
    condition: Optional[StepCondition] = None

    def should_run(self, operation: Operation) -> bool:
        return self.condition is None or self.condition(operation)


@dataclass
class Stage:
    name: str
    steps: List[StepEntry] = field(default_factory=list)


class StagedManager(Executor):
    """
    Drives operations of one type through their pipeline.

    Usage:
        manager = StagedManager(OperationType.PROVISION, storage.operations, broker)
        manager.define_stages(["start", "create_runtime", "post_actions"])
        manager.add_step("start", StartStep(deps))
    """

    def __init__(
        self,
        operation_type: OperationType,
        operations: OperationStore,
        broker: EventBroker,
        timeouts: Optional[TimeoutDefaults] = None,
    ):
        self.operation_type = operation_type
        self.operations = operations
        self.broker = broker
        self.timeouts = timeouts or TimeoutDefaults()
        self._stages: List[Stage] = []

    # =========================================================================
    # PIPELINE DEFINITION
    # =========================================================================

    def define_stages(self, names: Sequence[str]) -> None:
        """Set the stage order. Must be called before add_step()."""
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate stage names in {list(names)}")
        self._stages = [Stage(name=name) for name in names]

    def add_step(self, stage_name: str, step: Step, condition: Optional[StepCondition] = None) -> None:
        for stage in self._stages:
            if stage.name == stage_name:
                stage.steps.append(StepEntry(step=step, condition=condition))
                return
        raise ValueError(
            f"stage {stage_name!r} is not defined for {self.operation_type.value} "
            f"(stages: {self.stage_names})"
        )

    @property
    def stage_names(self) -> List[str]:
        return [stage.name for stage in self._stages]

    def describe(self) -> List[dict]:
        return [
            {"stage": stage.name, "steps": [entry.step.name for entry in stage.steps]}
            for stage in self._stages
        ]

    # =========================================================================
    # EXECUTION
    # =========================================================================

    async def execute(self, operation_id: str) -> float:
        with log_context(operation_id=operation_id, operation=self.operation_type.value):
            try:
                operation = await self.operations.get(operation_id)
            except NotFoundError as e:
                logger.error(f"Cannot process operation: {e}")
                raise FatalError(str(e)) from e
            except Exception as e:
                logger.warning(f"Cannot load operation, retrying in {self.timeouts.store_retry}s: {e}")
                return self.timeouts.store_retry

            if operation.is_terminal:
                logger.debug(f"Operation already {operation.state.value}, nothing to do")
                return 0

            with log_context(instance_id=operation.instance_id,
                             orchestration_id=operation.orchestration_id):
                return await self._process(operation)

    async def _process(self, operation: Operation) -> float:
        for stage in self._stages:
            if operation.is_stage_finished(stage.name):
                continue

            for entry in stage.steps:
                if not entry.should_run(operation):
                    logger.debug(f"Skipping step {entry.step.name}, condition not met")
                    continue

                if self._time_limit_exceeded(operation):
                    await self._fail_operation(operation.operation_id, TIME_LIMIT_DESCRIPTION)
                    return 0

                operation, delay = await self._run_step(entry.step, operation)
                if operation.is_terminal:
                    return 0
                if delay > 0:
                    return delay

            operation.finish_stage(stage.name)
            try:
                operation = await self.operations.update(operation)
            except ConflictError:
                logger.warning(f"Conflict recording stage {stage.name} as finished, retrying")
                return self.timeouts.conflict_retry
            logger.info(f"Stage {stage.name} finished")

        previous_state = operation.state
        operation.mark_succeeded()
        try:
            operation = await self.operations.update(operation)
        except ConflictError:
            logger.warning("Conflict marking operation succeeded, retrying")
            return self.timeouts.conflict_retry

        logger.info("Operation succeeded")
        await self._publish_state_change(operation, previous_state)
        return 0

    async def _run_step(self, step: Step, operation: Operation) -> StepResult:
        previous_state = operation.state
        started = time.monotonic()

        with log_context(step=step.name):
            try:
                processed, delay = await step.run(operation)
            except TemporaryError as e:
                logger.warning(
                    f"Step {step.name} hit a temporary error, retrying in "
                    f"{self.timeouts.temporary_backoff}s: {e}"
                )
                await self._publish_step(step, operation, started, error=e)
                return operation, self.timeouts.temporary_backoff
            except Exception as e:
                logger.error(f"Step {step.name} failed: {e}", exc_info=True)
                await self._publish_step(step, operation, started, error=e)
                await self._fail_operation(operation.operation_id, f"step {step.name} failed: {e}")
                raise

            await self._publish_step(step, processed, started, delay=delay)
            if processed.is_terminal:
                logger.info(f"Step {step.name} finished the operation as {processed.state.value}")
                await self._publish_state_change(processed, previous_state)
            elif delay > 0:
                logger.debug(f"Step {step.name} asked to be retried in {delay}s")
            return processed, delay

    def _time_limit_exceeded(self, operation: Operation) -> bool:
        if operation.orchestration_id:
            # Not started yet means still waiting for its window
            reference = operation.started_at
        else:
            reference = operation.created_at
        if reference is None:
            return False
        limit = timedelta(seconds=self.timeouts.operation_timeout)
        return datetime.now(timezone.utc) - reference > limit

    async def _fail_operation(self, operation_id: str, reason: str) -> None:
        """Reload the operation and persist it as failed."""
        try:
            operation = await self.operations.get(operation_id)
            if operation.is_terminal:
                return
            previous_state = operation.state
            operation.mark_failed(reason)
            operation = await self.operations.update(operation)
        except Exception as e:
            logger.error(f"Unable to mark operation failed ({reason}): {e}")
            return

        logger.warning(f"Operation failed: {reason}")
        await self._publish_state_change(operation, previous_state)

    async def _publish_step(
        self,
        step: Step,
        operation: Operation,
        started: float,
        delay: float = 0.0,
        error: Optional[Exception] = None,
    ) -> None:
        await self.broker.publish(StepProcessed(
            operation=operation,
            step_name=step.name,
            duration_ms=int((time.monotonic() - started) * 1000),
            delay_seconds=delay,
            error_message=str(error) if error else None,
        ))

    async def _publish_state_change(self, operation: Operation, previous_state: OperationState) -> None:
        await self.broker.publish(OperationStateChanged(
            operation=operation,
            previous_state=previous_state,
            state=operation.state,
        ))


__all__ = [
    "TIME_LIMIT_DESCRIPTION",
    "StepEntry",
    "Stage",
    "StagedManager",
]
