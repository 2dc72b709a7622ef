# ============================================================================
# EXECUTION STRATEGY TESTS
# ============================================================================
# STATUS: Tests - ParallelStrategy scheduling and lifecycle
# PURPOSE: Verify start delays and execute/insert/cancel behaviour
# CREATED: 14 OCT 2026
# ============================================================================
"""
ParallelStrategy Tests

Delays are checked through schedule_delay() with a fixed clock; lifecycle
tests run real queues against a recording executor.

Run with:
    pytest tests/test_strategies.py -v
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from core.contracts import ScheduleType
from core.errors import ExecutionNotFoundError
from core.models import ParallelStrategySpec, Runtime, RuntimeOperation, StrategySpec
from orchestrator.strategies import ParallelStrategy, parallel_strategy_factory
from process.queue import Executor

UTC = timezone.utc
NOW = datetime(2026, 10, 13, 10, 0, tzinfo=UTC)  # Tuesday


class RecordingExecutor(Executor):
    def __init__(self):
        self.calls = []

    async def execute(self, item_id):
        self.calls.append(item_id)
        return 0


def _op(operation_id="op-1", **runtime_fields):
    return RuntimeOperation(
        operation_id=operation_id,
        runtime=Runtime(instance_id=f"inst-{operation_id}", **runtime_fields),
    )


def _strategy(**kwargs):
    return ParallelStrategy(RecordingExecutor(), clock=lambda: NOW, **kwargs)


async def _wait_for(predicate, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


# ============================================================================
# SCHEDULING
# ============================================================================

class TestScheduleDelay:

    def test_immediate(self):
        assert _strategy().schedule_delay(_op(), StrategySpec()) == 0

    def test_schedule_time(self):
        spec = StrategySpec(schedule=ScheduleType.TIME, schedule_time=NOW + timedelta(minutes=30))
        assert _strategy().schedule_delay(_op(), spec) == 1800

    def test_schedule_time_in_the_past(self):
        spec = StrategySpec(schedule=ScheduleType.TIME, schedule_time=NOW - timedelta(hours=1))
        assert _strategy().schedule_delay(_op(), spec) == 0

    def test_naive_schedule_time_is_utc(self):
        spec = StrategySpec(schedule=ScheduleType.TIME, schedule_time=datetime(2026, 10, 13, 11, 0))
        assert _strategy().schedule_delay(_op(), spec) == 3600

    def test_waits_for_window_begin(self):
        spec = StrategySpec(schedule=ScheduleType.MAINTENANCE_WINDOW, maintenance_window=True)
        op = _op(
            maintenance_window_begin=NOW + timedelta(hours=2),
            maintenance_window_end=NOW + timedelta(hours=4),
            maintenance_days=["Tue"],
        )
        assert _strategy().schedule_delay(op, spec) == 7200

    def test_inside_window_starts_now(self):
        spec = StrategySpec(schedule=ScheduleType.MAINTENANCE_WINDOW)
        op = _op(
            maintenance_window_begin=NOW - timedelta(hours=1),
            maintenance_window_end=NOW + timedelta(hours=1),
            maintenance_days=["Tue"],
        )
        assert _strategy().schedule_delay(op, spec) == 0

    def test_without_window_starts_now(self):
        spec = StrategySpec(schedule=ScheduleType.MAINTENANCE_WINDOW)
        assert _strategy().schedule_delay(_op(), spec) == 0

    def test_closed_window_uses_reschedule_delay(self):
        spec = StrategySpec(schedule=ScheduleType.MAINTENANCE_WINDOW)
        op = _op(
            maintenance_window_begin=NOW - timedelta(hours=4),
            maintenance_window_end=NOW - timedelta(hours=2),
            maintenance_days=["Tue"],
        )
        assert _strategy(reschedule_delay=600).schedule_delay(op, spec) == 600

    def test_closed_window_moves_to_next_allowed_day(self):
        spec = StrategySpec(schedule=ScheduleType.MAINTENANCE_WINDOW)
        op = _op(
            maintenance_window_begin=datetime(2026, 10, 12, 2, 0, tzinfo=UTC),
            maintenance_window_end=datetime(2026, 10, 12, 4, 0, tzinfo=UTC),
            maintenance_days=["Wed"],
        )
        # Wednesday 02:00 is 16 hours after Tuesday 10:00
        assert _strategy().schedule_delay(op, spec) == 16 * 3600


# ============================================================================
# LIFECYCLE
# ============================================================================

class TestParallelStrategyLifecycle:

    def test_empty_batch_has_no_execution(self):
        async def scenario():
            strategy = ParallelStrategy(RecordingExecutor())
            return strategy.execute([], StrategySpec()), strategy.execution_ids

        assert asyncio.run(scenario()) == ("", [])

    def test_execute_runs_every_operation(self):
        async def scenario():
            executor = RecordingExecutor()
            strategy = ParallelStrategy(executor)
            spec = StrategySpec(parallel=ParallelStrategySpec(workers=2))
            execution_id = strategy.execute([_op("op-1"), _op("op-2"), _op("op-3")], spec)
            await _wait_for(lambda: len(executor.calls) == 3)
            strategy.cancel(execution_id)
            return executor.calls, execution_id

        calls, execution_id = asyncio.run(scenario())
        assert sorted(calls) == ["op-1", "op-2", "op-3"]
        assert execution_id

    def test_insert_into_running_execution(self):
        async def scenario():
            executor = RecordingExecutor()
            strategy = ParallelStrategy(executor)
            execution_id = strategy.execute([_op("op-1")], StrategySpec())
            await _wait_for(lambda: executor.calls == ["op-1"])
            strategy.insert(execution_id, [_op("op-2")], StrategySpec())
            await _wait_for(lambda: len(executor.calls) == 2)
            strategy.cancel(execution_id)
            return executor.calls

        assert asyncio.run(scenario()) == ["op-1", "op-2"]

    def test_insert_into_unknown_execution(self):
        async def scenario():
            strategy = ParallelStrategy(RecordingExecutor())
            strategy.insert("missing", [_op()], StrategySpec())

        with pytest.raises(ExecutionNotFoundError):
            asyncio.run(scenario())

    def test_insert_after_cancel(self):
        async def scenario():
            strategy = ParallelStrategy(RecordingExecutor())
            execution_id = strategy.execute([_op()], StrategySpec())
            strategy.cancel(execution_id)
            assert strategy.execution_ids == []
            strategy.insert(execution_id, [_op("op-2")], StrategySpec())

        with pytest.raises(ExecutionNotFoundError):
            asyncio.run(scenario())

    def test_cancel_drops_queued_operations(self):
        class SlowExecutor(RecordingExecutor):
            async def execute(self, item_id):
                self.calls.append(item_id)
                await asyncio.sleep(0.01)
                return 0

        async def scenario():
            executor = SlowExecutor()
            strategy = ParallelStrategy(executor)
            spec = StrategySpec(parallel=ParallelStrategySpec(workers=1))
            execution_id = strategy.execute([_op(f"op-{i}") for i in range(50)], spec)
            await _wait_for(lambda: len(executor.calls) >= 1)
            strategy.cancel(execution_id)
            await strategy.wait(execution_id)
            calls_at_stop = len(executor.calls)
            await asyncio.sleep(0.05)
            return calls_at_stop, len(executor.calls)

        calls_at_stop, calls_later = asyncio.run(scenario())
        assert calls_at_stop <= 2
        assert calls_later == calls_at_stop

    def test_cancel_unknown_is_a_no_op(self):
        async def scenario():
            ParallelStrategy(RecordingExecutor()).cancel("missing")

        asyncio.run(scenario())

    def test_factory(self):
        build = parallel_strategy_factory(reschedule_delay=30, speed_factor=10)
        strategy = build(StrategySpec(), RecordingExecutor())

        assert isinstance(strategy, ParallelStrategy)
        assert strategy.reschedule_delay == 30
        assert strategy.speed_factor == 10
