# ============================================================================
# OPERATION FACTORY TESTS
# ============================================================================
# STATUS: Tests - Campaign operation lifecycle
# PURPOSE: Verify create, resume, cancel and retry of campaign operations
# CREATED: 14 OCT 2026
# ============================================================================
"""
OperationFactory Tests

Run with:
    pytest tests/test_factory.py -v
"""

import asyncio

import pytest

from core.contracts import OperationState, OperationType, OrchestrationType
from core.errors import FatalError
from core.models import Instance, Operation, Orchestration, OrchestrationParameters, Runtime
from orchestrator.factory import OperationFactory
from repositories.memory import InMemoryOperationStore


class RacingOperationStore(InMemoryOperationStore):
    """Runs `race` right before the next update, once."""

    def __init__(self):
        super().__init__()
        self.race = None

    async def update(self, operation):
        if self.race is not None:
            race, self.race = self.race, None
            await race()
        return await super().update(operation)


def _orchestration(orchestration_id="orch-1"):
    return Orchestration(
        orchestration_id=orchestration_id,
        type=OrchestrationType.UPGRADE_KYMA,
        parameters=OrchestrationParameters(version="2.4.1", dry_run=True),
    )


def _operation(operation_id, state=OperationState.PENDING, orchestration_id="orch-1"):
    return Operation(
        operation_id=operation_id,
        instance_id=f"inst-{operation_id}",
        orchestration_id=orchestration_id,
        type=OperationType.UPGRADE_KYMA,
        state=state,
        finished_stages=["start"] if state != OperationState.PENDING else [],
    )


async def _seed(store, *operations):
    for operation in operations:
        await store.insert(operation)


class TestNewOperation:

    def test_persists_pending_operation(self):
        async def scenario():
            store = InMemoryOperationStore()
            factory = OperationFactory(store)
            runtime = Runtime(instance_id="inst-1", runtime_id="rt-1")
            instance = Instance(instance_id="inst-1", plan_id="plan-azure")
            runtime_op = await factory.new_operation(_orchestration(), runtime, instance)
            return runtime_op, await store.get(runtime_op.operation_id)

        runtime_op, stored = asyncio.run(scenario())
        assert runtime_op.instance_id == "inst-1"
        assert runtime_op.dry_run is True
        assert stored.type == OperationType.UPGRADE_KYMA
        assert stored.state == OperationState.PENDING
        assert stored.orchestration_id == "orch-1"
        assert stored.description == "Operation created"
        assert stored.parameters == {"version": "2.4.1", "dry_run": True, "plan_id": "plan-azure"}
        assert stored.runtime.runtime_id == "rt-1"


class TestResumeAndCancel:

    def test_resume_returns_not_finished(self):
        async def scenario():
            store = InMemoryOperationStore()
            await _seed(
                store,
                _operation("a"),
                _operation("b", OperationState.IN_PROGRESS),
                _operation("c", OperationState.SUCCEEDED),
                _operation("d", orchestration_id="orch-2"),
            )
            return await OperationFactory(store).resume_operations("orch-1")

        assert [op.operation_id for op in asyncio.run(scenario())] == ["a", "b"]

    def test_cancel_only_pending(self):
        async def scenario():
            store = InMemoryOperationStore()
            await _seed(
                store,
                _operation("a"),
                _operation("b"),
                _operation("c", OperationState.IN_PROGRESS),
            )
            count = await OperationFactory(store).cancel_operations("orch-1")
            return count, {op.operation_id: op.state for op in await store.list()}

        count, states = asyncio.run(scenario())
        assert count == 2
        assert states == {
            "a": OperationState.CANCELED,
            "b": OperationState.CANCELED,
            "c": OperationState.IN_PROGRESS,
        }

    def test_cancel_rechecks_after_conflict(self):
        async def scenario():
            store = RacingOperationStore()
            await _seed(store, _operation("a"))

            async def start_concurrently():
                stored = await store.get("a")
                stored.mark_in_progress()
                await InMemoryOperationStore.update(store, stored)

            store.race = start_concurrently
            count = await OperationFactory(store).cancel_operations("orch-1")
            return count, await store.get("a")

        count, operation = asyncio.run(scenario())
        assert count == 0
        assert operation.state == OperationState.IN_PROGRESS


class TestRetryOperations:

    def test_failed_back_to_pending(self):
        prepared = []

        async def scenario():
            store = InMemoryOperationStore()
            await _seed(store, _operation("a", OperationState.FAILED))
            result = await OperationFactory(store).retry_operations("orch-1", ["a"], prepared.append)
            return result, await store.get("a")

        result, stored = asyncio.run(scenario())
        assert [op.operation_id for op in result] == ["a"]
        assert stored.state == OperationState.PENDING
        assert stored.finished_stages == []
        assert stored.description.endswith("retrying")
        assert [runtime.instance_id for runtime in prepared] == ["inst-a"]

    def test_pending_returned_unchanged_and_finished_skipped(self):
        async def scenario():
            store = InMemoryOperationStore()
            await _seed(
                store,
                _operation("a"),
                _operation("b", OperationState.SUCCEEDED),
                _operation("c", OperationState.FAILED),
            )
            result = await OperationFactory(store).retry_operations("orch-1", ["a", "b", "c", "a"])
            return result, await store.get("a")

        result, pending = asyncio.run(scenario())
        assert [op.operation_id for op in result] == ["a", "c"]
        assert pending.version == 1

    def test_unknown_operation_is_fatal(self):
        async def scenario():
            await OperationFactory(InMemoryOperationStore()).retry_operations("orch-1", ["missing"])

        with pytest.raises(FatalError, match="unknown operation"):
            asyncio.run(scenario())

    def test_foreign_operation_is_fatal(self):
        async def scenario():
            store = InMemoryOperationStore()
            await _seed(store, _operation("a", OperationState.FAILED, orchestration_id="orch-2"))
            await OperationFactory(store).retry_operations("orch-1", ["a"])

        with pytest.raises(FatalError, match="does not belong"):
            asyncio.run(scenario())
