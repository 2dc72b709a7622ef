# ============================================================================
# FLEET ENGINE TESTS
# ============================================================================
# STATUS: Tests - Full engine over in-memory storage
# PURPOSE: Standalone operations and a whole campaign through real queues
# CREATED: 16 OCT 2026
# ============================================================================
"""
FleetEngine Tests

Runs the shipped pipelines with real queues, the real OrchestrationManager
and the parallel strategy. Only the polling interval is shortened.

Run with:
    pytest tests/test_engine.py -v
"""

import asyncio
import uuid
from pathlib import Path

import pytest

from core.config import Defaults, OrchestrationDefaults
from core.contracts import OperationState, OperationType, OrchestrationState, OrchestrationType
from core.models import (
    Instance,
    Operation,
    OrchestrationParameters,
    RuntimeTarget,
    TargetSpec,
)
from notification import DisabledBundleBuilder
from process.pipeline import load_pipeline_file
from process.steps.upgrade import TARGET_VERSION_KEY
from repositories import create_memory_storage
from services import ORCHESTRATED_TYPES, FleetEngine

PIPELINES_PATH = Path(__file__).parent.parent / "pipelines.yaml"


def _engine(storage=None):
    return FleetEngine(
        storage or create_memory_storage(),
        Defaults(orchestration=OrchestrationDefaults(polling_interval=0.01)),
        DisabledBundleBuilder(),
        load_pipeline_file(PIPELINES_PATH),
    )


async def _wait_for(load, predicate, timeout=5.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while True:
        record = await load()
        if predicate(record):
            return record
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError(f"condition not reached in time, last: {record}")
        await asyncio.sleep(0.01)


class TestFleetEngineWiring:

    def test_queues(self):
        async def scenario():
            return _engine()

        engine = asyncio.run(scenario())
        assert set(engine.queues) == {"provision", "deprovision", "update", "orchestrations"}
        assert ORCHESTRATED_TYPES == {OperationType.UPGRADE_KYMA, OperationType.UPGRADE_CLUSTER}
        assert set(engine.managers) == set(OperationType)

    def test_submit_orchestrated_type_rejected(self):
        async def scenario():
            engine = _engine()
            await engine.submit_operation(Operation(
                operation_id="op-1", instance_id="inst-1", type=OperationType.UPGRADE_KYMA,
            ))

        with pytest.raises(ValueError, match="no queue"):
            asyncio.run(scenario())


class TestFleetEngineRun:

    def test_standalone_operation(self):
        async def scenario():
            engine = _engine()
            await engine.start()
            try:
                await engine.submit_operation(Operation(
                    operation_id="op-1", instance_id="inst-1", type=OperationType.PROVISION,
                ))
                return await _wait_for(
                    lambda: engine.storage.operations.get("op-1"),
                    lambda op: op.is_terminal,
                )
            finally:
                await engine.stop()

        operation = asyncio.run(scenario())
        assert operation.state == OperationState.SUCCEEDED
        assert operation.finished_stages == ["start"]

    def test_campaign(self):
        async def scenario():
            storage = create_memory_storage()
            for i in range(3):
                await storage.instances.upsert(Instance(
                    instance_id=f"inst-{i}", runtime_id=f"rt-{i}", plan_name="azure", region="westeurope",
                ))
            await storage.instances.upsert(Instance(
                instance_id="inst-aws", runtime_id="rt-aws", plan_name="aws", region="eu-central-1",
            ))

            engine = _engine(storage)
            await engine.start()
            try:
                orchestration = await engine.orchestration_service.create_orchestration(
                    OrchestrationType.UPGRADE_KYMA,
                    OrchestrationParameters(
                        targets=TargetSpec(include=[RuntimeTarget(plan="azure")]),
                        version="2.5.0",
                    ),
                )
                finished = await _wait_for(
                    lambda: storage.orchestrations.get(orchestration.orchestration_id),
                    lambda o: o.is_finished,
                )
                _, operations = await engine.orchestration_service.list_operations(
                    orchestration.orchestration_id
                )
                status = engine.metrics.snapshot()
                return finished, operations, status
            finally:
                await engine.stop()

        orchestration, operations, snapshot = asyncio.run(scenario())
        assert orchestration.state == OrchestrationState.SUCCEEDED
        assert sorted(op.instance_id for op in operations) == ["inst-0", "inst-1", "inst-2"]
        assert all(op.state == OperationState.SUCCEEDED for op in operations)
        assert all(op.payload[TARGET_VERSION_KEY] == "2.5.0" for op in operations)
        counters = {(c["name"], c["tags"].get("state")): c["value"] for c in snapshot["counters"]}
        assert counters[("operations_total", "succeeded")] == 3

    def test_reprocess_resumes_pending_operation(self):
        async def scenario():
            storage = create_memory_storage()
            operation_id = str(uuid.uuid4())
            await storage.operations.insert(Operation(
                operation_id=operation_id, instance_id="inst-1", type=OperationType.UPDATE,
            ))
            engine = _engine(storage)
            await engine.start(reprocess=True)
            try:
                return await _wait_for(
                    lambda: storage.operations.get(operation_id),
                    lambda op: op.is_terminal,
                )
            finally:
                await engine.stop()

        assert asyncio.run(scenario()).state == OperationState.SUCCEEDED

    def test_stop_without_work(self):
        async def scenario():
            engine = _engine()
            await engine.start(reprocess=False)
            await engine.stop()
            return engine.queues

        queues = asyncio.run(scenario())
        assert not any(queue.is_running for queue in queues.values())
