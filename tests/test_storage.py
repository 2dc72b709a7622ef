# ============================================================================
# STORAGE TESTS
# ============================================================================
# STATUS: Tests - In-memory stores and PostgreSQL row mapping
# PURPOSE: Verify version checks, isolation, filters and DDL layout
# CREATED: 16 OCT 2026
# ============================================================================
"""
Storage Tests

The PostgreSQL repositories are only checked at the row-mapping and DDL
level; no database is needed.

Run with:
    pytest tests/test_storage.py -v
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from psycopg import sql

from core.contracts import OperationState, OperationType, OrchestrationState, OrchestrationType
from core.errors import ConflictError, NotFoundError
from core.models import Instance, Operation, Orchestration, OrchestrationParameters, Runtime
from repositories import (
    OperationFilter,
    OperationRepository,
    OrchestrationFilter,
    OrchestrationRepository,
    create_memory_storage,
)
from repositories.schema import build_statements

T0 = datetime(2026, 10, 1, tzinfo=timezone.utc)


def _operation(operation_id, state=OperationState.PENDING, orchestration_id="orch-1", minutes=0, **kwargs):
    return Operation(
        operation_id=operation_id,
        instance_id=f"inst-{operation_id}",
        orchestration_id=orchestration_id,
        type=kwargs.pop("type", OperationType.UPGRADE_KYMA),
        state=state,
        created_at=T0 + timedelta(minutes=minutes),
        **kwargs,
    )


class TestInMemoryOperationStore:

    def test_version_checked_update(self):
        async def scenario():
            store = create_memory_storage().operations
            await store.insert(_operation("a"))
            first = await store.get("a")
            second = await store.get("a")

            first.mark_in_progress()
            await store.update(first)
            second.mark_failed("late")
            with pytest.raises(ConflictError):
                await store.update(second)
            return first, await store.get("a")

        updated, stored = asyncio.run(scenario())
        assert updated.version == 2
        assert stored.version == 2
        assert stored.state == OperationState.IN_PROGRESS

    def test_records_are_isolated(self):
        async def scenario():
            store = create_memory_storage().operations
            operation = _operation("a")
            await store.insert(operation)
            operation.payload["leak"] = True
            loaded = await store.get("a")
            loaded.payload["leak"] = True
            return await store.get("a")

        assert asyncio.run(scenario()).payload == {}

    def test_duplicate_insert(self):
        async def scenario():
            store = create_memory_storage().operations
            await store.insert(_operation("a"))
            await store.insert(_operation("a"))

        with pytest.raises(ConflictError):
            asyncio.run(scenario())

    def test_missing(self):
        async def scenario():
            store = create_memory_storage().operations
            with pytest.raises(NotFoundError):
                await store.get("missing")
            with pytest.raises(NotFoundError):
                await store.update(_operation("missing"))

        asyncio.run(scenario())

    def test_filters_and_order(self):
        async def scenario():
            store = create_memory_storage().operations
            await store.insert(_operation("late", minutes=5))
            await store.insert(_operation("early", minutes=1))
            await store.insert(_operation("done", OperationState.SUCCEEDED, minutes=2))
            await store.insert(_operation("other", orchestration_id="orch-2"))
            await store.insert(_operation("prov", orchestration_id=None, type=OperationType.PROVISION))
            return (
                await store.list_for_orchestration("orch-1"),
                await store.list(OperationFilter(orchestration_id="orch-1", limit=1)),
                await store.get_not_finished_by_type(OperationType.UPGRADE_KYMA),
                await store.get_stats_for_orchestration("orch-1"),
            )

        everything, limited, not_finished, stats = asyncio.run(scenario())
        assert [op.operation_id for op in everything] == ["early", "done", "late"]
        assert [op.operation_id for op in limited] == ["early"]
        assert [op.operation_id for op in not_finished] == ["other", "early", "late"]
        assert stats[OperationState.PENDING] == 2
        assert stats[OperationState.SUCCEEDED] == 1
        assert len(stats) == len(OperationState)


class TestInMemoryOrchestrationStore:

    def test_list_filter(self):
        async def scenario():
            store = create_memory_storage().orchestrations
            for orchestration_id, type, state in (
                ("o1", OrchestrationType.UPGRADE_KYMA, OrchestrationState.PENDING),
                ("o2", OrchestrationType.UPGRADE_CLUSTER, OrchestrationState.PENDING),
                ("o3", OrchestrationType.UPGRADE_KYMA, OrchestrationState.FAILED),
            ):
                await store.insert(Orchestration(orchestration_id=orchestration_id, type=type, state=state))
            return await store.list(OrchestrationFilter(
                types=[OrchestrationType.UPGRADE_KYMA], states=[OrchestrationState.PENDING],
            ))

        assert [o.orchestration_id for o in asyncio.run(scenario())] == ["o1"]

    def test_update_bumps_version(self):
        async def scenario():
            store = create_memory_storage().orchestrations
            await store.insert(Orchestration(orchestration_id="o1", type=OrchestrationType.UPGRADE_KYMA))
            orchestration = await store.get("o1")
            orchestration.state = OrchestrationState.IN_PROGRESS
            await store.update(orchestration)
            return orchestration, await store.get("o1")

        updated, stored = asyncio.run(scenario())
        assert updated.version == stored.version == 2
        assert stored.updated_at >= stored.created_at


class TestInMemoryInstanceStore:

    def test_upsert_replaces(self):
        async def scenario():
            store = create_memory_storage().instances
            await store.upsert(Instance(instance_id="i-1", region="eastus"))
            await store.upsert(Instance(instance_id="i-1", region="westeurope"))
            return await store.list()

        (instance,) = asyncio.run(scenario())
        assert instance.region == "westeurope"


# ============================================================================
# POSTGRES ROW MAPPING
# ============================================================================

class TestRowMapping:

    def test_operation_row(self):
        operation = _operation(
            "a",
            OperationState.IN_PROGRESS,
            finished_stages=["start"],
            parameters={"version": "2.4.1"},
            runtime=Runtime(instance_id="inst-a", runtime_id="rt-a"),
            payload={"target_version": "2.4.1"},
        )
        params = OperationRepository._params(operation)
        row = {
            **params,
            "finished_stages": params["finished_stages"].obj,
            "parameters": params["parameters"].obj,
            "runtime": params["runtime"].obj,
            "payload": params["payload"].obj,
        }

        restored = OperationRepository._row_to_operation(row)

        assert params["state"] == "in progress"
        assert restored == operation

    def test_operation_row_without_runtime(self):
        params = OperationRepository._params(_operation("a", orchestration_id=None))
        assert params["runtime"] is None

    def test_orchestration_row(self):
        orchestration = Orchestration(
            orchestration_id="o1",
            type=OrchestrationType.UPGRADE_CLUSTER,
            state=OrchestrationState.RETRYING,
            parameters=OrchestrationParameters(version="1.30"),
        )
        orchestration.parameters.retry_operation.retry_operations = ["a"]
        params = OrchestrationRepository._params(orchestration)

        restored = OrchestrationRepository._row_to_orchestration({
            **params, "parameters": params["parameters"].obj,
        })

        assert restored == orchestration


class TestSchema:

    def test_statement_layout(self):
        statements = build_statements("fleet_test")

        # schema, three tables, four indexes
        assert len(statements) == 8
        assert all(isinstance(stmt, sql.Composable) for stmt in statements)
