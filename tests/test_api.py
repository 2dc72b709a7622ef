# ============================================================================
# API TESTS
# ============================================================================
# STATUS: Tests - HTTP surface for campaigns, operations and health
# PURPOSE: Verify status codes and response shapes of the FastAPI routes
# CREATED: 16 OCT 2026
# ============================================================================
"""
API Route Tests

Routes run against a bare FastAPI app wired to an OrchestrationService over
in-memory storage. The orchestration queue is a MagicMock, so nothing is
actually executed.

Run with:
    pytest tests/test_api.py -v
"""

import asyncio
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api import router, set_services
from core.contracts import OperationState, OperationType, OrchestrationState, OrchestrationType
from core.observability import EngineMetrics
from core.models import Operation, Orchestration
from health import (
    HealthCheckPlugin,
    HealthCheckResult,
    NotificationCheck,
    get_registry,
    health_router,
)
from notification import DisabledBundleBuilder
from repositories import create_memory_storage
from services import OrchestrationService


@pytest.fixture
def harness():
    storage = create_memory_storage()
    queue = MagicMock()
    queue_stats = MagicMock(stats={"name": "orchestrations", "running": True})
    set_services(OrchestrationService(storage, queue), EngineMetrics(), {"orchestrations": queue_stats})

    app = FastAPI()
    app.include_router(router, prefix="/api/v1")
    app.include_router(health_router)
    yield TestClient(app), storage, queue
    set_services(None)


def _seed(storage, *records):
    async def seed():
        for record in records:
            if isinstance(record, Orchestration):
                await storage.orchestrations.insert(record)
            else:
                await storage.operations.insert(record)

    asyncio.run(seed())


def _orchestration(state):
    return Orchestration(orchestration_id="orch-1", type=OrchestrationType.UPGRADE_KYMA, state=state)


def _operation(operation_id, state):
    return Operation(
        operation_id=operation_id,
        instance_id=f"inst-{operation_id}",
        orchestration_id="orch-1",
        type=OperationType.UPGRADE_KYMA,
        state=state,
    )


# ============================================================================
# ORCHESTRATIONS
# ============================================================================

class TestCreateOrchestration:

    def test_created(self, harness):
        client, storage, queue = harness
        resp = client.post("/api/v1/orchestrations", json={
            "type": "upgradeKyma",
            "targets": {"include": [{"plan": "azure"}]},
            "strategy": {"schedule": "maintenanceWindow", "parallel": {"workers": 4}},
            "version": "2.4.1",
        })

        assert resp.status_code == 201
        body = resp.json()
        assert body["state"] == "pending"
        assert body["type"] == "upgradeKyma"
        queue.add.assert_called_once_with(body["orchestration_id"])

        detail = client.get(f"/api/v1/orchestrations/{body['orchestration_id']}").json()
        assert detail["parameters"]["version"] == "2.4.1"
        assert detail["parameters"]["strategy"]["parallel"]["workers"] == 4

    def test_empty_include_rejected(self, harness):
        client, _, queue = harness
        resp = client.post("/api/v1/orchestrations", json={"type": "upgradeKyma", "targets": {}})

        assert resp.status_code == 400
        queue.add.assert_not_called()

    def test_unknown_type_rejected(self, harness):
        client, _, _ = harness
        resp = client.post("/api/v1/orchestrations", json={
            "type": "migrate",
            "targets": {"include": [{"target": "all"}]},
        })
        assert resp.status_code == 422

    def test_unknown_target_keyword_rejected(self, harness):
        client, _, _ = harness
        resp = client.post("/api/v1/orchestrations", json={
            "type": "upgradeCluster",
            "targets": {"include": [{"target": "everything"}]},
        })
        assert resp.status_code == 422


class TestOrchestrationQueries:

    def test_get_unknown(self, harness):
        client, _, _ = harness
        assert client.get("/api/v1/orchestrations/missing").status_code == 404

    def test_list_with_state_filter(self, harness):
        client, storage, _ = harness
        _seed(storage, _orchestration(OrchestrationState.FAILED))

        failed = client.get("/api/v1/orchestrations", params={"state": "failed"}).json()
        pending = client.get("/api/v1/orchestrations", params={"state": "pending"}).json()

        assert failed["total"] == 1
        assert failed["orchestrations"][0]["orchestration_id"] == "orch-1"
        assert pending["total"] == 0

    def test_operations_with_stats(self, harness):
        client, storage, _ = harness
        _seed(
            storage,
            _orchestration(OrchestrationState.IN_PROGRESS),
            _operation("a", OperationState.SUCCEEDED),
            _operation("b", OperationState.FAILED),
        )

        body = client.get("/api/v1/orchestrations/orch-1/operations").json()

        assert body["total"] == 2
        assert body["stats"]["succeeded"] == 1
        assert body["stats"]["failed"] == 1
        assert body["stats"]["in progress"] == 0

    def test_operations_of_unknown_orchestration(self, harness):
        client, _, _ = harness
        assert client.get("/api/v1/orchestrations/missing/operations").status_code == 404

    def test_get_operation(self, harness):
        client, storage, _ = harness
        _seed(storage, _operation("a", OperationState.IN_PROGRESS))

        resp = client.get("/api/v1/operations/a")

        assert resp.status_code == 200
        assert resp.json()["state"] == "in progress"
        assert client.get("/api/v1/operations/missing").status_code == 404


class TestCancelAndRetry:

    def test_cancel(self, harness):
        client, storage, _ = harness
        _seed(storage, _orchestration(OrchestrationState.IN_PROGRESS))

        resp = client.put("/api/v1/orchestrations/orch-1/cancel")

        assert resp.status_code == 200
        assert resp.json()["state"] == "canceling"

    def test_cancel_finished(self, harness):
        client, storage, _ = harness
        _seed(storage, _orchestration(OrchestrationState.SUCCEEDED))
        assert client.put("/api/v1/orchestrations/orch-1/cancel").status_code == 400

    def test_cancel_unknown(self, harness):
        client, _, _ = harness
        assert client.put("/api/v1/orchestrations/missing/cancel").status_code == 404

    def test_retry(self, harness):
        client, storage, queue = harness
        _seed(
            storage,
            _orchestration(OrchestrationState.FAILED),
            _operation("a", OperationState.FAILED),
            _operation("b", OperationState.SUCCEEDED),
        )

        resp = client.post("/api/v1/orchestrations/orch-1/retry", json={"operation_ids": ["a", "b"]})

        assert resp.status_code == 202
        assert resp.json() == {
            "orchestration_id": "orch-1",
            "state": "retrying",
            "retried": ["a"],
            "skipped": ["b"],
        }
        queue.add.assert_called_once_with("orch-1")

    def test_retry_pending_rejected(self, harness):
        client, storage, _ = harness
        _seed(storage, _orchestration(OrchestrationState.PENDING), _operation("a", OperationState.FAILED))

        resp = client.post("/api/v1/orchestrations/orch-1/retry", json={})

        assert resp.status_code == 400
        assert "cannot retry" in resp.json()["detail"]


class TestEngineStatus:

    def test_status(self, harness):
        client, _, _ = harness
        body = client.get("/api/v1/engine/status").json()

        assert body["queues"]["orchestrations"]["running"] is True
        assert set(body["metrics"]) == {"counters", "gauges", "histograms"}


# ============================================================================
# HEALTH
# ============================================================================

class _Check(HealthCheckPlugin):
    def __init__(self, name, result, required=True):
        self.name = name
        self.result = result
        self.required_for_ready = required

    async def check(self):
        return self.result


class _Failing(HealthCheckPlugin):
    name = "failing"

    async def check(self):
        raise RuntimeError("boom")


class TestHealthRoutes:

    @pytest.fixture(autouse=True)
    def clean_registry(self):
        get_registry().clear()
        yield
        get_registry().clear()

    def test_livez(self, harness):
        client, _, _ = harness
        body = client.get("/livez").json()
        assert body["status"] == "alive"
        assert body["version"]

    def test_readyz_without_checks(self, harness):
        client, _, _ = harness
        assert client.get("/readyz").json()["status"] == "ready"

    def test_readyz_ignores_optional_checks(self, harness):
        client, _, _ = harness
        get_registry().register(_Check("ok", HealthCheckResult.healthy()))
        get_registry().register(NotificationCheck(DisabledBundleBuilder()))

        resp = client.get("/readyz")

        assert resp.status_code == 200
        assert resp.json()["checks_passed"] == 1

    def test_readyz_fails_on_exception(self, harness):
        client, _, _ = harness
        get_registry().register(_Failing())

        resp = client.get("/readyz")

        assert resp.status_code == 503
        assert resp.json()["checks"]["failing"]["details"]["exception_type"] == "RuntimeError"

    def test_health_degraded(self, harness):
        client, _, _ = harness
        get_registry().register(_Check("ok", HealthCheckResult.healthy()))
        get_registry().register(NotificationCheck(DisabledBundleBuilder()))

        resp = client.get("/health")

        assert resp.status_code == 206
        assert resp.json()["checks"]["notification"]["status"] == "degraded"
