# ============================================================================
# NOTIFICATION TESTS
# ============================================================================
# STATUS: Tests - Notification client, builders and event handler
# PURPOSE: Verify request shape, error mapping and tenant updates
# CREATED: 15 OCT 2026
# ============================================================================
"""
Notification Tests

The HTTP client runs against httpx.MockTransport; no network is used.

Run with:
    pytest tests/test_notification.py -v
"""

import asyncio
import json

import httpx
import pytest

from core.config import NotificationDefaults
from core.contracts import NotificationState, OperationState, OperationType, OrchestrationType
from core.errors import NotificationError, TemporaryError
from core.models import (
    Operation,
    OperationStateChanged,
    Orchestration,
    OrchestrationParameters,
)
from messaging import EventBroker
from notification import (
    DisabledBundleBuilder,
    HttpBundleBuilder,
    MaintenanceFinishedHandler,
    NotificationEventType,
    NotificationParams,
    NotificationTenant,
    create_bundle_builder,
)
from repositories import create_memory_storage


def _builder(handler):
    defaults = NotificationDefaults(disabled=False, url="http://notifications.local/")
    return HttpBundleBuilder.from_defaults(defaults, transport=httpx.MockTransport(handler))


def _params():
    return NotificationParams(
        orchestration_id="orch-1",
        event_type=NotificationEventType.KYMA_MAINTENANCE.value,
        tenants=[NotificationTenant(instance_id="inst-1", start_date="2026-10-14 02:00:00")],
    )


def _status(code):
    def handler(request):
        return httpx.Response(code, text="nope")
    return handler


# ============================================================================
# HTTP CLIENT
# ============================================================================

class TestHttpBundle:

    def test_create_posts_camel_case_body(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(201)

        async def scenario():
            builder = _builder(handler)
            await builder.new_bundle("orch-1", _params()).create_notification_event()
            await builder.close()

        asyncio.run(scenario())
        (request,) = requests
        assert request.method == "POST"
        assert request.url.path == "/notifications"
        body = json.loads(request.content)
        assert body["orchestrationId"] == "orch-1"
        assert body["eventType"] == "kymamaintenance"
        assert body["tenants"][0]["instanceId"] == "inst-1"
        assert body["tenants"][0]["startDate"] == "2026-10-14 02:00:00"

    def test_update_and_cancel_paths(self):
        seen = []

        def handler(request):
            seen.append((request.method, request.url.path))
            return httpx.Response(200)

        async def scenario():
            builder = _builder(handler)
            bundle = builder.new_bundle("orch-1", _params())
            await bundle.update_notification_event()
            await bundle.cancel_notification_event()
            await builder.close()

        asyncio.run(scenario())
        assert seen == [("PATCH", "/notifications/orch-1"), ("DELETE", "/notifications/orch-1")]

    def test_server_error_is_temporary(self):
        async def scenario():
            await _builder(_status(503)).new_bundle("orch-1", _params()).create_notification_event()

        with pytest.raises(TemporaryError):
            asyncio.run(scenario())

    def test_client_error_is_rejected(self):
        async def scenario():
            await _builder(_status(400)).new_bundle("orch-1", _params()).create_notification_event()

        with pytest.raises(NotificationError, match="400"):
            asyncio.run(scenario())

    def test_connection_error_is_temporary(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async def scenario():
            await _builder(handler).new_bundle("orch-1", _params()).cancel_notification_event()

        with pytest.raises(TemporaryError):
            asyncio.run(scenario())


# ============================================================================
# BUILDER SELECTION
# ============================================================================

class TestCreateBundleBuilder:

    def test_disabled_flag(self):
        builder = create_bundle_builder(NotificationDefaults(disabled=True, url="http://x"))
        assert isinstance(builder, DisabledBundleBuilder)
        assert builder.disabled_check()

    def test_missing_url(self):
        assert isinstance(create_bundle_builder(NotificationDefaults(disabled=False)), DisabledBundleBuilder)

    def test_enabled(self):
        async def scenario():
            builder = create_bundle_builder(NotificationDefaults(disabled=False, url="http://x"))
            await builder.close()
            return builder

        builder = asyncio.run(scenario())
        assert isinstance(builder, HttpBundleBuilder)
        assert not builder.disabled_check()

    def test_event_type_per_orchestration(self):
        assert (NotificationEventType.for_orchestration(OrchestrationType.UPGRADE_CLUSTER)
                == NotificationEventType.KUBERNETES_MAINTENANCE)
        assert (NotificationEventType.for_orchestration(OrchestrationType.UPGRADE_KYMA)
                == NotificationEventType.KYMA_MAINTENANCE)


# ============================================================================
# MAINTENANCE FINISHED HANDLER
# ============================================================================

class TestMaintenanceFinishedHandler:

    def _publish(self, notification_state, state, orchestration_id="orch-1"):
        requests = []

        def handler(request):
            requests.append(json.loads(request.content))
            return httpx.Response(200)

        async def scenario():
            storage = create_memory_storage()
            await storage.orchestrations.insert(Orchestration(
                orchestration_id="orch-1",
                type=OrchestrationType.UPGRADE_KYMA,
                parameters=OrchestrationParameters(notification_state=notification_state),
            ))
            broker = EventBroker()
            builder = _builder(handler)
            MaintenanceFinishedHandler(storage.orchestrations, builder).register(broker)
            operation = Operation(
                operation_id="op-1",
                instance_id="inst-1",
                orchestration_id=orchestration_id,
                type=OperationType.UPGRADE_KYMA,
                state=state,
            )
            await broker.publish(OperationStateChanged(
                operation=operation,
                previous_state=OperationState.IN_PROGRESS,
                state=state,
            ))
            await builder.close()

        asyncio.run(scenario())
        return requests

    def test_finished_tenant_reported(self):
        (body,) = self._publish(NotificationState.CREATED, OperationState.SUCCEEDED)
        assert body["orchestrationId"] == "orch-1"
        assert body["tenants"][0]["instanceId"] == "inst-1"
        assert body["tenants"][0]["state"] == "Finished"
        assert body["tenants"][0]["endDate"]

    def test_failed_tenant_reported(self):
        (body,) = self._publish(NotificationState.CREATED, OperationState.FAILED)
        assert body["tenants"][0]["state"] == "Failed"

    def test_nothing_without_created_notification(self):
        assert self._publish(NotificationState.PENDING, OperationState.SUCCEEDED) == []

    def test_canceled_operation_ignored(self):
        assert self._publish(NotificationState.CREATED, OperationState.CANCELED) == []

    def test_standalone_operation_ignored(self):
        assert self._publish(NotificationState.CREATED, OperationState.SUCCEEDED, orchestration_id=None) == []
