# ============================================================================
# MAINTENANCE NOTIFICATION HANDLER
# ============================================================================
# STATUS: Notification - Event subscriber for per-tenant progress
# PURPOSE: Report finished/failed maintenance to the notification backend
# CREATED: 29 SEP 2026
# ============================================================================
"""
Maintenance Notification Handler

Subscribes to OperationStateChanged. When an orchestrated operation ends,
the tenant entry of its orchestration's notification is updated to Finished
or Failed. Only orchestrations whose notification was created are touched.
"""

import logging
from datetime import datetime, timezone

from core.contracts import OperationState
from core.models import OperationStateChanged
from messaging import EventBroker
from notification.bundle import (
    BundleBuilder,
    NotificationParams,
    NotificationTenant,
    TenantMaintenanceState,
)
from repositories.base import OrchestrationStore

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


async def send_tenant_update(
    builder: BundleBuilder,
    orchestration_id: str,
    tenant: NotificationTenant,
) -> None:
    params = NotificationParams(orchestration_id=orchestration_id, tenants=[tenant])
    bundle = builder.new_bundle(orchestration_id, params)
    await bundle.update_notification_event()


class MaintenanceFinishedHandler:

    _STATES = {
        OperationState.SUCCEEDED: TenantMaintenanceState.FINISHED,
        OperationState.FAILED: TenantMaintenanceState.FAILED,
    }

    def __init__(self, orchestrations: OrchestrationStore, builder: BundleBuilder):
        self.orchestrations = orchestrations
        self.builder = builder

    def register(self, broker: EventBroker) -> None:
        broker.subscribe(OperationStateChanged, self.on_operation_state_changed)

    async def on_operation_state_changed(self, event: OperationStateChanged) -> None:
        operation = event.operation
        tenant_state = self._STATES.get(event.state)
        if tenant_state is None or not operation.orchestration_id:
            return
        if self.builder.disabled_check():
            return

        orchestration = await self.orchestrations.get(operation.orchestration_id)
        if not orchestration.notifications_created:
            return

        tenant = NotificationTenant(
            instance_id=operation.instance_id,
            state=tenant_state.value,
            end_date=datetime.now(timezone.utc).strftime(DATE_FORMAT),
        )
        await send_tenant_update(self.builder, orchestration.orchestration_id, tenant)
        logger.info(
            f"Notified {tenant_state.value} maintenance for instance {operation.instance_id} "
            f"(orchestration {orchestration.orchestration_id})"
        )


__all__ = [
    "DATE_FORMAT",
    "send_tenant_update",
    "MaintenanceFinishedHandler",
]
