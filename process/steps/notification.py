# ============================================================================
# NOTIFY MAINTENANCE STARTED STEP
# ============================================================================
# STATUS: Process - Customer notification glue
# PURPOSE: Tell the tenant their maintenance has started
# CREATED: 30 SEP 2026
# ============================================================================
"""
Notify Maintenance Started

Only orchestrated operations whose orchestration created a notification
send anything. The payload flag keeps re-runs from notifying twice.
"""

import logging
from datetime import datetime, timezone

from core.models import Operation
from notification.bundle import NotificationTenant, TenantMaintenanceState
from notification.handler import DATE_FORMAT, send_tenant_update
from process.step import Step, StepDependencies, StepResult

logger = logging.getLogger(__name__)

NOTIFIED_FLAG = "maintenance_started_notified"


class NotifyMaintenanceStartedStep(Step):

    def __init__(self, deps: StepDependencies):
        self.operations = deps.storage.operations
        self.orchestrations = deps.storage.orchestrations
        self.builder = deps.bundle_builder

    @property
    def name(self) -> str:
        return "Notify_Maintenance_Started"

    async def run(self, operation: Operation) -> StepResult:
        if not operation.orchestration_id or operation.payload.get(NOTIFIED_FLAG):
            return operation, 0
        if self.builder is None or self.builder.disabled_check():
            return operation, 0

        orchestration = await self.orchestrations.get(operation.orchestration_id)
        if not orchestration.notifications_created:
            return operation, 0

        tenant = NotificationTenant(
            instance_id=operation.instance_id,
            state=TenantMaintenanceState.STARTED.value,
            start_date=datetime.now(timezone.utc).strftime(DATE_FORMAT),
        )
        await send_tenant_update(self.builder, orchestration.orchestration_id, tenant)

        operation.payload[NOTIFIED_FLAG] = True
        operation = await self.operations.update(operation)
        logger.info(f"Notified maintenance start for instance {operation.instance_id}")
        return operation, 0


__all__ = ["NOTIFIED_FLAG", "NotifyMaintenanceStartedStep"]
