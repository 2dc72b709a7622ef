# ============================================================================
# ENGINE HEALTH CHECKS
# ============================================================================
# STATUS: Infrastructure - Checks for storage, queues and notifications
# PURPOSE: Feed /readyz and /health
# CREATED: 09 OCT 2026
# ============================================================================
"""
Engine Health Checks

    storage        the orchestration store answers a list query
    queues         every worker queue is running
    notification   backend configured (informational, not required)
"""

import logging
from typing import Mapping

from health.core import HealthCheckCategory, HealthCheckPlugin, HealthCheckResult
from notification.bundle import BundleBuilder
from process.queue import Queue
from repositories.base import OrchestrationFilter, Storage

logger = logging.getLogger(__name__)


class StorageCheck(HealthCheckPlugin):
    name = "storage"
    category = HealthCheckCategory.STORAGE

    def __init__(self, storage: Storage):
        self.storage = storage

    async def check(self) -> HealthCheckResult:
        try:
            await self.storage.orchestrations.list(OrchestrationFilter(limit=1))
        except Exception as e:
            return HealthCheckResult.unhealthy(
                f"Storage query failed: {e}",
                backend=type(self.storage.orchestrations).__name__,
            )
        return HealthCheckResult.healthy(
            "Storage reachable",
            backend=type(self.storage.orchestrations).__name__,
        )


class QueueCheck(HealthCheckPlugin):
    name = "queues"
    timeout_seconds = 1.0

    def __init__(self, queues: Mapping[str, Queue]):
        self.queues = queues

    async def check(self) -> HealthCheckResult:
        stopped = [name for name, queue in self.queues.items() if not queue.is_running]
        stats = {name: queue.stats for name, queue in self.queues.items()}
        if stopped:
            return HealthCheckResult.unhealthy(f"Queues not running: {', '.join(stopped)}", queues=stats)
        return HealthCheckResult.healthy(f"{len(self.queues)} queues running", queues=stats)


class NotificationCheck(HealthCheckPlugin):
    name = "notification"
    category = HealthCheckCategory.EXTERNAL
    required_for_ready = False

    def __init__(self, builder: BundleBuilder):
        self.builder = builder

    async def check(self) -> HealthCheckResult:
        if self.builder.disabled_check():
            return HealthCheckResult.degraded("Customer notifications are disabled")
        return HealthCheckResult.healthy("Customer notifications enabled")


__all__ = ["StorageCheck", "QueueCheck", "NotificationCheck"]
