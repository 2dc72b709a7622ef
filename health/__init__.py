# ============================================================================
# HEALTH CHECK MODULE
# ============================================================================
# STATUS: Infrastructure - Health checks for probes and monitoring
# PURPOSE: /livez, /readyz and /health backed by pluggable checks
# CREATED: 09 OCT 2026
# ============================================================================
"""
Health Check Module

Usage:
    from health import health_router, get_registry, StorageCheck

    app.include_router(health_router)
    get_registry().register(StorageCheck(storage))
"""

from health.checks import NotificationCheck, QueueCheck, StorageCheck
from health.core import (
    AggregatedHealthResult,
    HealthCheckCategory,
    HealthCheckPlugin,
    HealthCheckRegistry,
    HealthCheckResult,
    HealthStatus,
    get_registry,
)
from health.router import health_router

__all__ = [
    "AggregatedHealthResult",
    "HealthCheckCategory",
    "HealthCheckPlugin",
    "HealthCheckRegistry",
    "HealthCheckResult",
    "HealthStatus",
    "get_registry",
    "health_router",
    "NotificationCheck",
    "QueueCheck",
    "StorageCheck",
]
