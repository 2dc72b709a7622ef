# ============================================================================
# NOTIFICATION MODULE
# ============================================================================
# STATUS: Notification - Customer maintenance notifications
# PURPOSE: Bundle builders, HTTP client and event subscriber
# CREATED: 29 SEP 2026
# ============================================================================
"""
Notification Module

Usage:
    from notification import create_bundle_builder

    builder = create_bundle_builder(defaults.notification)
    if not builder.disabled_check():
        await builder.new_bundle(orchestration_id, params).create_notification_event()
"""

from core.config import NotificationDefaults

from .bundle import (
    Bundle,
    BundleBuilder,
    DisabledBundleBuilder,
    NotificationEventType,
    NotificationParams,
    NotificationTenant,
    TenantMaintenanceState,
)
from .client import HttpBundleBuilder, NotificationClient
from .handler import MaintenanceFinishedHandler, send_tenant_update


def create_bundle_builder(defaults: NotificationDefaults) -> BundleBuilder:
    """HTTP builder when a backend URL is configured and enabled, else disabled."""
    if defaults.disabled or not defaults.url:
        return DisabledBundleBuilder()
    return HttpBundleBuilder.from_defaults(defaults)


__all__ = [
    "Bundle",
    "BundleBuilder",
    "DisabledBundleBuilder",
    "NotificationEventType",
    "NotificationParams",
    "NotificationTenant",
    "TenantMaintenanceState",
    "HttpBundleBuilder",
    "NotificationClient",
    "MaintenanceFinishedHandler",
    "send_tenant_update",
    "create_bundle_builder",
]
