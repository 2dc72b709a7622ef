# ============================================================================
# NOTIFICATION BUNDLE CONTRACTS
# ============================================================================
# STATUS: Notification - Builder/bundle interfaces and payload models
# PURPOSE: Customer maintenance notifications for fleet campaigns
# CREATED: 29 SEP 2026
# ============================================================================
"""
Notification Bundle Contracts

A BundleBuilder turns an orchestration id plus a tenant list into a Bundle;
the Bundle talks to the notification backend:

    create_notification_event()   announce maintenance for every tenant
    update_notification_event()   report progress of individual tenants
    cancel_notification_event()   withdraw the announcement

Implementations raise TemporaryError for transient backend failures and
NotificationError for everything the backend rejects.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from core.contracts import OrchestrationType


class NotificationEventType(str, Enum):
    KYMA_MAINTENANCE = "kymamaintenance"
    KUBERNETES_MAINTENANCE = "kubernetesmaintenance"

    @classmethod
    def for_orchestration(cls, orchestration_type: OrchestrationType) -> "NotificationEventType":
        if orchestration_type == OrchestrationType.UPGRADE_CLUSTER:
            return cls.KUBERNETES_MAINTENANCE
        return cls.KYMA_MAINTENANCE


class TenantMaintenanceState(str, Enum):
    STARTED = "Started"
    FINISHED = "Finished"
    FAILED = "Failed"


class NotificationTenant(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    instance_id: str = Field(..., alias="instanceId")
    start_date: str = Field(default="", alias="startDate")
    end_date: str = Field(default="", alias="endDate")
    state: str = Field(default="")


class NotificationParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    orchestration_id: str = Field(..., alias="orchestrationId")
    event_type: str = Field(default="", alias="eventType")
    tenants: List[NotificationTenant] = Field(default_factory=list)


class Bundle(ABC):
    """One notification request against the backend."""

    @abstractmethod
    async def create_notification_event(self) -> None:
        pass

    @abstractmethod
    async def update_notification_event(self) -> None:
        pass

    @abstractmethod
    async def cancel_notification_event(self) -> None:
        pass


class BundleBuilder(ABC):

    @abstractmethod
    def disabled_check(self) -> bool:
        """True when notifications are switched off."""

    @abstractmethod
    def new_bundle(self, orchestration_id: str, params: NotificationParams) -> Bundle:
        pass

    async def close(self) -> None:
        """Release client resources at shutdown."""
        return None


class DisabledBundle(Bundle):
    async def create_notification_event(self) -> None:
        return None

    async def update_notification_event(self) -> None:
        return None

    async def cancel_notification_event(self) -> None:
        return None


class DisabledBundleBuilder(BundleBuilder):
    """Builder used when no notification backend is configured."""

    def disabled_check(self) -> bool:
        return True

    def new_bundle(self, orchestration_id: str, params: NotificationParams) -> Bundle:
        return DisabledBundle()


__all__ = [
    "NotificationEventType",
    "TenantMaintenanceState",
    "NotificationTenant",
    "NotificationParams",
    "Bundle",
    "BundleBuilder",
    "DisabledBundle",
    "DisabledBundleBuilder",
]
