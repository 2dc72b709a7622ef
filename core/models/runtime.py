# ============================================================================
# RUNTIME MODELS
# ============================================================================
# STATUS: Core model - Service instances and runtime descriptors
# PURPOSE: Describe the clusters a fleet campaign targets
# CREATED: 21 SEP 2026
# EXPORTS: Instance, Runtime, RuntimeOperation
# DEPENDENCIES: pydantic
# ============================================================================
"""
Runtime Models

An Instance is the broker-side record of one provisioned service instance.
A Runtime is the descriptor the orchestration engine works with: identity,
plan/region for policy matching, and the computed maintenance window.

RuntimeOperation pairs a Runtime with the per-runtime Operation created for
it. It is recomputed on every resolution and never stored on its own.
"""

from datetime import datetime, timezone
from typing import ClassVar, Dict, List, Optional

from pydantic import BaseModel, Field


class Instance(BaseModel):
    """
    Provisioned service instance.

    Maps to: fleet.instances table
    """

    __sql_table__: ClassVar[str] = "instances"

    instance_id: str = Field(..., max_length=64)
    runtime_id: str = Field(default="", max_length=64)
    global_account_id: str = Field(default="", max_length=64)
    subaccount_id: str = Field(default="", max_length=64)
    plan_id: str = Field(default="", max_length=64)
    plan_name: str = Field(default="", max_length=64)
    region: str = Field(default="", max_length=64)
    provider: str = Field(default="", max_length=32)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_runtime(self) -> "Runtime":
        """Build a runtime descriptor with an empty maintenance window."""
        return Runtime(
            instance_id=self.instance_id,
            runtime_id=self.runtime_id,
            global_account_id=self.global_account_id,
            subaccount_id=self.subaccount_id,
            plan=self.plan_name,
            region=self.region,
        )


class Runtime(BaseModel):
    """Target runtime of an orchestration plus its maintenance window."""

    instance_id: str
    runtime_id: str = ""
    global_account_id: str = ""
    subaccount_id: str = ""
    plan: str = ""
    region: str = ""

    # Zero window (None/None) means "no constraint"
    maintenance_window_begin: Optional[datetime] = None
    maintenance_window_end: Optional[datetime] = None
    maintenance_days: List[str] = Field(default_factory=list)

    def has_window(self) -> bool:
        return self.maintenance_window_begin is not None and self.maintenance_window_end is not None

    def clear_window(self) -> None:
        self.maintenance_window_begin = None
        self.maintenance_window_end = None
        self.maintenance_days = []


class RuntimeOperation(BaseModel):
    """Transient pairing of a runtime with its underlying operation."""

    operation_id: str
    runtime: Runtime
    dry_run: bool = False

    @property
    def instance_id(self) -> str:
        return self.runtime.instance_id

    def tenant_dates(self, use_window: bool) -> Dict[str, str]:
        """Start/end dates reported to customers for this runtime."""
        if use_window and self.runtime.has_window():
            return {
                "start_date": self.runtime.maintenance_window_begin.strftime("%Y-%m-%d %H:%M:%S"),
                "end_date": self.runtime.maintenance_window_end.strftime("%Y-%m-%d %H:%M:%S"),
            }
        return {
            "start_date": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
            "end_date": "",
        }


__all__ = [
    "Instance",
    "Runtime",
    "RuntimeOperation",
]
