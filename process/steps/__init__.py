# ============================================================================
# ENGINE STEPS
# ============================================================================
# STATUS: Process - Steps shared by every pipeline
# PURPOSE: Export built-in steps referenced from pipelines.yaml
# CREATED: 30 SEP 2026
# ============================================================================

from .cancel_guard import OrchestrationCancelGuardStep
from .notification import NotifyMaintenanceStartedStep
from .start import StartStep
from .upgrade import InitialiseUpgradeStep

__all__ = [
    "OrchestrationCancelGuardStep",
    "NotifyMaintenanceStartedStep",
    "StartStep",
    "InitialiseUpgradeStep",
]
