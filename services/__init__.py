# ============================================================================
# SERVICES MODULE
# ============================================================================
# STATUS: Core - Application service layer
# PURPOSE: Campaign commands and startup recovery
# CREATED: 07 OCT 2026
# ============================================================================
"""
Services Module

Services sit between the API layer and the stores/queues.

Usage:
    from services import OrchestrationService, ReprocessService

    service = OrchestrationService(storage, orchestration_queue)
    orchestration = await service.create_orchestration(OrchestrationType.UPGRADE_KYMA, params)
"""

from .orchestration_service import OrchestrationService, RetryResult
from .reprocess_service import ReprocessService
from .engine import ORCHESTRATED_TYPES, FleetEngine

__all__ = [
    "OrchestrationService",
    "RetryResult",
    "ReprocessService",
    "FleetEngine",
    "ORCHESTRATED_TYPES",
]
