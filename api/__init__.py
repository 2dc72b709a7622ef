# ============================================================================
# API MODULE
# ============================================================================
# STATUS: Core - FastAPI routes
# PURPOSE: HTTP API for fleet campaigns
# CREATED: 10 OCT 2026
# ============================================================================
"""
API Module

FastAPI routes for the runtime fleet engine.
"""

from .routes import router, set_services
from .schemas import (
    OperationResponse,
    OrchestrationCreate,
    OrchestrationResponse,
    RetryRequest,
)

__all__ = [
    "router",
    "set_services",
    "OperationResponse",
    "OrchestrationCreate",
    "OrchestrationResponse",
    "RetryRequest",
]
