# ============================================================================
# API ROUTES
# ============================================================================
# STATUS: Core - FastAPI route definitions
# PURPOSE: HTTP endpoints for fleet campaigns and operations
# CREATED: 10 OCT 2026
# ============================================================================
"""
API Routes

Mounted under /api/v1 by main.py. Handlers only translate between HTTP and
the OrchestrationService; the orchestration queue does the work.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query

from core.contracts import OperationState, OrchestrationState, OrchestrationType
from core.errors import ConflictError, NotFoundError
from core.models import OrchestrationParameters
from .schemas import (
    ErrorResponse,
    OperationListResponse,
    OperationResponse,
    OrchestrationCreate,
    OrchestrationDetailResponse,
    OrchestrationListResponse,
    OrchestrationResponse,
    RetryRequest,
    RetryResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# DEPENDENCY INJECTION
# ============================================================================
# Set by the main app at startup

_orchestration_service = None
_metrics = None
_queues = None


def set_services(orchestration_service, metrics=None, queues=None):
    """Set service instances for dependency injection."""
    global _orchestration_service, _metrics, _queues
    _orchestration_service = orchestration_service
    _metrics = metrics
    _queues = queues


def get_orchestration_service():
    if _orchestration_service is None:
        raise HTTPException(500, "Services not initialized")
    return _orchestration_service


# ============================================================================
# ORCHESTRATIONS
# ============================================================================

@router.post(
    "/orchestrations",
    response_model=OrchestrationResponse,
    status_code=201,
    tags=["Orchestrations"],
    responses={400: {"model": ErrorResponse, "description": "Invalid request"}},
)
async def create_orchestration(request: OrchestrationCreate):
    """
    Start a fleet campaign.

    Returns immediately with the orchestration id; the campaign runs in the
    background. Poll GET /orchestrations/{id} to monitor progress.
    """
    if not request.targets.include:
        raise HTTPException(400, "targets.include must not be empty")

    service = get_orchestration_service()
    parameters = OrchestrationParameters(
        targets=request.targets,
        strategy=request.strategy,
        version=request.version,
        dry_run=request.dry_run,
    )
    orchestration = await service.create_orchestration(
        request.type, parameters, description=request.description
    )
    return OrchestrationResponse.from_orchestration(orchestration)


@router.get("/orchestrations", response_model=OrchestrationListResponse, tags=["Orchestrations"])
async def list_orchestrations(
    state: Optional[List[OrchestrationState]] = Query(None, description="Filter by state"),
    type: Optional[List[OrchestrationType]] = Query(None, description="Filter by type"),
    limit: int = Query(100, ge=1, le=1000),
):
    service = get_orchestration_service()
    orchestrations = await service.list_orchestrations(states=state or (), types=type or (), limit=limit)
    return OrchestrationListResponse(
        orchestrations=[OrchestrationResponse.from_orchestration(o) for o in orchestrations],
        total=len(orchestrations),
    )


@router.get(
    "/orchestrations/{orchestration_id}",
    response_model=OrchestrationDetailResponse,
    tags=["Orchestrations"],
    responses={404: {"model": ErrorResponse}},
)
async def get_orchestration(orchestration_id: str):
    service = get_orchestration_service()
    try:
        orchestration = await service.get_orchestration(orchestration_id)
    except NotFoundError:
        raise HTTPException(404, f"Orchestration not found: {orchestration_id}")
    return OrchestrationDetailResponse.from_orchestration(orchestration)


@router.get(
    "/orchestrations/{orchestration_id}/operations",
    response_model=OperationListResponse,
    tags=["Orchestrations"],
    responses={404: {"model": ErrorResponse}},
)
async def list_orchestration_operations(
    orchestration_id: str,
    state: Optional[List[OperationState]] = Query(None, description="Filter by state"),
    limit: int = Query(1000, ge=1, le=10000),
):
    """Per-state counts and the operations of one campaign."""
    service = get_orchestration_service()
    try:
        stats, operations = await service.list_operations(orchestration_id, states=state or (), limit=limit)
    except NotFoundError:
        raise HTTPException(404, f"Orchestration not found: {orchestration_id}")

    return OperationListResponse(
        orchestration_id=orchestration_id,
        stats={s.value: count for s, count in stats.items()},
        operations=[OperationResponse.from_operation(op) for op in operations],
        total=len(operations),
    )


@router.put(
    "/orchestrations/{orchestration_id}/cancel",
    response_model=OrchestrationResponse,
    tags=["Orchestrations"],
    responses={404: {"model": ErrorResponse}, 400: {"model": ErrorResponse}},
)
async def cancel_orchestration(orchestration_id: str):
    """
    Request cancellation.

    Pending operations never start; operations in progress finish their
    current stage. The campaign ends as canceled once none is in progress.
    """
    service = get_orchestration_service()
    try:
        orchestration = await service.cancel_orchestration(orchestration_id)
    except NotFoundError:
        raise HTTPException(404, f"Orchestration not found: {orchestration_id}")
    except ValueError as e:
        raise HTTPException(400, str(e))
    except ConflictError as e:
        raise HTTPException(409, str(e))
    return OrchestrationResponse.from_orchestration(orchestration)


@router.post(
    "/orchestrations/{orchestration_id}/retry",
    response_model=RetryResponse,
    status_code=202,
    tags=["Orchestrations"],
    responses={404: {"model": ErrorResponse}, 400: {"model": ErrorResponse}},
)
async def retry_orchestration(orchestration_id: str, request: RetryRequest):
    """Retry failed operations, all of them when no ids are given."""
    service = get_orchestration_service()
    try:
        result = await service.retry_orchestration(
            orchestration_id, request.operation_ids, immediate=request.immediate
        )
    except NotFoundError:
        raise HTTPException(404, f"Orchestration not found: {orchestration_id}")
    except ValueError as e:
        raise HTTPException(400, str(e))
    except ConflictError as e:
        raise HTTPException(409, str(e))

    return RetryResponse(
        orchestration_id=orchestration_id,
        state=result.orchestration.state,
        retried=result.retried,
        skipped=result.skipped,
    )


# ============================================================================
# OPERATIONS
# ============================================================================

@router.get(
    "/operations/{operation_id}",
    response_model=OperationResponse,
    tags=["Operations"],
    responses={404: {"model": ErrorResponse}},
)
async def get_operation(operation_id: str):
    service = get_orchestration_service()
    try:
        operation = await service.get_operation(operation_id)
    except NotFoundError:
        raise HTTPException(404, f"Operation not found: {operation_id}")
    return OperationResponse.from_operation(operation)


# ============================================================================
# ENGINE STATUS
# ============================================================================

@router.get("/engine/status", tags=["Engine"])
async def get_engine_status():
    """Queue statistics and event metrics."""
    return {
        "queues": {name: queue.stats for name, queue in (_queues or {}).items()},
        "metrics": _metrics.snapshot() if _metrics is not None else {},
    }


__all__ = ["router", "set_services"]
