# ============================================================================
# HEALTH CHECK CORE TYPES
# ============================================================================
# STATUS: Infrastructure - Health check plugin interface and registry
# PURPOSE: Result types, check base class and the process-wide registry
# CREATED: 09 OCT 2026
# ============================================================================
"""
Health Check Core Types

Status hierarchy (worst wins):
- healthy: all systems operational
- degraded: operational with warnings
- unhealthy: critical failure

Checks marked required_for_ready gate /readyz; every check runs on /health.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    """Health check status values."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"

    @property
    def severity(self) -> int:
        return {
            HealthStatus.HEALTHY: 0,
            HealthStatus.DEGRADED: 1,
            HealthStatus.UNHEALTHY: 2,
        }[self]

    @classmethod
    def aggregate(cls, statuses: List["HealthStatus"]) -> "HealthStatus":
        """Aggregate multiple statuses (worst wins)."""
        if not statuses:
            return cls.HEALTHY
        return max(statuses, key=lambda s: s.severity)


class HealthCheckCategory(str, Enum):
    STORAGE = "storage"
    APPLICATION = "application"
    EXTERNAL = "external"


@dataclass
class HealthCheckResult:
    """Result from a single health check."""
    status: HealthStatus
    message: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    duration_ms: float = 0.0
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def healthy(cls, message: str = None, **details) -> "HealthCheckResult":
        return cls(status=HealthStatus.HEALTHY, message=message, details=details)

    @classmethod
    def degraded(cls, message: str, **details) -> "HealthCheckResult":
        return cls(status=HealthStatus.DEGRADED, message=message, details=details)

    @classmethod
    def unhealthy(cls, message: str, **details) -> "HealthCheckResult":
        return cls(status=HealthStatus.UNHEALTHY, message=message, details=details)

    @classmethod
    def from_exception(cls, e: Exception) -> "HealthCheckResult":
        return cls(
            status=HealthStatus.UNHEALTHY,
            message=str(e),
            details={"exception_type": type(e).__name__},
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "status": self.status.value,
            "duration_ms": round(self.duration_ms, 2),
        }
        if self.message:
            result["message"] = self.message
        if self.details:
            result["details"] = self.details
        return result


@dataclass
class AggregatedHealthResult:
    status: HealthStatus
    checks: Dict[str, HealthCheckResult]
    total_duration_ms: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "checks": {name: result.to_dict() for name, result in self.checks.items()},
            "total_duration_ms": round(self.total_duration_ms, 2),
        }


class HealthCheckPlugin(ABC):
    """
    Base class for health checks.

    Attributes:
        name: Unique identifier for the check
        category: Grouping shown in the /health response
        timeout_seconds: Max execution time before the check counts as failed
        required_for_ready: If True, failure blocks /readyz
    """

    name: str = "unnamed"
    category: HealthCheckCategory = HealthCheckCategory.APPLICATION
    timeout_seconds: float = 5.0
    required_for_ready: bool = True

    @abstractmethod
    async def check(self) -> HealthCheckResult:
        pass


# ============================================================================
# REGISTRY
# ============================================================================

class HealthCheckRegistry:
    """Named health checks, run concurrently with per-check timeouts."""

    def __init__(self):
        self._checks: Dict[str, HealthCheckPlugin] = {}

    def register(self, check: HealthCheckPlugin) -> None:
        if check.name in self._checks:
            logger.warning(f"Overwriting health check: {check.name}")
        self._checks[check.name] = check

    def get(self, name: str) -> Optional[HealthCheckPlugin]:
        return self._checks.get(name)

    def clear(self) -> None:
        self._checks.clear()

    def __len__(self) -> int:
        return len(self._checks)

    async def run(self, required_only: bool = False) -> AggregatedHealthResult:
        checks = [
            c for c in self._checks.values()
            if c.required_for_ready or not required_only
        ]
        started = time.monotonic()
        results = await asyncio.gather(*(self._run_one(c) for c in checks))
        return AggregatedHealthResult(
            status=HealthStatus.aggregate([r.status for r in results]),
            checks={c.name: r for c, r in zip(checks, results)},
            total_duration_ms=(time.monotonic() - started) * 1000,
        )

    async def _run_one(self, check: HealthCheckPlugin) -> HealthCheckResult:
        started = time.monotonic()
        try:
            result = await asyncio.wait_for(check.check(), timeout=check.timeout_seconds)
        except asyncio.TimeoutError:
            result = HealthCheckResult.unhealthy(f"timed out after {check.timeout_seconds}s")
        except Exception as e:
            logger.warning(f"Health check {check.name} raised: {e}")
            result = HealthCheckResult.from_exception(e)
        result.duration_ms = (time.monotonic() - started) * 1000
        return result


_registry: Optional[HealthCheckRegistry] = None


def get_registry() -> HealthCheckRegistry:
    """Get the global health check registry."""
    global _registry
    if _registry is None:
        _registry = HealthCheckRegistry()
    return _registry


__all__ = [
    "HealthStatus",
    "HealthCheckCategory",
    "HealthCheckResult",
    "AggregatedHealthResult",
    "HealthCheckPlugin",
    "HealthCheckRegistry",
    "get_registry",
]
