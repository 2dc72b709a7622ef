# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for queues, timeouts, orchestration, storage
# CREATED: 23 SEP 2026
# ============================================================================
"""
Configuration Defaults

Provides sensible defaults for the operation engine.
These can be overridden via environment variables.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides
- Type-safe access
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from core.contracts import OperationType


def _env_bool(name: str, default: bool = False) -> bool:
    return os.getenv(name, str(default)).lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class QueueDefaults:
    """
    Worker pool sizes.

    Orchestration workers hold a slot for a whole campaign, so they get a
    small pool of their own.
    """
    operation_workers: Dict[OperationType, int] = field(default_factory=lambda: {
        OperationType.PROVISION: 60,
        OperationType.DEPROVISION: 5,
        OperationType.UPDATE: 20,
    })
    default_operation_workers: int = 5
    orchestration_workers: int = 3
    speed_factor: int = 1  # Test-only: divides every reschedule delay

    def workers_for(self, operation_type: OperationType) -> int:
        return self.operation_workers.get(operation_type, self.default_operation_workers)

    @classmethod
    def from_env(cls) -> "QueueDefaults":
        """Create from environment variables."""
        return cls(
            operation_workers={
                OperationType.PROVISION: int(os.getenv("PROVISIONING_WORKERS", 60)),
                OperationType.DEPROVISION: int(os.getenv("DEPROVISIONING_WORKERS", 5)),
                OperationType.UPDATE: int(os.getenv("UPDATE_WORKERS", 20)),
            },
            default_operation_workers=int(os.getenv("OPERATION_WORKERS", 5)),
            orchestration_workers=int(os.getenv("ORCHESTRATION_WORKERS", 3)),
            speed_factor=int(os.getenv("SPEED_FACTOR", 1)),
        )


@dataclass(frozen=True)
class TimeoutDefaults:
    """
    Defaults for operation timing (seconds).
    """
    # Wall-clock limit for one operation since creation
    operation_timeout: float = 24 * 60 * 60
    # Backoff after a TemporaryError
    temporary_backoff: float = 5.0
    # Retry delay after a transient store read error
    store_retry: float = 3.0
    # Retry delay after a conflicting stage/state write
    conflict_retry: float = 1.0

    @classmethod
    def from_env(cls) -> "TimeoutDefaults":
        """Create from environment variables."""
        return cls(
            operation_timeout=float(os.getenv("OPERATION_TIMEOUT_SECONDS", 24 * 60 * 60)),
            temporary_backoff=float(os.getenv("TEMPORARY_BACKOFF_SECONDS", 5.0)),
        )


@dataclass(frozen=True)
class OrchestrationDefaults:
    """
    Defaults for fleet campaigns.
    """
    polling_interval: float = 60.0
    not_found_backoff: float = 60.0
    maintenance_policy_path: str = ""
    # Extra delay when a window already closed; 0 means "next allowed day"
    reschedule_delay: float = 0.0
    kyma_version: str = ""
    kubernetes_version: str = ""

    @classmethod
    def from_env(cls) -> "OrchestrationDefaults":
        """Create from environment variables."""
        return cls(
            polling_interval=float(os.getenv("ORCHESTRATION_POLLING_INTERVAL", 60.0)),
            not_found_backoff=float(os.getenv("ORCHESTRATION_NOT_FOUND_BACKOFF", 60.0)),
            maintenance_policy_path=os.getenv("MAINTENANCE_POLICY_PATH", ""),
            reschedule_delay=float(os.getenv("ORCHESTRATION_RESCHEDULE_DELAY", 0.0)),
            kyma_version=os.getenv("KYMA_VERSION", ""),
            kubernetes_version=os.getenv("KUBERNETES_VERSION", ""),
        )


@dataclass(frozen=True)
class NotificationDefaults:
    """
    Customer notification backend.
    """
    disabled: bool = True
    url: str = ""
    timeout_seconds: float = 10.0

    @classmethod
    def from_env(cls) -> "NotificationDefaults":
        """Create from environment variables."""
        return cls(
            disabled=_env_bool("NOTIFICATION_DISABLED", True),
            url=os.getenv("NOTIFICATION_URL", ""),
            timeout_seconds=float(os.getenv("NOTIFICATION_TIMEOUT_SECONDS", 10.0)),
        )


@dataclass(frozen=True)
class StorageDefaults:
    """
    Storage backend selection. Without a database URL the in-memory store
    is used (development only, nothing survives a restart).
    """
    database_url: str = ""
    schema: str = "fleet"
    pipelines_path: str = "pipelines.yaml"
    reprocess_on_startup: bool = True

    @property
    def use_database(self) -> bool:
        return bool(self.database_url)

    @classmethod
    def from_env(cls) -> "StorageDefaults":
        """Create from environment variables."""
        return cls(
            database_url=os.getenv("DATABASE_URL", ""),
            schema=os.getenv("DATABASE_SCHEMA", "fleet"),
            pipelines_path=os.getenv("PIPELINES_PATH", "pipelines.yaml"),
            reprocess_on_startup=_env_bool("REPROCESS_ON_STARTUP", True),
        )


# ============================================================================
# GLOBAL DEFAULTS INSTANCE
# ============================================================================

@dataclass
class Defaults:
    """Container for all default configurations."""
    queues: QueueDefaults = field(default_factory=QueueDefaults)
    timeouts: TimeoutDefaults = field(default_factory=TimeoutDefaults)
    orchestration: OrchestrationDefaults = field(default_factory=OrchestrationDefaults)
    notification: NotificationDefaults = field(default_factory=NotificationDefaults)
    storage: StorageDefaults = field(default_factory=StorageDefaults)

    @classmethod
    def from_env(cls) -> "Defaults":
        """Create all defaults from environment variables."""
        return cls(
            queues=QueueDefaults.from_env(),
            timeouts=TimeoutDefaults.from_env(),
            orchestration=OrchestrationDefaults.from_env(),
            notification=NotificationDefaults.from_env(),
            storage=StorageDefaults.from_env(),
        )


_defaults: Optional[Defaults] = None


def get_defaults() -> Defaults:
    """Get global defaults instance."""
    global _defaults
    if _defaults is None:
        _defaults = Defaults.from_env()
    return _defaults


def reset_defaults() -> None:
    """Reset defaults (for testing)."""
    global _defaults
    _defaults = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "QueueDefaults",
    "TimeoutDefaults",
    "OrchestrationDefaults",
    "NotificationDefaults",
    "StorageDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
