# ============================================================================
# ERROR TAXONOMY
# ============================================================================
# STATUS: Foundation - Exception hierarchy shared by stores and managers
# PURPOSE: Let callers choose between retry, backoff and abort
# CREATED: 21 SEP 2026
# ============================================================================
"""
Error taxonomy.

    NotFoundError     record missing (benign at restart, logged/skipped)
    ConflictError     stale-version write (caller reloads and retries)
    TemporaryError    transient collaborator failure (fixed short backoff)
    FatalError        validation/logic error (entity marked failed)

Any exception outside this hierarchy raised by a step is treated as fatal.
"""

from typing import Optional


class EngineError(Exception):
    """Base exception for engine errors."""
    pass


class NotFoundError(EngineError):
    """Raised when a record does not exist in the store."""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")


class ConflictError(EngineError):
    """Raised when a version-checked write finds a newer version stored."""

    def __init__(self, kind: str, record_id: str, expected_version: Optional[int] = None):
        self.kind = kind
        self.record_id = record_id
        self.expected_version = expected_version
        super().__init__(
            f"{kind} {record_id} was modified concurrently "
            f"(expected version {expected_version})"
        )


class TemporaryError(EngineError):
    """Transient failure of an external collaborator."""
    pass


class FatalError(EngineError):
    """Unrecoverable error. The owning entity is marked failed."""
    pass


class ExecutionNotFoundError(EngineError):
    """Raised by a strategy when an execution id is unknown or shut down."""

    def __init__(self, execution_id: str):
        self.execution_id = execution_id
        super().__init__(f"execution {execution_id} is not found or already shut down")


class NotificationError(EngineError):
    """Non-temporary failure reported by the notification backend."""
    pass


def is_temporary_error(err: BaseException) -> bool:
    """Check whether an error only warrants a short backoff."""
    return isinstance(err, TemporaryError)


__all__ = [
    "EngineError",
    "NotFoundError",
    "ConflictError",
    "TemporaryError",
    "FatalError",
    "ExecutionNotFoundError",
    "NotificationError",
    "is_temporary_error",
]
