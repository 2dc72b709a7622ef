# ============================================================================
# STRUCTURED LOGGING
# ============================================================================
# STATUS: Core - Structured logging with context
# PURPOSE: Consistent, queryable logging across managers, queues and API
# CREATED: 21 SEP 2026
# ============================================================================
"""
Structured Logging

Every log line carries the identifiers of the work it belongs to: the
operation, its orchestration, the runtime instance, the step and the queue
worker. Those are pushed with log_context() around the unit of work and
picked up by both formatters.

Context lives in a ContextVar, so each asyncio task (queue worker, strategy
worker) sees only the fields pushed inside it and never a sibling's.

Usage:
    from core.logging import get_logger, log_context

    logger = get_logger(__name__, ComponentType.QUEUE)

    with log_context(operation_id="op-123", step="Starting"):
        logger.info("Running step")

Set LOG_FORMAT=json for one JSON object per line (log aggregation).
"""

import json
import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple, Union


class ComponentType(str, Enum):
    STAGED_MANAGER = "staged_manager"
    QUEUE = "queue"
    ORCHESTRATOR = "orchestrator"
    STRATEGY = "strategy"
    NOTIFICATION = "notification"
    API = "api"
    REPOSITORY = "repository"
    SERVICE = "service"


@dataclass(frozen=True)
class LogContext:
    """Identifiers attached to every record logged inside log_context()."""
    operation_id: Optional[str] = None
    orchestration_id: Optional[str] = None
    instance_id: Optional[str] = None
    step: Optional[str] = None
    worker_id: Optional[str] = None
    component: Optional[str] = None
    # Operation or orchestration type
    operation: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Set fields only, extra flattened in."""
        result = {k: v for k, v in asdict(self).items() if k != "extra" and v is not None}
        result.update(self.extra)
        return result


_FIELD_NAMES = frozenset(f.name for f in fields(LogContext)) - {"extra"}

_context_stack: ContextVar[Tuple[LogContext, ...]] = ContextVar("log_context_stack", default=())


def get_current_context() -> LogContext:
    stack = _context_stack.get()
    return stack[-1] if stack else LogContext()


@contextmanager
def log_context(extra: Optional[Dict[str, Any]] = None, **kwargs) -> Iterator[LogContext]:
    """
    Push context fields for the duration of the block.

    Known LogContext fields override the enclosing context; anything else
    (and `extra`) is merged into the free-form extra dict.

    Example:
        with log_context(orchestration_id="orch-1"):
            with log_context(operation_id="op-2", extra={"attempt": 2}):
                logger.info("Processing operation")
    """
    parent = get_current_context()
    known = {k: v for k, v in kwargs.items() if k in _FIELD_NAMES}
    unknown = {k: v for k, v in kwargs.items() if k not in _FIELD_NAMES}
    context = replace(parent, **known, extra={**parent.extra, **(extra or {}), **unknown})

    token = _context_stack.set(_context_stack.get() + (context,))
    try:
        yield context
    finally:
        _context_stack.reset(token)


# ============================================================================
# FORMATTERS
# ============================================================================

def _timestamp() -> datetime:
    return datetime.now(timezone.utc)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def __init__(self, include_context: bool = True, include_source: bool = True):
        super().__init__()
        self.include_context = include_context
        self.include_source = include_source

    def format(self, record: logging.LogRecord) -> str:
        data: Dict[str, Any] = {
            "timestamp": _timestamp().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.include_context:
            context = get_current_context().to_dict()
            if context:
                data["context"] = context
        record_extra = getattr(record, "extra", None)
        if record_extra:
            data["data"] = record_extra
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        if self.include_source:
            data["source"] = {"file": record.filename, "line": record.lineno, "function": record.funcName}
        return json.dumps(data, default=str)


class HumanFormatter(logging.Formatter):
    """Single-line format for terminals, with the main ids inline."""

    _INLINE_FIELDS = (
        ("orchestration_id", "orch"),
        ("operation_id", "op"),
        ("step", "step"),
    )

    def format(self, record: logging.LogRecord) -> str:
        context = get_current_context()
        inline = ", ".join(
            f"{label}={getattr(context, attr)}"
            for attr, label in self._INLINE_FIELDS
            if getattr(context, attr)
        )
        line = (
            f"{_timestamp():%Y-%m-%d %H:%M:%S} {record.levelname:<8} {record.name}"
            f"{f' [{inline}]' if inline else ''}: {record.getMessage()}"
        )
        record_extra = getattr(record, "extra", None)
        if record_extra:
            line += f" {record_extra}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class ContextLogger(logging.LoggerAdapter):
    """Adapter that snapshots the current context into record.extra."""

    def process(self, msg, kwargs):
        data = {**kwargs.get("extra", {}), **get_current_context().to_dict()}
        component = self.extra.get("component")
        if component is not None:
            data.setdefault("component", component.value)
        kwargs["extra"] = {"extra": data}
        return msg, kwargs


def get_logger(name: str, component: Optional[ComponentType] = None) -> ContextLogger:
    return ContextLogger(logging.getLogger(name), {"component": component})


def configure_logging(level: Union[str, int] = "INFO", json_output: bool = False) -> None:
    """
    Install one stdout handler on the root logger.

    Args:
        level: Log level name or number
        json_output: JSON lines instead of the human format; LOG_FORMAT=json
            has the same effect
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    use_json = json_output or os.getenv("LOG_FORMAT", "").lower() == "json"

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if use_json else HumanFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)

    # psycopg_pool logs every connection check at INFO
    logging.getLogger("psycopg.pool").setLevel(max(level, logging.WARNING))


__all__ = [
    "ComponentType",
    "LogContext",
    "StructuredFormatter",
    "HumanFormatter",
    "ContextLogger",
    "get_logger",
    "configure_logging",
    "log_context",
    "get_current_context",
]
