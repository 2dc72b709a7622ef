# ============================================================================
# PROCESS MODULE
# ============================================================================
# STATUS: Core - Single-operation processing
# PURPOSE: Steps, staged pipelines and the worker queue
# CREATED: 27 SEP 2026
# ============================================================================
"""
Process Module

Usage:
    from process import Queue, StagedManager

    manager = StagedManager(OperationType.PROVISION, storage.operations, broker)
    queue = Queue(manager, "provision")
    queue.run(stop_event, workers=5)
    queue.add(operation_id)
"""

from .queue import Executor, Queue
from .staged_manager import Stage, StagedManager, StepEntry
from .step import Step, StepDependencies, StepResult

__all__ = [
    "Executor",
    "Queue",
    "Stage",
    "StagedManager",
    "StepEntry",
    "Step",
    "StepDependencies",
    "StepResult",
]
