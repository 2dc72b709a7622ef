# ============================================================================
# STEP CONTRACT
# ============================================================================
# STATUS: Core - Unit of work inside an operation pipeline
# PURPOSE: Interface every pipeline step implements
# CREATED: 27 SEP 2026
# ============================================================================
"""
Step Contract

A Step is one idempotent unit of work. It receives the current Operation and
returns the (possibly modified) operation plus a delay in seconds:

    delay == 0   step finished, continue with the next step
    delay  > 0   not finished yet, call me again after `delay` seconds
    raise        TemporaryError backs off shortly, anything else is fatal

Steps that change the operation persist the change themselves through the
store and return the updated copy. A step may be re-run any number of times
(process restart, duplicate queue delivery), so it must check whether its
work is already done before doing it again.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from core.config import Defaults
from core.models import Operation
from messaging import EventBroker
from repositories.base import Storage

StepResult = Tuple[Operation, float]
StepCondition = Callable[[Operation], bool]


@dataclass
class StepDependencies:
    """Shared collaborators handed to every step class at construction."""
    storage: Storage
    broker: EventBroker
    defaults: Defaults
    bundle_builder: Optional[Any] = None


class Step(ABC):
    """One idempotent unit of work within a stage."""

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    async def run(self, operation: Operation) -> StepResult:
        """Advance the operation. See module docstring for the contract."""


__all__ = [
    "StepResult",
    "StepCondition",
    "StepDependencies",
    "Step",
]
