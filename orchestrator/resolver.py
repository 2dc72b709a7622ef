# ============================================================================
# RUNTIME RESOLVER
# ============================================================================
# STATUS: Orchestrator - Target expansion
# PURPOSE: Turn include/exclude target rules into concrete runtimes
# CREATED: 03 OCT 2026
# ============================================================================
"""
Runtime Resolver

StoreRuntimeResolver matches the instances known to the InstanceStore
against a TargetSpec. A runtime is selected when it matches at least one
include rule and no exclude rule. Inside one rule every set field must
match; a rule without any field set matches nothing.

Instances that have no runtime yet (runtime_id empty) are never selected.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import List

from core.errors import FatalError
from core.models import TARGET_ALL, Instance, Runtime, RuntimeTarget, TargetSpec
from repositories.base import InstanceStore

logger = logging.getLogger(__name__)


class RuntimeResolver(ABC):

    @abstractmethod
    async def resolve(self, targets: TargetSpec) -> List[Runtime]:
        """Expand targets into runtimes, ordered by instance id."""


def _regex(pattern: str, value: str) -> bool:
    try:
        return re.search(pattern, value or "") is not None
    except re.error as e:
        raise FatalError(f"invalid target pattern {pattern!r}: {e}") from e


def target_matches(target: RuntimeTarget, instance: Instance) -> bool:
    if target.target == TARGET_ALL:
        return True

    checks = []
    if target.global_account:
        checks.append(_regex(target.global_account, instance.global_account_id))
    if target.subaccount:
        checks.append(_regex(target.subaccount, instance.subaccount_id))
    if target.region:
        checks.append(_regex(target.region, instance.region))
    if target.runtime_id:
        checks.append(target.runtime_id == instance.runtime_id)
    if target.instance_id:
        checks.append(target.instance_id == instance.instance_id)
    if target.plan:
        checks.append(target.plan == instance.plan_name)

    return bool(checks) and all(checks)


class StoreRuntimeResolver(RuntimeResolver):

    def __init__(self, instances: InstanceStore):
        self.instances = instances

    async def resolve(self, targets: TargetSpec) -> List[Runtime]:
        selected = []
        for instance in await self.instances.list():
            if not instance.runtime_id:
                continue
            if not any(target_matches(t, instance) for t in targets.include):
                continue
            if any(target_matches(t, instance) for t in targets.exclude):
                continue
            selected.append(instance)

        selected.sort(key=lambda i: i.instance_id)
        logger.info(f"Resolved {len(selected)} runtimes")
        return [instance.to_runtime() for instance in selected]


__all__ = ["RuntimeResolver", "StoreRuntimeResolver", "target_matches"]
