# ============================================================================
# MAINTENANCE POLICY PROVIDERS
# ============================================================================
# STATUS: Orchestrator - Policy document loading
# PURPOSE: Supply the maintenance policy on every orchestration pass
# CREATED: 03 OCT 2026
# ============================================================================
"""
Maintenance Policy Providers

The policy is re-read on every orchestration pass so edits to the document
apply to campaigns already running. The document is JSON or YAML (YAML is
a superset, so one yaml.safe_load handles both).
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

import yaml

from core.models import MaintenancePolicy

logger = logging.getLogger(__name__)


class MaintenancePolicyProvider(ABC):

    @abstractmethod
    async def get_policy(self) -> MaintenancePolicy:
        """Current policy. Raises on a missing or malformed document."""


class StaticMaintenancePolicyProvider(MaintenancePolicyProvider):

    def __init__(self, policy: Optional[MaintenancePolicy] = None):
        self.policy = policy or MaintenancePolicy()

    async def get_policy(self) -> MaintenancePolicy:
        return self.policy


class FileMaintenancePolicyProvider(MaintenancePolicyProvider):
    """Reads a policy file; an empty path means an empty policy."""

    def __init__(self, path: Union[str, Path, None]):
        self.path = Path(path) if path else None

    async def get_policy(self) -> MaintenancePolicy:
        if self.path is None:
            return MaintenancePolicy()

        with open(self.path) as f:
            data = yaml.safe_load(f) or {}

        policy = MaintenancePolicy.model_validate(data)
        logger.debug(f"Loaded maintenance policy with {len(policy.rules)} rules from {self.path}")
        return policy


__all__ = [
    "MaintenancePolicyProvider",
    "StaticMaintenancePolicyProvider",
    "FileMaintenancePolicyProvider",
]
