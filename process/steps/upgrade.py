# ============================================================================
# UPGRADE INITIALISATION STEP
# ============================================================================
# STATUS: Process - Upgrade pipelines
# PURPOSE: Pin the target version on an orchestrated upgrade operation
# CREATED: 01 OCT 2026
# ============================================================================
"""
Upgrade Initialisation

The target version comes from the orchestration parameters, falling back to
the configured default for the component (KYMA_VERSION / KUBERNETES_VERSION).
Writing it once into the payload keeps the version stable even if the
default changes while the campaign runs.
"""

import logging

from core.contracts import OperationType
from core.errors import FatalError
from core.models import Operation
from process.step import Step, StepDependencies, StepResult

logger = logging.getLogger(__name__)

TARGET_VERSION_KEY = "target_version"


class InitialiseUpgradeStep(Step):

    def __init__(self, deps: StepDependencies):
        self.operations = deps.storage.operations
        self.orchestrations = deps.storage.orchestrations
        self.defaults = deps.defaults.orchestration

    @property
    def name(self) -> str:
        return "Upgrade_Initialisation"

    def _default_version(self, operation: Operation) -> str:
        if operation.type == OperationType.UPGRADE_CLUSTER:
            return self.defaults.kubernetes_version
        return self.defaults.kyma_version

    async def run(self, operation: Operation) -> StepResult:
        if operation.payload.get(TARGET_VERSION_KEY):
            return operation, 0

        version = operation.parameters.get("version")
        if not version and operation.orchestration_id:
            orchestration = await self.orchestrations.get(operation.orchestration_id)
            version = orchestration.parameters.version
        version = version or self._default_version(operation)
        if not version:
            raise FatalError(f"no target version for {operation.type.value} operation")

        operation.payload[TARGET_VERSION_KEY] = version
        operation = await self.operations.update(operation)
        logger.info(f"Operation {operation.operation_id} targets version {version}")
        return operation, 0


__all__ = ["TARGET_VERSION_KEY", "InitialiseUpgradeStep"]
