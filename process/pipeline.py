# ============================================================================
# PIPELINE DEFINITIONS
# ============================================================================
# STATUS: Process - Stage/step layout per operation type
# PURPOSE: Load pipelines.yaml once at startup and build StagedManagers
# CREATED: 01 OCT 2026
# ============================================================================
"""
Pipeline Definitions

pipelines.yaml maps each operation type to an ordered list of stages, each
with an ordered list of steps referenced as "module:Class":

    pipelines:
      upgradeKyma:
        stages:
          - name: start
            steps:
              - step: process.steps:OrchestrationCancelGuardStep
                condition: orchestrated
              - step: process.steps:StartStep

Step classes are constructed with the shared StepDependencies. A step with
`disabled: true` is not registered at all; a step with a `condition` is
registered but skipped for operations the condition rejects.

The file is read once. Changing it requires a restart.
"""

import importlib
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from core.config import TimeoutDefaults
from core.contracts import OperationType
from process.staged_manager import StagedManager
from process.step import Step, StepCondition, StepDependencies

logger = logging.getLogger(__name__)


# Named conditions usable from YAML
CONDITIONS: Dict[str, StepCondition] = {
    "orchestrated": lambda op: op.orchestration_id is not None,
    "standalone": lambda op: op.orchestration_id is None,
    "not_dry_run": lambda op: not op.parameters.get("dry_run", False),
}


class StepSpec(BaseModel):
    step: str = Field(..., description="module:Class of a Step subclass")
    disabled: bool = False
    condition: Optional[str] = None

    @field_validator("step")
    @classmethod
    def validate_step_path(cls, v):
        if ":" not in v:
            raise ValueError(f"step {v!r} must be given as 'module:Class'")
        return v

    @field_validator("condition")
    @classmethod
    def validate_condition(cls, v):
        if v is not None and v not in CONDITIONS:
            raise ValueError(f"unknown condition {v!r}, expected one of {sorted(CONDITIONS)}")
        return v


class StageSpec(BaseModel):
    name: str
    steps: List[StepSpec] = Field(default_factory=list)


class PipelineSpec(BaseModel):
    stages: List[StageSpec] = Field(default_factory=list)

    @field_validator("stages")
    @classmethod
    def validate_unique_stages(cls, v):
        names = [stage.name for stage in v]
        if len(names) != len(set(names)):
            raise ValueError(f"duplicate stage names: {names}")
        return v


class PipelineFile(BaseModel):
    pipelines: Dict[OperationType, PipelineSpec] = Field(default_factory=dict)


def load_pipeline_file(path: Union[str, Path]) -> PipelineFile:
    """Parse and validate a pipelines YAML file."""
    path = Path(path)
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    pipelines = PipelineFile.model_validate(data)
    logger.info(f"Loaded {len(pipelines.pipelines)} pipelines from {path}")
    return pipelines


def import_step_class(path: str) -> type:
    module_name, _, class_name = path.partition(":")
    module = importlib.import_module(module_name)
    step_cls = getattr(module, class_name, None)
    if step_cls is None:
        raise ValueError(f"step class {class_name!r} not found in {module_name}")
    if not (isinstance(step_cls, type) and issubclass(step_cls, Step)):
        raise ValueError(f"{path} is not a Step subclass")
    return step_cls


def build_manager(
    operation_type: OperationType,
    spec: PipelineSpec,
    deps: StepDependencies,
    timeouts: Optional[TimeoutDefaults] = None,
) -> StagedManager:
    manager = StagedManager(
        operation_type,
        deps.storage.operations,
        deps.broker,
        timeouts=timeouts or deps.defaults.timeouts,
    )
    manager.define_stages([stage.name for stage in spec.stages])

    for stage in spec.stages:
        for step_spec in stage.steps:
            if step_spec.disabled:
                logger.info(f"{operation_type.value}: step {step_spec.step} is disabled")
                continue
            step = import_step_class(step_spec.step)(deps)
            condition = CONDITIONS[step_spec.condition] if step_spec.condition else None
            manager.add_step(stage.name, step, condition)

    logger.info(f"{operation_type.value} pipeline: {manager.describe()}")
    return manager


def build_managers(
    pipelines: PipelineFile,
    deps: StepDependencies,
) -> Dict[OperationType, StagedManager]:
    """One StagedManager per operation type present in the file."""
    return {
        operation_type: build_manager(operation_type, spec, deps)
        for operation_type, spec in pipelines.pipelines.items()
    }


__all__ = [
    "CONDITIONS",
    "StepSpec",
    "StageSpec",
    "PipelineSpec",
    "PipelineFile",
    "load_pipeline_file",
    "import_step_class",
    "build_manager",
    "build_managers",
]
