from __future__ import annotations

from flowbuilder.models.configs import NodeConfig
from flowbuilder.models.settings import EditorConfig
from flowbuilder.models.workflow import (
    BranchCondition,
    Position,
    StepType,
    TriggerType,
    WorkflowBranch,
    WorkflowDefinition,
    WorkflowSettings,
    WorkflowStatus,
    WorkflowStep,
    WorkflowTrigger,
)

__all__ = [
    "BranchCondition",
    "EditorConfig",
    "NodeConfig",
    "Position",
    "StepType",
    "TriggerType",
    "WorkflowBranch",
    "WorkflowDefinition",
    "WorkflowSettings",
    "WorkflowStatus",
    "WorkflowStep",
    "WorkflowTrigger",
]
