from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, SerializeAsAny, ValidationInfo, field_validator, model_validator

from flowbuilder.core.registry import config_registry
from flowbuilder.models.configs import NodeConfig
from flowbuilder.models.workflow import BranchCondition, Position, TriggerType


class NodeKind(StrEnum):
    TRIGGER = "trigger"
    ACTION = "action"
    CONDITION = "condition"
    WAIT = "wait"


class NodeBranch(BaseModel):
    """A named exit point of a condition or split node."""

    id: str
    name: str
    condition: BranchCondition | None = None


class SingleExit(BaseModel):
    shape: Literal["single"] = "single"


class NamedBranches(BaseModel):
    shape: Literal["branches"] = "branches"
    branches: list[NodeBranch] = Field(min_length=1)

    def branch_ids(self) -> list[str]:
        return [b.id for b in self.branches]


_TRIGGER_TYPES = set(TriggerType)

Exits = Annotated[SingleExit | NamedBranches, Field(discriminator="shape")]


def exits_for(branches: list[NodeBranch] | list[dict[str, Any]] | None) -> SingleExit | NamedBranches:
    """Build the exit shape for an optional branch list. Empty means a single exit."""
    if not branches:
        return SingleExit()
    return NamedBranches(branches=branches)


class WorkflowNode(BaseModel):
    id: str
    kind: NodeKind
    node_type: str
    label: str = ""
    config: SerializeAsAny[NodeConfig] = Field(default=None, validate_default=True)
    position: Position = Field(default_factory=Position)
    exits: Exits = Field(default_factory=SingleExit)

    @field_validator("node_type")
    @classmethod
    def validate_node_type(cls, node_type: str) -> str:
        if node_type not in config_registry:
            raise ValueError(f"Unknown node type: '{node_type}'")
        return str(node_type)

    @field_validator("config", mode="before")
    @classmethod
    def coerce_config(cls, value: Any, info: ValidationInfo) -> Any:
        node_type = info.data.get("node_type")
        if node_type is None:
            return value
        return config_registry.build(node_type, value)

    @model_validator(mode="after")
    def check_kind_matches_type(self) -> WorkflowNode:
        is_trigger_type = self.node_type in _TRIGGER_TYPES
        if self.kind == NodeKind.TRIGGER and not is_trigger_type:
            raise ValueError(f"Trigger node cannot use step type '{self.node_type}'")
        if self.kind != NodeKind.TRIGGER and is_trigger_type:
            raise ValueError(f"{self.kind.capitalize()} node cannot use trigger type '{self.node_type}'")
        return self

    @property
    def branches(self) -> list[NodeBranch] | None:
        if isinstance(self.exits, NamedBranches):
            return self.exits.branches
        return None


class WorkflowEdge(BaseModel):
    id: str
    source_node_id: str
    target_node_id: str
    source_handle: str | None = None
    label: str | None = None

    def key(self) -> tuple[str, str, str | None]:
        return (self.source_node_id, self.target_node_id, self.source_handle)
