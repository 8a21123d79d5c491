from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator


class WorkflowStatus(StrEnum):
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    ARCHIVED = "archived"


class TriggerType(StrEnum):
    CONTACT_CREATED = "contact_created"
    CONTACT_UPDATED = "contact_updated"
    TAG_ADDED = "tag_added"
    TAG_REMOVED = "tag_removed"
    DEAL_STAGE_CHANGED = "deal_stage_changed"
    DEAL_CREATED = "deal_created"
    FORM_SUBMITTED = "form_submitted"
    DATE_BASED = "date_based"
    MANUAL = "manual"


class StepType(StrEnum):
    SEND_EMAIL = "send_email"
    SEND_SMS = "send_sms"
    ADD_TAG = "add_tag"
    REMOVE_TAG = "remove_tag"
    UPDATE_FIELD = "update_field"
    CREATE_TASK = "create_task"
    CREATE_DEAL = "create_deal"
    SEND_NOTIFICATION = "send_notification"
    WAIT = "wait"
    CONDITION = "condition"
    SPLIT = "split"
    GO_TO = "go_to"
    END = "end"


class FilterOperator(StrEnum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"
    IN = "in"
    NOT_IN = "not_in"


class Position(BaseModel):
    """Canvas coordinate of a node."""

    x: float = 0
    y: float = 0

    def offset(self, dx: float, dy: float) -> Position:
        return Position(x=self.x + dx, y=self.y + dy)


class BranchCondition(BaseModel):
    field: str
    operator: FilterOperator
    value: str | int | float | bool | list[str] | None = None


class WorkingHours(BaseModel):
    start: str = "09:00"
    end: str = "17:00"
    days: list[int] = Field(default_factory=lambda: [1, 2, 3, 4, 5])

    @field_validator("days")
    @classmethod
    def validate_days(cls, days: list[int]) -> list[int]:
        for day in days:
            if not 0 <= day <= 6:
                raise ValueError(f"Invalid weekday: {day}")
        return days


class WorkflowSettings(BaseModel):
    """Enrollment and timing policy. Carried through the editor untouched."""

    allow_re_enrollment: bool = False
    enrollment_limit: int | None = None
    timezone: str | None = "UTC"
    working_hours_only: bool | None = False
    working_hours: WorkingHours | None = None


class WorkflowTrigger(BaseModel):
    type: TriggerType
    config: dict[str, Any] = Field(default_factory=dict)


class WorkflowBranch(BaseModel):
    id: str
    name: str
    condition: BranchCondition | None = None
    next_step_id: str | None = None


class WorkflowStep(BaseModel):
    id: str
    type: StepType
    name: str
    config: dict[str, Any] = Field(default_factory=dict)
    position: Position | None = None
    next_step_id: str | None = None
    branches: list[WorkflowBranch] | None = None


class WorkflowDefinition(BaseModel):
    """Persisted form of a workflow: one trigger plus steps with successor pointers."""

    id: str | None = None
    name: str
    description: str | None = None
    status: WorkflowStatus = WorkflowStatus.DRAFT
    trigger: WorkflowTrigger
    steps: list[WorkflowStep] = Field(default_factory=list)
    settings: WorkflowSettings = Field(default_factory=WorkflowSettings)

    @field_validator("steps")
    @classmethod
    def validate_unique_ids(cls, steps: list[WorkflowStep]) -> list[WorkflowStep]:
        seen: set[str] = set()
        for step in steps:
            if step.id in seen:
                raise ValueError(f"Duplicate step id: {step.id}")
            seen.add(step.id)
        return steps

    def get_step(self, step_id: str) -> WorkflowStep:
        for step in self.steps:
            if step.id == step_id:
                return step
        raise KeyError(f"Unknown step: '{step_id}'")

    def to_wire(self) -> dict[str, Any]:
        """Dump in storage shape. Linear steps keep ``next_step_id``, branching steps drop it."""
        data = self.model_dump(mode="json", exclude_none=True)
        for raw, step in zip(data["steps"], self.steps):
            if step.branches is None:
                raw["next_step_id"] = step.next_step_id
            else:
                for raw_branch, branch in zip(raw["branches"], step.branches):
                    raw_branch["next_step_id"] = branch.next_step_id
        return data

    @classmethod
    def from_yaml(cls, path: Path) -> WorkflowDefinition:
        """Load and validate a YAML file into a WorkflowDefinition."""
        if not path.exists():
            raise FileNotFoundError(f"Workflow file not found: {path}")
        data = yaml.safe_load(path.read_text())
        return cls(**data)
