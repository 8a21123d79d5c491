"""Typed configuration payloads, one model per trigger and step type.

Every field carries a default so that a node freshly dropped on the canvas is
representable before the user fills in its form. Required settings are
reported by ``problems()`` instead of being enforced at construction time.
"""
from __future__ import annotations

from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field

from flowbuilder.models.workflow import BranchCondition, StepType, TriggerType


class NodeConfig(BaseModel):
    """Base class for all config payloads. Unknown keys are kept as-is."""

    model_config = ConfigDict(extra="allow")

    node_type: ClassVar[str]

    def problems(self) -> list[str]:
        return []

    def dump(self) -> dict[str, Any]:
        """Return only the fields that were explicitly set."""
        return self.model_dump(mode="json", exclude_unset=True, warnings=False)


class FieldFilter(BaseModel):
    field: str
    operator: str
    value: str | int | float | bool | list[str] | None = None


# -- Triggers ------------------------------------------------------------------


class ContactCreatedTriggerConfig(NodeConfig):
    node_type = TriggerType.CONTACT_CREATED

    filters: list[FieldFilter] = Field(default_factory=list)


class ContactUpdatedTriggerConfig(NodeConfig):
    node_type = TriggerType.CONTACT_UPDATED

    fields: list[str] = Field(default_factory=list)
    filters: list[FieldFilter] = Field(default_factory=list)


class TagAddedTriggerConfig(NodeConfig):
    node_type = TriggerType.TAG_ADDED

    tag_ids: list[str] = Field(default_factory=list)
    filters: list[FieldFilter] = Field(default_factory=list)

    def problems(self) -> list[str]:
        if not self.tag_ids:
            return ["Tag trigger requires at least one tag selected"]
        return []


class TagRemovedTriggerConfig(TagAddedTriggerConfig):
    node_type = TriggerType.TAG_REMOVED


class DealStageTriggerConfig(NodeConfig):
    node_type = TriggerType.DEAL_STAGE_CHANGED

    pipeline_id: str | None = None
    from_stage_id: str | None = None
    to_stage_id: str | None = None
    filters: list[FieldFilter] = Field(default_factory=list)

    def problems(self) -> list[str]:
        if not self.to_stage_id:
            return ["Deal stage trigger requires a target stage"]
        return []


class DealCreatedTriggerConfig(NodeConfig):
    node_type = TriggerType.DEAL_CREATED

    pipeline_id: str | None = None
    filters: list[FieldFilter] = Field(default_factory=list)


class FormSubmittedTriggerConfig(NodeConfig):
    node_type = TriggerType.FORM_SUBMITTED

    form_id: str | None = None

    def problems(self) -> list[str]:
        if not self.form_id:
            return ["Form trigger requires a form selected"]
        return []


class DateBasedTriggerConfig(NodeConfig):
    node_type = TriggerType.DATE_BASED

    date_field: str | None = None
    offset_days: int = 0  # negative = before the date
    time: str | None = None
    filters: list[FieldFilter] = Field(default_factory=list)

    def problems(self) -> list[str]:
        errors = []
        if not self.date_field:
            errors.append("Date-based trigger requires a date field")
        if not self.time:
            errors.append("Date-based trigger requires a time")
        return errors


class ManualTriggerConfig(NodeConfig):
    node_type = TriggerType.MANUAL


# -- Steps ---------------------------------------------------------------------


class SendEmailConfig(NodeConfig):
    node_type = StepType.SEND_EMAIL

    template_id: str | None = None
    subject: str | None = None
    content_html: str | None = None
    from_name: str | None = None
    from_email: str | None = None

    def problems(self) -> list[str]:
        errors = []
        if not self.template_id and not self.content_html:
            errors.append("Email requires a template or content")
        if not self.template_id and not self.subject:
            errors.append("Email requires a subject line")
        return errors


class SendSmsConfig(NodeConfig):
    node_type = StepType.SEND_SMS

    message: str = ""

    def problems(self) -> list[str]:
        if not self.message:
            return ["SMS requires a message"]
        return []


class AddTagConfig(NodeConfig):
    node_type = StepType.ADD_TAG

    tag_ids: list[str] = Field(default_factory=list)

    def problems(self) -> list[str]:
        if not self.tag_ids:
            return ["Requires at least one tag selected"]
        return []


class RemoveTagConfig(AddTagConfig):
    node_type = StepType.REMOVE_TAG


class UpdateFieldConfig(NodeConfig):
    node_type = StepType.UPDATE_FIELD

    field: str | None = None
    value: str | int | float | bool | None = None

    def problems(self) -> list[str]:
        if not self.field:
            return ["Update requires a field"]
        return []


class CreateTaskConfig(NodeConfig):
    node_type = StepType.CREATE_TASK

    title: str = ""
    description: str | None = None
    due_in_days: int | None = None
    assigned_to: str | None = None
    priority: Literal["low", "medium", "high"] | None = None

    def problems(self) -> list[str]:
        if not self.title:
            return ["Task requires a title"]
        return []


class CreateDealConfig(NodeConfig):
    node_type = StepType.CREATE_DEAL

    pipeline_id: str | None = None
    stage_id: str | None = None
    title: str = ""
    value: float | None = None
    assigned_to: str | None = None

    def problems(self) -> list[str]:
        errors = []
        if not self.pipeline_id or not self.stage_id:
            errors.append("Deal requires pipeline and stage")
        if not self.title:
            errors.append("Deal requires a title")
        return errors


class SendNotificationConfig(NodeConfig):
    node_type = StepType.SEND_NOTIFICATION

    type: Literal["email", "in_app", "slack"] = "in_app"
    recipients: list[str] = Field(default_factory=list)  # user ids or "owner"
    subject: str = ""
    message: str = ""

    def problems(self) -> list[str]:
        errors = []
        if not self.recipients:
            errors.append("Notification requires recipients")
        if not self.message:
            errors.append("Notification requires a message")
        return errors


class WaitConfig(NodeConfig):
    node_type = StepType.WAIT

    duration: int = 0
    unit: Literal["minutes", "hours", "days", "weeks"] = "days"

    def problems(self) -> list[str]:
        if self.duration < 1:
            return ["Wait requires a valid duration"]
        return []


class ConditionConfig(NodeConfig):
    node_type = StepType.CONDITION

    conditions: list[BranchCondition] = Field(default_factory=list)
    logic: Literal["and", "or"] = "and"

    def problems(self) -> list[str]:
        if not self.conditions:
            return ["Condition requires at least one rule"]
        return []


class SplitVariant(BaseModel):
    id: str
    name: str
    percentage: float | None = None


class SplitConfig(NodeConfig):
    node_type = StepType.SPLIT

    split_type: Literal["percentage", "random"] = "random"
    variants: list[SplitVariant] = Field(default_factory=list)


class GoToConfig(NodeConfig):
    node_type = StepType.GO_TO

    target_step_id: str | None = None

    def problems(self) -> list[str]:
        if not self.target_step_id:
            return ["Go-to requires a target step"]
        return []


class EndConfig(NodeConfig):
    node_type = StepType.END


TRIGGER_CONFIGS: tuple[type[NodeConfig], ...] = (
    ContactCreatedTriggerConfig,
    ContactUpdatedTriggerConfig,
    TagAddedTriggerConfig,
    TagRemovedTriggerConfig,
    DealStageTriggerConfig,
    DealCreatedTriggerConfig,
    FormSubmittedTriggerConfig,
    DateBasedTriggerConfig,
    ManualTriggerConfig,
)

STEP_CONFIGS: tuple[type[NodeConfig], ...] = (
    SendEmailConfig,
    SendSmsConfig,
    AddTagConfig,
    RemoveTagConfig,
    UpdateFieldConfig,
    CreateTaskConfig,
    CreateDealConfig,
    SendNotificationConfig,
    WaitConfig,
    ConditionConfig,
    SplitConfig,
    GoToConfig,
    EndConfig,
)
