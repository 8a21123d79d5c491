"""Palette of node types the editor offers, with display metadata."""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

from flowbuilder.models.graph import NodeKind
from flowbuilder.models.workflow import StepType, TriggerType


class AllowedConnections(BaseModel):
    inputs: int
    outputs: int | Literal["unlimited"]


class NodeDefinition(BaseModel):
    type: str
    category: Literal["trigger", "action", "logic"]
    label: str
    description: str
    icon: str
    allowed_connections: AllowedConnections


def _define(
    type_: str,
    category: Literal["trigger", "action", "logic"],
    label: str,
    description: str,
    icon: str,
    inputs: int = 1,
    outputs: int | Literal["unlimited"] = 1,
) -> NodeDefinition:
    return NodeDefinition(
        type=type_,
        category=category,
        label=label,
        description=description,
        icon=icon,
        allowed_connections=AllowedConnections(inputs=inputs, outputs=outputs),
    )


TRIGGER_DEFINITIONS: dict[str, NodeDefinition] = {
    d.type: d
    for d in (
        _define(TriggerType.CONTACT_CREATED, "trigger", "Contact Created",
                "When a new contact is created", "user-plus", inputs=0),
        _define(TriggerType.CONTACT_UPDATED, "trigger", "Contact Updated",
                "When a contact is updated", "user-cog", inputs=0),
        _define(TriggerType.TAG_ADDED, "trigger", "Tag Added",
                "When a tag is added to a contact", "tag", inputs=0),
        _define(TriggerType.TAG_REMOVED, "trigger", "Tag Removed",
                "When a tag is removed from a contact", "tag", inputs=0),
        _define(TriggerType.DEAL_STAGE_CHANGED, "trigger", "Deal Stage Changed",
                "When a deal moves to a stage", "git-branch", inputs=0),
        _define(TriggerType.DEAL_CREATED, "trigger", "Deal Created",
                "When a new deal is created", "briefcase", inputs=0),
        _define(TriggerType.FORM_SUBMITTED, "trigger", "Form Submitted",
                "When a form is submitted", "file-text", inputs=0),
        _define(TriggerType.DATE_BASED, "trigger", "Date-based",
                "Based on a date field", "calendar", inputs=0),
        _define(TriggerType.MANUAL, "trigger", "Manual Enrollment",
                "Manually enroll contacts", "hand", inputs=0),
    )
}

STEP_DEFINITIONS: dict[str, NodeDefinition] = {
    d.type: d
    for d in (
        _define(StepType.SEND_EMAIL, "action", "Send Email",
                "Send an email to the contact", "mail"),
        _define(StepType.SEND_SMS, "action", "Send SMS",
                "Send an SMS to the contact", "smartphone"),
        _define(StepType.ADD_TAG, "action", "Add Tag",
                "Add tags to the contact", "tag"),
        _define(StepType.REMOVE_TAG, "action", "Remove Tag",
                "Remove tags from the contact", "x"),
        _define(StepType.UPDATE_FIELD, "action", "Update Field",
                "Update a contact field", "edit"),
        _define(StepType.CREATE_TASK, "action", "Create Task",
                "Create a task for the contact", "check-square"),
        _define(StepType.CREATE_DEAL, "action", "Create Deal",
                "Create a deal for the contact", "briefcase"),
        _define(StepType.SEND_NOTIFICATION, "action", "Send Notification",
                "Notify team members", "bell"),
        _define(StepType.WAIT, "logic", "Wait",
                "Wait for a period of time", "clock"),
        _define(StepType.CONDITION, "logic", "If/Else",
                "Branch based on conditions", "git-branch", outputs="unlimited"),
        _define(StepType.SPLIT, "logic", "Split (A/B Test)",
                "Split traffic for testing", "shuffle", outputs="unlimited"),
        _define(StepType.GO_TO, "logic", "Go To",
                "Jump to another step", "arrow-right", outputs=0),
        _define(StepType.END, "logic", "End",
                "End the workflow", "square", outputs=0),
    )
}

# Step types that belong to the logic category rather than doing work.
_LOGIC_STEPS = {StepType.WAIT, StepType.CONDITION, StepType.SPLIT, StepType.GO_TO, StepType.END}


def trigger_label(trigger_type: str) -> str:
    definition = TRIGGER_DEFINITIONS.get(trigger_type)
    return definition.label if definition else str(trigger_type)


def default_label(node_type: str) -> str:
    definition = TRIGGER_DEFINITIONS.get(node_type) or STEP_DEFINITIONS.get(node_type)
    return definition.label if definition else str(node_type)


def kind_for_step(step_type: str) -> NodeKind:
    if step_type == StepType.WAIT:
        return NodeKind.WAIT
    if step_type in _LOGIC_STEPS:
        return NodeKind.CONDITION
    return NodeKind.ACTION


def search_catalog(query: str = "") -> list[NodeDefinition]:
    """Return palette entries whose label or description contains ``query``."""
    items = [*TRIGGER_DEFINITIONS.values(), *STEP_DEFINITIONS.values()]
    if not query:
        return items
    needle = query.lower()
    return [
        item
        for item in items
        if needle in item.label.lower() or needle in item.description.lower()
    ]
