"""Conversion between the editable graph and the persisted workflow definition.

Export assigns fresh step ids on every call, so callers must not rely on step
ids being stable across exports. Import assigns fresh node and edge ids.
"""
from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from flowbuilder.core.catalog import kind_for_step, trigger_label
from flowbuilder.core.registry import config_registry
from flowbuilder.models.configs import NodeConfig
from flowbuilder.models.graph import NodeBranch, NodeKind, WorkflowEdge, WorkflowNode, exits_for
from flowbuilder.models.settings import EditorConfig
from flowbuilder.models.workflow import (
    Position,
    WorkflowBranch,
    WorkflowDefinition,
    WorkflowStep,
    WorkflowTrigger,
)

if TYPE_CHECKING:
    from flowbuilder.core.session import WorkflowEditorSession

logger = structlog.get_logger()


class ExportError(ValueError):
    """Raised when the graph cannot be turned into a definition."""


def export_definition(session: WorkflowEditorSession) -> WorkflowDefinition:
    nodes = session.nodes
    edges = session.edges

    trigger_node = next((n for n in nodes if n.kind == NodeKind.TRIGGER), None)
    if trigger_node is None:
        logger.warning("serializer.export_failed", reason="missing trigger")
        raise ExportError("Workflow must have a trigger")

    trigger = WorkflowTrigger(type=trigger_node.node_type, config=trigger_node.config.dump())

    step_nodes = [n for n in nodes if n.kind != NodeKind.TRIGGER]
    step_ids = {n.id: session.new_id() for n in step_nodes}

    steps = []
    for node in step_nodes:
        outgoing = [e for e in edges if e.source_node_id == node.id]
        steps.append(_node_to_step(node, step_ids[node.id], outgoing, step_ids))

    definition = WorkflowDefinition(
        id=session.workflow_id,
        name=session.name,
        description=session.description or None,
        status=session.status,
        trigger=trigger,
        steps=steps,
        settings=session.settings.model_copy(deep=True),
    )
    logger.info("serializer.exported", workflow_id=session.workflow_id, steps=len(steps))
    return definition


def _node_to_step(
    node: WorkflowNode,
    step_id: str,
    outgoing: list[WorkflowEdge],
    step_ids: dict[str, str],
) -> WorkflowStep:
    step = WorkflowStep(
        id=step_id,
        type=node.node_type,
        name=node.label,
        config=node.config.dump(),
        position=node.position.model_copy(),
    )

    # A step is either linear or branching, never both.
    if node.branches is None:
        if outgoing:
            step.next_step_id = step_ids.get(outgoing[0].target_node_id)
        return step

    branches = []
    for branch in node.branches:
        edge = next((e for e in outgoing if e.source_handle == branch.id), None)
        branches.append(
            WorkflowBranch(
                id=branch.id,
                name=branch.name,
                condition=branch.condition,
                next_step_id=step_ids.get(edge.target_node_id) if edge else None,
            )
        )
    step.branches = branches
    return step


def build_graph(
    definition: WorkflowDefinition,
    new_id: Callable[[], str],
    config: EditorConfig | None = None,
) -> tuple[list[WorkflowNode], list[WorkflowEdge]]:
    """Create a fresh node/edge graph from a definition."""
    config = config or EditorConfig()
    nodes: list[WorkflowNode] = []
    edges: list[WorkflowEdge] = []
    seen: set[tuple[str, str, str | None]] = set()

    def connect(source: str, target: str, handle: str | None = None, label: str | None = None) -> None:
        key = (source, target, handle)
        if key in seen:
            return
        seen.add(key)
        edges.append(
            WorkflowEdge(
                id=new_id(),
                source_node_id=source,
                target_node_id=target,
                source_handle=handle,
                label=label,
            )
        )

    trigger_id = new_id()
    nodes.append(
        WorkflowNode(
            id=trigger_id,
            kind=NodeKind.TRIGGER,
            node_type=definition.trigger.type,
            label=trigger_label(definition.trigger.type),
            config=_stored_config(definition.trigger.type, definition.trigger.config),
            position=Position(x=config.trigger_x, y=config.trigger_y),
        )
    )

    node_ids: dict[str, str] = {}
    y_offset = config.first_step_y
    for step in definition.steps:
        node_id = new_id()
        node_ids[step.id] = node_id
        branches = None
        if step.branches:
            branches = [
                NodeBranch(id=b.id, name=b.name, condition=b.condition) for b in step.branches
            ]
        nodes.append(
            WorkflowNode(
                id=node_id,
                kind=kind_for_step(step.type),
                node_type=step.type,
                label=step.name,
                config=_stored_config(step.type, step.config, step_id=step.id),
                position=step.position or Position(x=config.step_x, y=y_offset),
                exits=exits_for(branches),
            )
        )
        y_offset += config.step_spacing

    if definition.steps:
        connect(trigger_id, node_ids[definition.steps[0].id])

    for step in definition.steps:
        source = node_ids[step.id]
        if step.next_step_id:
            target = node_ids.get(step.next_step_id)
            if target is None:
                logger.warning("serializer.dangling_step_ref", step_id=step.id, ref=step.next_step_id)
            else:
                connect(source, target)
        for branch in step.branches or []:
            if not branch.next_step_id:
                continue
            target = node_ids.get(branch.next_step_id)
            if target is None:
                logger.warning(
                    "serializer.dangling_step_ref",
                    step_id=step.id,
                    branch_id=branch.id,
                    ref=branch.next_step_id,
                )
                continue
            connect(source, target, handle=branch.id, label=branch.name)

    return nodes, edges


def _stored_config(node_type: str, raw: dict[str, Any], step_id: str | None = None) -> NodeConfig:
    """Wrap a persisted config payload, keeping it as stored when it no longer validates."""
    try:
        return config_registry.build(node_type, raw)
    except ValidationError as e:
        logger.warning(
            "serializer.config_invalid",
            node_type=node_type,
            step_id=step_id,
            errors=e.error_count(),
        )
        return config_registry.construct(node_type, raw)
