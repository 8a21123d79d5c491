from __future__ import annotations

from collections import defaultdict, deque

from pydantic import BaseModel, Field

from flowbuilder.models.graph import NodeKind, WorkflowEdge, WorkflowNode

WORKFLOW_KEY = "workflow"


class ValidationResult(BaseModel):
    """Errors keyed by node id, or by ``"workflow"`` for graph-wide problems."""

    is_valid: bool
    errors: dict[str, list[str]] = Field(default_factory=dict)


def validate_graph(
    name: str,
    nodes: list[WorkflowNode],
    edges: list[WorkflowEdge],
    strict: bool = False,
) -> ValidationResult:
    """Check the structural rules a graph must satisfy before export.

    The default check covers the workflow name, the single-trigger rule and
    nodes without an incoming edge. ``strict`` additionally reports trigger
    inputs, branch/edge mismatches, fan-out from single-exit nodes, nodes
    unreachable from the trigger, and cycles.
    """
    errors: dict[str, list[str]] = defaultdict(list)

    if not name.strip():
        errors[WORKFLOW_KEY].append("Workflow name is required")

    triggers = [n for n in nodes if n.kind == NodeKind.TRIGGER]
    if not triggers:
        errors[WORKFLOW_KEY].append("A trigger is required")
    elif len(triggers) > 1:
        errors[WORKFLOW_KEY].append("Only one trigger is allowed")

    targets = {e.target_node_id for e in edges}
    disconnected = set()
    for node in nodes:
        if node.kind != NodeKind.TRIGGER and node.id not in targets:
            errors[node.id].append("Node is not connected")
            disconnected.add(node.id)

    if strict:
        _check_trigger_inputs(triggers, targets, errors)
        _check_exits(nodes, edges, errors)
        _check_reachability(nodes, edges, triggers, disconnected, errors)
        _check_cycles(nodes, edges, errors)

    return ValidationResult(is_valid=not errors, errors=dict(errors))


def _check_trigger_inputs(
    triggers: list[WorkflowNode], targets: set[str], errors: dict[str, list[str]]
) -> None:
    for trigger in triggers:
        if trigger.id in targets:
            errors[trigger.id].append("Trigger cannot have incoming connections")


def _check_exits(
    nodes: list[WorkflowNode], edges: list[WorkflowEdge], errors: dict[str, list[str]]
) -> None:
    outgoing: dict[str, list[WorkflowEdge]] = defaultdict(list)
    for edge in edges:
        outgoing[edge.source_node_id].append(edge)

    for node in nodes:
        out = outgoing.get(node.id, [])
        if node.branches is None:
            if any(e.source_handle for e in out):
                errors[node.id].append("Node has no branches but a connection uses one")
            if len(out) > 1:
                errors[node.id].append("Node has more than one outgoing connection")
            continue

        by_handle: dict[str | None, int] = defaultdict(int)
        for edge in out:
            by_handle[edge.source_handle] += 1
        for branch in node.branches:
            if by_handle.pop(branch.id, 0) > 1:
                errors[node.id].append(f"Branch '{branch.name}' has more than one connection")
        for handle in by_handle:
            errors[node.id].append(f"Connection uses unknown branch '{handle}'")


def _check_reachability(
    nodes: list[WorkflowNode],
    edges: list[WorkflowEdge],
    triggers: list[WorkflowNode],
    disconnected: set[str],
    errors: dict[str, list[str]],
) -> None:
    if not triggers:
        return
    adjacency = _adjacency(edges)
    reached = {t.id for t in triggers}
    queue = deque(reached)
    while queue:
        current = queue.popleft()
        for neighbor in adjacency[current]:
            if neighbor not in reached:
                reached.add(neighbor)
                queue.append(neighbor)

    for node in nodes:
        if node.id not in reached and node.id not in disconnected:
            errors[node.id].append("Node is not reachable from the trigger")


def _check_cycles(
    nodes: list[WorkflowNode], edges: list[WorkflowEdge], errors: dict[str, list[str]]
) -> None:
    adjacency = _adjacency(edges)

    def reaches_itself(start: str) -> bool:
        visited: set[str] = set()
        stack = list(adjacency[start])
        while stack:
            current = stack.pop()
            if current == start:
                return True
            if current in visited:
                continue
            visited.add(current)
            stack.extend(adjacency[current])
        return False

    for node in nodes:
        if reaches_itself(node.id):
            errors[node.id].append("Node is part of a cycle")


def _adjacency(edges: list[WorkflowEdge]) -> dict[str, list[str]]:
    adjacency: dict[str, list[str]] = defaultdict(list)
    for edge in edges:
        adjacency[edge.source_node_id].append(edge.target_node_id)
    return adjacency
