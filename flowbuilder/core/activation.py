from __future__ import annotations

from collections import deque
from typing import Any

from pydantic import ValidationError

from flowbuilder.core.registry import config_registry
from flowbuilder.models.workflow import WorkflowDefinition, WorkflowStatus, WorkflowStep


def check_activation(definition: WorkflowDefinition) -> list[str]:
    """Return the reasons a saved workflow cannot be switched to active.

    An empty list means the workflow is ready.
    """
    errors: list[str] = []

    if definition.status == WorkflowStatus.ACTIVE:
        errors.append("Workflow is already active")
    elif definition.status == WorkflowStatus.ARCHIVED:
        errors.append("Cannot activate an archived workflow. Restore it first.")

    errors.extend(_config_problems(definition.trigger.type, definition.trigger.config))

    if not definition.steps:
        errors.append("Workflow must have at least one action step")
        return errors

    for step in definition.steps:
        step_name = step.name or step.type
        problems = _config_problems(step.type, step.config)
        errors.extend(f"{step_name}: {problem}" for problem in problems)

    connected = connected_steps(definition.steps)
    missing = [s for s in definition.steps if s.id not in connected]
    if missing:
        errors.append(f"{len(missing)} step(s) are not connected to the workflow")

    return errors


def _config_problems(node_type: str, raw: dict[str, Any]) -> list[str]:
    try:
        config = config_registry.build(node_type, raw)
    except ValidationError as e:
        return [
            f"Invalid configuration for '{'.'.join(str(part) for part in err['loc'])}'"
            for err in e.errors()
        ]
    return config.problems()


def connected_steps(steps: list[WorkflowStep]) -> set[str]:
    """Ids of steps reachable from the first step through successor and branch pointers."""
    if not steps:
        return set()
    by_id = {s.id: s for s in steps}
    connected: set[str] = set()
    queue = deque([steps[0].id])
    while queue:
        current = queue.popleft()
        if current in connected or current not in by_id:
            continue
        connected.add(current)
        step = by_id[current]
        if step.next_step_id:
            queue.append(step.next_step_id)
        for branch in step.branches or []:
            if branch.next_step_id:
                queue.append(branch.next_step_id)
    return connected
