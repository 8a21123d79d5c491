from __future__ import annotations

import json
from pathlib import Path

import yaml

from flowbuilder.models.workflow import WorkflowDefinition

_YAML_SUFFIXES = {".yaml", ".yml"}


def load_workflow(path: Path) -> WorkflowDefinition:
    if not path.exists():
        raise FileNotFoundError(f"Workflow file not found: {path}")
    with open(path) as f:
        if path.suffix in _YAML_SUFFIXES:
            data = yaml.safe_load(f)
        else:
            data = json.load(f)
    return WorkflowDefinition(**data)


def load_all_workflows(directory: Path) -> list[WorkflowDefinition]:
    workflows = []
    for pattern in ("*.yaml", "*.yml", "*.json"):
        for path in sorted(directory.glob(pattern)):
            workflows.append(load_workflow(path))
    return workflows


def dumps_workflow(definition: WorkflowDefinition, fmt: str = "yaml") -> str:
    data = definition.to_wire()
    if fmt == "json":
        return json.dumps(data, indent=2)
    if fmt == "yaml":
        return yaml.safe_dump(data, sort_keys=False)
    raise ValueError(f"Unsupported format: '{fmt}'")


def dump_workflow(definition: WorkflowDefinition, path: Path) -> None:
    fmt = "yaml" if path.suffix in _YAML_SUFFIXES else "json"
    path.write_text(dumps_workflow(definition, fmt))
