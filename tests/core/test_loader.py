from __future__ import annotations

import json
import tempfile
from pathlib import Path

import pytest
import yaml

from flowbuilder.core.loader import dump_workflow, dumps_workflow, load_all_workflows, load_workflow
from flowbuilder.models.workflow import WorkflowDefinition

FIXTURES = Path(__file__).parent.parent / "fixtures"


class TestLoadWorkflow:
    def test_load_yaml(self):
        wf = load_workflow(FIXTURES / "welcome.yaml")
        assert isinstance(wf, WorkflowDefinition)
        assert wf.trigger.config == {"tag_ids": ["newsletter"]}

    def test_load_json(self):
        wf = load_workflow(FIXTURES / "deal_branch.json")
        assert wf.steps[0].branches[1].next_step_id == "a2"

    def test_load_nonexistent_raises(self):
        with pytest.raises(FileNotFoundError):
            load_workflow(Path("/nonexistent/workflow.yaml"))

    def test_load_invalid_yaml_raises(self):
        with tempfile.NamedTemporaryFile(suffix=".yaml", mode="w", delete=False) as f:
            f.write("not: valid: yaml: [[[")
            bad_path = Path(f.name)
        with pytest.raises(Exception):
            load_workflow(bad_path)
        bad_path.unlink()


class TestLoadAllWorkflows:
    def test_load_directory(self):
        workflows = load_all_workflows(FIXTURES)
        assert sorted(wf.name for wf in workflows) == ["deal-follow-up", "welcome-series"]


class TestDumpWorkflow:
    def test_dumps_yaml_and_json_agree(self):
        wf = load_workflow(FIXTURES / "welcome.yaml")
        assert yaml.safe_load(dumps_workflow(wf, "yaml")) == json.loads(dumps_workflow(wf, "json"))

    def test_unsupported_format(self):
        wf = load_workflow(FIXTURES / "welcome.yaml")
        with pytest.raises(ValueError, match="Unsupported format"):
            dumps_workflow(wf, "toml")

    def test_dump_then_load(self, tmp_path):
        wf = load_workflow(FIXTURES / "deal_branch.json")
        target = tmp_path / "out.yaml"
        dump_workflow(wf, target)
        assert load_workflow(target) == wf
