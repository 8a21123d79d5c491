from __future__ import annotations

from pathlib import Path

from flowbuilder.core.activation import check_activation, connected_steps
from flowbuilder.core.loader import load_workflow
from flowbuilder.models.workflow import WorkflowDefinition

FIXTURES = Path(__file__).parent.parent / "fixtures"


def definition(**overrides) -> WorkflowDefinition:
    data = {
        "name": "ready",
        "trigger": {"type": "tag_added", "config": {"tag_ids": ["t"]}},
        "steps": [
            {"id": "a", "type": "send_sms", "name": "Text", "config": {"message": "hi"}},
        ],
    }
    data.update(overrides)
    return WorkflowDefinition(**data)


class TestCheckActivation:
    def test_ready_workflow(self):
        assert check_activation(definition()) == []

    def test_fixtures_are_ready(self):
        assert check_activation(load_workflow(FIXTURES / "welcome.yaml")) == []
        assert check_activation(load_workflow(FIXTURES / "deal_branch.json")) == []

    def test_status_checks(self):
        assert check_activation(definition(status="active")) == ["Workflow is already active"]
        assert check_activation(definition(status="archived")) == [
            "Cannot activate an archived workflow. Restore it first."
        ]

    def test_trigger_config_problems(self):
        errors = check_activation(definition(trigger={"type": "form_submitted"}))
        assert errors == ["Form trigger requires a form selected"]

    def test_no_steps(self):
        errors = check_activation(definition(steps=[]))
        assert errors == ["Workflow must have at least one action step"]

    def test_step_problems_prefixed_with_name(self):
        errors = check_activation(
            definition(steps=[{"id": "w", "type": "wait", "name": "Pause", "config": {}}])
        )
        assert errors == ["Pause: Wait requires a valid duration"]

    def test_unnamed_step_uses_type(self):
        errors = check_activation(
            definition(steps=[{"id": "t", "type": "create_task", "name": ""}])
        )
        assert errors == ["create_task: Task requires a title"]

    def test_disconnected_steps_counted(self):
        steps = [
            {"id": "a", "type": "end", "name": "A"},
            {"id": "b", "type": "end", "name": "B"},
            {"id": "c", "type": "end", "name": "C"},
        ]
        assert check_activation(definition(steps=steps)) == [
            "2 step(s) are not connected to the workflow"
        ]


class TestConnectedSteps:
    def test_follows_branches(self):
        wf = load_workflow(FIXTURES / "deal_branch.json")
        assert connected_steps(wf.steps) == {"c1", "a1", "a2"}

    def test_tolerates_cycles_and_dangling(self):
        wf = definition(
            steps=[
                {"id": "a", "type": "end", "name": "A", "next_step_id": "b"},
                {"id": "b", "type": "end", "name": "B", "next_step_id": "a"},
                {"id": "c", "type": "end", "name": "C", "next_step_id": "ghost"},
            ]
        )
        assert connected_steps(wf.steps) == {"a", "b"}

    def test_empty(self):
        assert connected_steps([]) == set()
