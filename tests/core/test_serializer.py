from __future__ import annotations

from itertools import count

import pytest
from pydantic import ValidationError
from structlog.testing import capture_logs

from flowbuilder.core.activation import check_activation
from flowbuilder.core.serializer import ExportError, build_graph
from flowbuilder.core.session import WorkflowEditorSession
from flowbuilder.models.graph import NodeKind
from flowbuilder.models.workflow import (
    Position,
    WorkflowDefinition,
    WorkflowStatus,
)


def make_session() -> WorkflowEditorSession:
    ids = count(1)
    session = WorkflowEditorSession(id_factory=lambda: f"x{next(ids)}")
    session.set_name("Scenario")
    return session


def topology(definition: WorkflowDefinition) -> dict:
    """Id-free view of a definition: steps by index, pointers as indexes."""
    index = {step.id: i for i, step in enumerate(definition.steps)}

    def ref(step_id):
        return None if step_id is None else index[step_id]

    return {
        "trigger": (definition.trigger.type, definition.trigger.config),
        "steps": [
            (
                step.type,
                step.name,
                step.config,
                ref(step.next_step_id),
                [(b.id, b.name, ref(b.next_step_id)) for b in step.branches]
                if step.branches is not None
                else None,
            )
            for step in definition.steps
        ],
    }


def build_linear(session: WorkflowEditorSession) -> list[str]:
    t = session.add_node("trigger", "tag_added", config={"tag_ids": ["vip"]})
    a = session.add_node("action", "send_email", config={"subject": "Hello"})
    w = session.add_node("wait", "wait", config={"duration": 2, "unit": "days"})
    b = session.add_node("action", "add_tag", config={"tag_ids": ["done"]})
    session.add_edge(t, a)
    session.add_edge(a, w)
    session.add_edge(w, b)
    return [t, a, w, b]


def build_branching(session: WorkflowEditorSession) -> list[str]:
    t = session.add_node("trigger", "deal_stage_changed", config={"to_stage_id": "won"})
    c = session.add_node(
        "condition",
        "condition",
        branches=[{"id": "yes", "name": "Yes"}, {"id": "no", "name": "No"}],
    )
    a = session.add_node("action", "create_task", label="A", config={"title": "Call"})
    b = session.add_node("action", "send_sms", label="B", config={"message": "Thanks"})
    session.add_edge(t, c)
    session.add_edge(c, a, source_handle="yes", label="Yes")
    session.add_edge(c, b, source_handle="no", label="No")
    return [t, c, a, b]


class TestExport:
    def test_linear_workflow(self):
        s = make_session()
        build_linear(s)
        assert s.validate().is_valid

        definition = s.export()

        assert definition.trigger.type == "tag_added"
        assert definition.trigger.config == {"tag_ids": ["vip"]}
        steps = definition.steps
        assert len(steps) == 3
        assert steps[0].next_step_id == steps[1].id
        assert steps[1].next_step_id == steps[2].id
        assert steps[2].next_step_id is None
        assert steps[1].config == {"duration": 2, "unit": "days"}
        assert all(step.branches is None for step in steps)

    def test_branching_workflow(self):
        s = make_session()
        build_branching(s)

        definition = s.export()

        condition, a, b = definition.steps
        assert condition.branches[0].id == "yes"
        assert condition.branches[0].next_step_id == a.id
        assert condition.branches[1].next_step_id == b.id
        assert condition.next_step_id is None
        assert "next_step_id" not in definition.to_wire()["steps"][0]
        assert definition.to_wire()["steps"][1]["next_step_id"] is None

    def test_unconnected_branch_is_null(self):
        s = make_session()
        t = s.add_node("trigger", "manual")
        c = s.add_node("condition", "split", branches=[{"id": "a", "name": "A"}])
        s.add_edge(t, c)
        definition = s.export()
        assert definition.steps[0].branches[0].next_step_id is None

    def test_missing_trigger_raises(self):
        s = make_session()
        s.add_node("action", "send_sms")
        with pytest.raises(ExportError, match="trigger"):
            s.export()

    def test_step_ids_are_fresh_each_export(self):
        s = make_session()
        nodes = build_linear(s)
        first = s.export()
        second = s.export()
        assert {st.id for st in first.steps}.isdisjoint({st.id for st in second.steps})
        assert {st.id for st in first.steps}.isdisjoint(nodes)
        assert topology(first) == topology(second)

    def test_metadata_and_positions(self):
        s = make_session()
        s.set_workflow_id("wf-1")
        s.set_description("")
        s.set_status("active")
        t = s.add_node("trigger", "manual")
        a = s.add_node("action", "end", position={"x": 7, "y": 8})
        s.add_edge(t, a)
        definition = s.export()
        assert definition.id == "wf-1"
        assert definition.description is None
        assert definition.status == WorkflowStatus.ACTIVE
        assert definition.steps[0].position == Position(x=7, y=8)
        assert definition.steps[0].name == "End"

    def test_trigger_with_step_type_never_reaches_export(self):
        s = make_session()
        with pytest.raises(ValidationError, match="step type"):
            s.add_node("trigger", "send_sms")
        with pytest.raises(ExportError, match="trigger"):
            s.export()


class TestLoad:
    def test_load_builds_graph(self):
        s = make_session()
        build_branching(s)
        definition = s.export()

        fresh = make_session()
        fresh.set_name("dirty")
        fresh.load(definition)

        assert not fresh.is_dirty
        assert fresh.name == "Scenario"
        kinds = [n.kind for n in fresh.nodes]
        assert kinds == [NodeKind.TRIGGER, NodeKind.CONDITION, NodeKind.ACTION, NodeKind.ACTION]
        trigger = fresh.nodes[0]
        assert trigger.label == "Deal Stage Changed"
        assert trigger.position == Position(x=250, y=50)
        handles = sorted((e.source_handle, e.label) for e in fresh.edges if e.source_handle)
        assert handles == [("no", "No"), ("yes", "Yes")]
        assert fresh.validate().is_valid

    def test_default_layout_when_position_missing(self):
        definition = WorkflowDefinition(
            name="layout",
            trigger={"type": "manual"},
            steps=[
                {"id": "a", "type": "send_sms", "name": "A", "next_step_id": "b"},
                {"id": "b", "type": "wait", "name": "B", "config": {"duration": 1}},
            ],
        )
        ids = count()
        nodes, edges = build_graph(definition, lambda: f"g{next(ids)}")
        assert [n.position.y for n in nodes] == [50, 150, 250]
        assert nodes[2].kind == NodeKind.WAIT
        assert [(e.source_node_id, e.target_node_id) for e in edges] == [
            (nodes[0].id, nodes[1].id),
            (nodes[1].id, nodes[2].id),
        ]

    def test_logic_types_map_to_condition(self):
        definition = WorkflowDefinition(
            name="kinds",
            trigger={"type": "manual"},
            steps=[
                {"id": "g", "type": "go_to", "name": "Jump"},
                {"id": "e", "type": "end", "name": "Stop"},
            ],
        )
        nodes, _ = build_graph(definition, iter(map(str, count())).__next__)
        assert [n.kind for n in nodes[1:]] == [NodeKind.CONDITION, NodeKind.CONDITION]

    def test_dangling_references_skipped(self):
        definition = WorkflowDefinition(
            name="dangling",
            trigger={"type": "manual"},
            steps=[{"id": "a", "type": "send_sms", "name": "A", "next_step_id": "nowhere"}],
        )
        nodes, edges = build_graph(definition, iter(map(str, count())).__next__)
        assert len(edges) == 1
        assert edges[0].source_node_id == nodes[0].id

    def test_empty_steps_has_no_edges(self):
        definition = WorkflowDefinition(name="bare", trigger={"type": "manual"})
        nodes, edges = build_graph(definition, iter(map(str, count())).__next__)
        assert len(nodes) == 1
        assert edges == []


    def test_invalid_stored_config_loads_with_warning(self):
        definition = WorkflowDefinition(
            name="legacy",
            trigger={"type": "tag_added", "config": {"tag_ids": "vip"}},
            steps=[
                {
                    "id": "w",
                    "type": "wait",
                    "name": "Pause",
                    "config": {"duration": 2, "unit": "months"},
                },
            ],
        )
        with capture_logs() as logs:
            nodes, edges = build_graph(definition, iter(map(str, count())).__next__)

        assert [n.node_type for n in nodes] == ["tag_added", "wait"]
        assert len(edges) == 1
        invalid = [log for log in logs if log["event"] == "serializer.config_invalid"]
        assert [(log["node_type"], log["step_id"]) for log in invalid] == [
            ("tag_added", None),
            ("wait", "w"),
        ]
        assert all(log["log_level"] == "warning" for log in invalid)


class TestRoundTrip:
    @pytest.mark.parametrize("builder", [build_linear, build_branching])
    def test_round_trip_preserves_topology(self, builder):
        s = make_session()
        builder(s)
        original = s.export()

        reloaded = make_session()
        reloaded.load(original)
        again = reloaded.export()

        assert topology(again) == topology(original)
        assert [st.position for st in again.steps] == [st.position for st in original.steps]

    def test_round_trip_keeps_unknown_config_keys(self):
        s = make_session()
        t = s.add_node("trigger", "manual", config={"source": "import"})
        a = s.add_node("action", "send_sms", config={"message": "hi", "sender_id": "ACME"})
        s.add_edge(t, a)
        reloaded = make_session()
        reloaded.load(s.export())
        again = reloaded.export()
        assert again.trigger.config == {"source": "import"}
        assert again.steps[0].config == {"message": "hi", "sender_id": "ACME"}

    def test_round_trip_keeps_invalid_config_as_stored(self):
        stored = WorkflowDefinition(
            name="legacy",
            trigger={"type": "manual"},
            steps=[
                {
                    "id": "w",
                    "type": "wait",
                    "name": "Pause",
                    "config": {"duration": 2, "unit": "months", "note": "old"},
                },
            ],
        )
        s = make_session()
        s.load(stored)
        again = s.export()

        assert again.steps[0].config == {"duration": 2, "unit": "months", "note": "old"}
        assert check_activation(again) == ["Pause: Invalid configuration for 'unit'"]
