from __future__ import annotations

import pytest
from pydantic import ValidationError

from flowbuilder.models.configs import SplitConfig
from flowbuilder.models.graph import (
    NamedBranches,
    NodeBranch,
    SingleExit,
    WorkflowEdge,
    WorkflowNode,
    exits_for,
)


class TestExits:
    def test_none_is_single_exit(self):
        assert isinstance(exits_for(None), SingleExit)

    def test_branches(self):
        exits = exits_for([NodeBranch(id="a", name="A")])
        assert isinstance(exits, NamedBranches)
        assert exits.branch_ids() == ["a"]

    def test_named_branches_cannot_be_empty(self):
        with pytest.raises(ValidationError):
            NamedBranches(branches=[])


class TestWorkflowNode:
    def test_config_typed_by_node_type(self):
        node = WorkflowNode(id="n", kind="condition", node_type="split", config={"split_type": "percentage"})
        assert isinstance(node.config, SplitConfig)
        assert node.branches is None

    def test_default_config(self):
        node = WorkflowNode(id="n", kind="action", node_type="end")
        assert node.config.dump() == {}

    def test_exits_from_dict(self):
        node = WorkflowNode(
            id="n",
            kind="condition",
            node_type="condition",
            exits={"shape": "branches", "branches": [{"id": "y", "name": "Y"}]},
        )
        assert node.branches[0].id == "y"

    def test_unknown_kind(self):
        with pytest.raises(ValidationError):
            WorkflowNode(id="n", kind="loop", node_type="end")

    def test_trigger_kind_requires_trigger_type(self):
        with pytest.raises(ValidationError, match="cannot use step type"):
            WorkflowNode(id="n", kind="trigger", node_type="send_email")

    def test_step_kinds_reject_trigger_types(self):
        with pytest.raises(ValidationError, match="cannot use trigger type"):
            WorkflowNode(id="n", kind="action", node_type="tag_removed")
        with pytest.raises(ValidationError, match="cannot use trigger type"):
            WorkflowNode(id="n", kind="wait", node_type="manual")

    def test_dump_keeps_config_fields(self):
        node = WorkflowNode(id="n", kind="wait", node_type="wait", config={"duration": 2})
        assert node.model_dump()["config"]["duration"] == 2


class TestWorkflowEdge:
    def test_key(self):
        edge = WorkflowEdge(id="e", source_node_id="a", target_node_id="b", source_handle="yes")
        assert edge.key() == ("a", "b", "yes")
