from __future__ import annotations

import uuid
from collections.abc import Callable
from typing import Any

import structlog
from pydantic import BaseModel, Field

from flowbuilder.core.catalog import default_label
from flowbuilder.core.registry import config_registry
from flowbuilder.core.serializer import build_graph, export_definition
from flowbuilder.core.validator import ValidationResult, validate_graph
from flowbuilder.models.configs import NodeConfig
from flowbuilder.models.graph import NodeBranch, NodeKind, WorkflowEdge, WorkflowNode, exits_for
from flowbuilder.models.settings import EditorConfig
from flowbuilder.models.workflow import (
    Position,
    WorkflowDefinition,
    WorkflowSettings,
    WorkflowStatus,
)

logger = structlog.get_logger()

IdFactory = Callable[[], str]

DEFAULT_NAME = "Untitled Workflow"

_NODE_FIELDS = {"kind", "node_type", "label", "config", "position", "exits", "branches"}
_NODE_DATA_FIELDS = {"node_type", "label", "config", "branches"}
_EDGE_FIELDS = {"source_node_id", "target_node_id", "source_handle", "label"}


def new_id() -> str:
    return uuid.uuid4().hex


class Viewport(BaseModel):
    zoom: float = 1.0
    pan: Position = Field(default_factory=Position)


class WorkflowEditorSession:
    """Editable node/edge graph for a single workflow.

    One session per edit context. Mutations are synchronous, never perform
    I/O, and keep every edge pointing at existing nodes. Calls that name an
    unknown node or edge are ignored (they come from stale UI references).
    """

    def __init__(
        self,
        config: EditorConfig | None = None,
        id_factory: IdFactory | None = None,
    ) -> None:
        self.config = config or EditorConfig()
        self.new_id = id_factory or new_id
        self._reset_state()

    def _reset_state(self) -> None:
        self.workflow_id: str | None = None
        self.name = DEFAULT_NAME
        self.description = ""
        self.status = WorkflowStatus.DRAFT
        self.settings = WorkflowSettings()
        self._nodes: dict[str, WorkflowNode] = {}
        self._edges: dict[str, WorkflowEdge] = {}
        self.selected_node_id: str | None = None
        self.selected_edge_id: str | None = None
        self.is_dirty = False
        self.validation_errors: dict[str, list[str]] = {}
        self.viewport = Viewport()

    # -- Read access -----------------------------------------------------------

    @property
    def nodes(self) -> list[WorkflowNode]:
        return list(self._nodes.values())

    @property
    def edges(self) -> list[WorkflowEdge]:
        return list(self._edges.values())

    def get_node(self, node_id: str) -> WorkflowNode | None:
        return self._nodes.get(node_id)

    def get_edge(self, edge_id: str) -> WorkflowEdge | None:
        return self._edges.get(edge_id)

    @property
    def selected_node(self) -> WorkflowNode | None:
        if self.selected_node_id is None:
            return None
        return self._nodes.get(self.selected_node_id)

    def has_trigger(self) -> bool:
        return any(n.kind == NodeKind.TRIGGER for n in self._nodes.values())

    # -- Workflow metadata -----------------------------------------------------

    def set_workflow_id(self, workflow_id: str | None) -> None:
        self.workflow_id = workflow_id

    def set_name(self, name: str) -> None:
        self.name = name
        self.is_dirty = True

    def set_description(self, description: str) -> None:
        self.description = description
        self.is_dirty = True

    def set_status(self, status: WorkflowStatus | str) -> None:
        self.status = WorkflowStatus(status)

    def update_settings(self, **changes: Any) -> None:
        self.settings = WorkflowSettings.model_validate(
            {**self.settings.model_dump(), **changes}
        )
        self.is_dirty = True

    # -- Nodes -----------------------------------------------------------------

    def add_node(
        self,
        kind: NodeKind | str,
        node_type: str,
        *,
        label: str | None = None,
        config: NodeConfig | dict[str, Any] | None = None,
        position: Position | dict[str, float] | None = None,
        branches: list[NodeBranch] | list[dict[str, Any]] | None = None,
    ) -> str:
        node_id = self.new_id()
        node = WorkflowNode(
            id=node_id,
            kind=kind,
            node_type=node_type,
            label=default_label(node_type) if label is None else label,
            config=config,
            position=position or Position(),
            exits=exits_for(branches),
        )
        self._nodes[node_id] = node
        self.is_dirty = True
        logger.debug("session.node_added", node_id=node_id, node_type=node.node_type)
        return node_id

    def update_node(self, node_id: str, **updates: Any) -> None:
        """Shallow-merge ``updates`` into the node's top-level fields."""
        self._check_fields(updates, _NODE_FIELDS)
        self._merge_node(node_id, updates)

    def update_node_data(self, node_id: str, **data: Any) -> None:
        """Shallow-merge type, label, config or branches. A given config replaces the old one."""
        self._check_fields(data, _NODE_DATA_FIELDS)
        self._merge_node(node_id, data)

    def update_node_config(self, node_id: str, **fields: Any) -> None:
        """Merge individual config fields into the node's existing config."""
        self.is_dirty = True
        node = self._nodes.get(node_id)
        if node is None:
            logger.debug("session.unknown_node", node_id=node_id, op="update_node_config")
            return
        merged = {**node.config.dump(), **fields}
        config = config_registry.build(node.node_type, merged)
        self._nodes[node_id] = node.model_copy(update={"config": config})

    def update_node_position(self, node_id: str, position: Position | dict[str, float]) -> None:
        self.is_dirty = True
        node = self._nodes.get(node_id)
        if node is None:
            logger.debug("session.unknown_node", node_id=node_id, op="update_node_position")
            return
        self._nodes[node_id] = node.model_copy(
            update={"position": Position.model_validate(position)}
        )

    def remove_node(self, node_id: str) -> None:
        """Remove a node together with every edge touching it."""
        self.is_dirty = True
        if self._nodes.pop(node_id, None) is None:
            logger.debug("session.unknown_node", node_id=node_id, op="remove_node")
            return
        self._drop_edges_for(node_id)
        if self.selected_node_id == node_id:
            self.selected_node_id = None

    def duplicate_node(self, node_id: str) -> str | None:
        """Clone a node without any of its edges. The clone becomes the selection."""
        node = self._nodes.get(node_id)
        if node is None:
            return None
        new_id = self.new_id()
        offset = self.config.duplicate_offset
        clone = node.model_copy(
            update={
                "id": new_id,
                "label": f"{node.label} (Copy)",
                "position": node.position.offset(offset, offset),
            },
            deep=True,
        )
        self._nodes[new_id] = clone
        self.selected_node_id = new_id
        self.is_dirty = True
        logger.debug("session.node_duplicated", source_id=node_id, node_id=new_id)
        return new_id

    # -- Edges -----------------------------------------------------------------

    def add_edge(
        self,
        source_node_id: str,
        target_node_id: str,
        source_handle: str | None = None,
        label: str | None = None,
    ) -> str:
        """Connect two nodes. Returns ``""`` if the edge already exists or an endpoint is unknown."""
        if source_node_id not in self._nodes or target_node_id not in self._nodes:
            logger.debug(
                "session.edge_rejected",
                reason="unknown node",
                source=source_node_id,
                target=target_node_id,
            )
            return ""
        key = (source_node_id, target_node_id, source_handle)
        if any(e.key() == key for e in self._edges.values()):
            logger.debug("session.edge_rejected", reason="duplicate", key=key)
            return ""

        edge_id = self.new_id()
        self._edges[edge_id] = WorkflowEdge(
            id=edge_id,
            source_node_id=source_node_id,
            target_node_id=target_node_id,
            source_handle=source_handle,
            label=label,
        )
        self.is_dirty = True
        return edge_id

    def update_edge(self, edge_id: str, **updates: Any) -> None:
        self._check_fields(updates, _EDGE_FIELDS)
        self.is_dirty = True
        edge = self._edges.get(edge_id)
        if edge is None:
            logger.debug("session.unknown_edge", edge_id=edge_id, op="update_edge")
            return
        updated = WorkflowEdge.model_validate({**edge.model_dump(), **updates})
        if updated.source_node_id not in self._nodes or updated.target_node_id not in self._nodes:
            logger.warning("session.edge_update_rejected", edge_id=edge_id, reason="unknown node")
            return
        if any(e.key() == updated.key() for e in self._edges.values() if e.id != edge_id):
            logger.warning("session.edge_update_rejected", edge_id=edge_id, reason="duplicate")
            return
        self._edges[edge_id] = updated

    def remove_edge(self, edge_id: str) -> None:
        self.is_dirty = True
        if self._edges.pop(edge_id, None) is None:
            logger.debug("session.unknown_edge", edge_id=edge_id, op="remove_edge")
        if self.selected_edge_id == edge_id:
            self.selected_edge_id = None

    def remove_edges_for_node(self, node_id: str) -> None:
        """Disconnect a node without deleting it."""
        self.is_dirty = True
        if node_id not in self._nodes:
            logger.debug("session.unknown_node", node_id=node_id, op="remove_edges_for_node")
        self._drop_edges_for(node_id)

    def outgoing_edges(self, node_id: str) -> list[WorkflowEdge]:
        return [e for e in self._edges.values() if e.source_node_id == node_id]

    def incoming_edges(self, node_id: str) -> list[WorkflowEdge]:
        return [e for e in self._edges.values() if e.target_node_id == node_id]

    def _drop_edges_for(self, node_id: str) -> None:
        self._edges = {
            eid: e
            for eid, e in self._edges.items()
            if e.source_node_id != node_id and e.target_node_id != node_id
        }
        if self.selected_edge_id is not None and self.selected_edge_id not in self._edges:
            self.selected_edge_id = None

    # -- Selection and viewport ------------------------------------------------

    def select_node(self, node_id: str | None) -> None:
        self.selected_node_id = node_id
        self.selected_edge_id = None

    def select_edge(self, edge_id: str | None) -> None:
        self.selected_edge_id = edge_id
        self.selected_node_id = None

    def clear_selection(self) -> None:
        self.selected_node_id = None
        self.selected_edge_id = None

    def set_zoom(self, zoom: float) -> None:
        self.viewport.zoom = min(max(zoom, self.config.min_zoom), self.config.max_zoom)

    def set_pan(self, position: Position | dict[str, float]) -> None:
        self.viewport.pan = Position.model_validate(position)

    def fit_view(self) -> None:
        self.viewport = Viewport()

    # -- Validation and persistence --------------------------------------------

    def validate(self, strict: bool = False) -> ValidationResult:
        result = validate_graph(self.name, self.nodes, self.edges, strict=strict)
        self.validation_errors = result.errors
        return result

    def clear_validation_errors(self) -> None:
        self.validation_errors = {}

    def export(self) -> WorkflowDefinition:
        """Convert the graph into a definition. Raises ExportError without a trigger."""
        return export_definition(self)

    def load(self, definition: WorkflowDefinition) -> None:
        """Replace the session contents with a graph built from ``definition``."""
        nodes, edges = build_graph(definition, self.new_id, self.config)
        self._reset_state()
        self.workflow_id = definition.id
        self.name = definition.name
        self.description = definition.description or ""
        self.status = definition.status
        self.settings = definition.settings.model_copy(deep=True)
        self._nodes = {n.id: n for n in nodes}
        self._edges = {e.id: e for e in edges}
        logger.info(
            "session.loaded",
            workflow_id=definition.id,
            nodes=len(nodes),
            edges=len(edges),
        )

    def reset(self) -> None:
        self._reset_state()

    def mark_clean(self) -> None:
        self.is_dirty = False

    # -- Internals -------------------------------------------------------------

    @staticmethod
    def _check_fields(updates: dict[str, Any], allowed: set[str]) -> None:
        unknown = set(updates) - allowed
        if unknown:
            raise ValueError(f"Cannot update unknown field(s): {sorted(unknown)}")

    def _merge_node(self, node_id: str, updates: dict[str, Any]) -> None:
        self.is_dirty = True
        node = self._nodes.get(node_id)
        if node is None:
            logger.debug("session.unknown_node", node_id=node_id, op="update_node")
            return
        fields: dict[str, Any] = {name: getattr(node, name) for name in WorkflowNode.model_fields}
        if "branches" in updates:
            fields["exits"] = exits_for(updates.pop("branches"))
        fields.update(updates)
        self._nodes[node_id] = WorkflowNode.model_validate(fields)
