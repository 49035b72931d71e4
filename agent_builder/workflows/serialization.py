#!/usr/bin/env python3
"""
Workflow serialization format.

Handles saving and loading workflow documents as JSON. Nodes are accepted
in the flat ``{id, type, config}`` form or as saved by the visual editor
(``{id, type: "custom", data: {nodeType, config, label}, position}``).
"""
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence

from agent_builder.engine.data import utc_timestamp
from agent_builder.engine.resolver import execution_order
from agent_builder.errors import ConfigurationError, CycleError
from agent_builder.nodes.base import Edge, Node
from agent_builder.utils.common import load_json, save_json

WORKFLOW_VERSION = "1.0"


@dataclass
class WorkflowDocument:
    """A persisted workflow"""
    nodes: List[Node] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    timestamp: str = field(default_factory=utc_timestamp)
    version: str = WORKFLOW_VERSION


def node_from_dict(data: Mapping[str, Any]) -> Node:
    """Decode one node in either the flat or the editor form"""
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Node must be an object, got {type(data).__name__}")
    node_id = data.get("id")
    if not node_id:
        raise ConfigurationError("Node is missing 'id'")

    payload = data.get("data")
    if isinstance(payload, Mapping) and "nodeType" in payload:
        node_type = payload["nodeType"]
        config = payload.get("config")
        label = payload.get("label")
    else:
        node_type = data.get("type")
        config = data.get("config")
        label = data.get("label")

    if not node_type:
        raise ConfigurationError(f"Node {node_id} is missing its type")

    return Node.create(node_id, node_type, config, label=label, position=data.get("position"))


class WorkflowSerializer:
    """Handles workflow serialization and deserialization"""

    def serialize_workflow(self, document: WorkflowDocument) -> Dict[str, Any]:
        """
        Serialize a workflow to dictionary format.

        Args:
            document: Workflow to serialize

        Returns:
            Dictionary representation of workflow
        """
        return {
            "version": document.version,
            "timestamp": document.timestamp,
            "nodes": [node.to_dict() for node in document.nodes],
            "edges": [edge.to_dict() for edge in document.edges],
        }

    def deserialize_workflow(self, workflow_data: Mapping[str, Any]) -> WorkflowDocument:
        """
        Deserialize a workflow from dictionary format.

        Every node is decoded before reporting, so one ConfigurationError
        lists all invalid nodes.

        Args:
            workflow_data: Dictionary representation of workflow

        Returns:
            WorkflowDocument
        """
        if not isinstance(workflow_data, Mapping):
            raise ConfigurationError("Workflow document must be a JSON object")

        nodes: List[Node] = []
        problems: List[str] = []
        seen = set()
        for index, node_data in enumerate(workflow_data.get("nodes") or []):
            try:
                node = node_from_dict(node_data)
            except ConfigurationError as e:
                problems.append(f"node #{index}: {e}")
                continue
            if node.id in seen:
                problems.append(f"node #{index}: duplicate node id '{node.id}'")
                continue
            seen.add(node.id)
            nodes.append(node)

        edges: List[Edge] = []
        for index, edge_data in enumerate(workflow_data.get("edges") or []):
            try:
                if not isinstance(edge_data, Mapping):
                    raise ConfigurationError("edge must be an object")
                edges.append(Edge.from_dict(edge_data))
            except ConfigurationError as e:
                problems.append(f"edge #{index}: {e}")

        if problems:
            raise ConfigurationError("Invalid workflow: " + "; ".join(problems))

        return WorkflowDocument(
            nodes=nodes,
            edges=edges,
            timestamp=str(workflow_data.get("timestamp") or utc_timestamp()),
            version=str(workflow_data.get("version") or WORKFLOW_VERSION),
        )

    def save_workflow(self, workflow_path: Path, document: WorkflowDocument):
        """
        Save workflow to JSON file.

        Args:
            workflow_path: Path to save workflow file
            document: Workflow to save
        """
        save_json(self.serialize_workflow(document), workflow_path)

    def load_workflow(self, workflow_path: Path) -> WorkflowDocument:
        """
        Load workflow from JSON file.

        Args:
            workflow_path: Path to workflow file

        Returns:
            WorkflowDocument
        """
        try:
            workflow_data = load_json(workflow_path)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"{workflow_path} is not valid JSON: {e}") from None
        return self.deserialize_workflow(workflow_data)


def validate_workflow(nodes: Sequence[Node], edges: Sequence[Edge],
                      allow_cycles: bool = False) -> List[str]:
    """
    Check a decoded workflow's graph for problems.

    Returns:
        Human-readable problems; empty when the workflow can run as a whole
    """
    errors: List[str] = []
    node_ids = {node.id for node in nodes}

    for edge in edges:
        if edge.source not in node_ids:
            errors.append(f"Edge references unknown node: {edge.source}")
        if edge.target not in node_ids:
            errors.append(f"Edge references unknown node: {edge.target}")

    try:
        order = execution_order(nodes, edges, allow_cycles=allow_cycles)
    except CycleError as e:
        errors.append(str(e))
        return errors

    scheduled = set(order)
    unreachable = [node.id for node in nodes if node.id not in scheduled]
    if unreachable:
        errors.append(f"Node(s) unreachable from any entry point, will not run: "
                      f"{', '.join(unreachable)}")
    return errors
