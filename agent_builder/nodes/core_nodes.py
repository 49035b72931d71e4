#!/usr/bin/env python3
"""
Core nodes: workflow input and output.
"""
import json
from typing import Any, Callable, Dict, Mapping, Sequence

from agent_builder.engine.data import gather_input
from .base import Edge, Node, NodeHandler, NodeType
from .registry import register_handler

DEFAULT_INPUT_TEXT = "Default input text"


@register_handler(metadata={"category": "core",
                            "description": "Text input for queries and data"})
class InputHandler(NodeHandler):
    """Returns the node's configured text"""

    node_type = NodeType.INPUT

    def execute(self, node: Node, nodes: Sequence[Node], edges: Sequence[Edge],
                results: Mapping[str, Any], context: Any) -> str:
        config = self.config_of(node)
        return config.text or DEFAULT_INPUT_TEXT


def format_text(data: str) -> str:
    return data


def format_json(data: str) -> str:
    return json.dumps({"output": data}, indent=2)


def format_markdown(data: str) -> str:
    return f"# Output\n\n{data}"


def format_table(data: str) -> str:
    cell = data.replace("|", "\\|").replace("\n", "<br>")
    return f"| Output |\n| --- |\n| {cell} |"


OUTPUT_FORMATS: Dict[str, Callable[[str], str]] = {
    "text": format_text,
    "json": format_json,
    "markdown": format_markdown,
    "table": format_table,
}


@register_handler(metadata={"category": "core",
                            "description": "Display results and data"})
class OutputHandler(NodeHandler):
    """Formats upstream results as text, JSON, markdown or a table"""

    node_type = NodeType.OUTPUT

    def execute(self, node: Node, nodes: Sequence[Node], edges: Sequence[Edge],
                results: Mapping[str, Any], context: Any) -> str:
        config = self.config_of(node)
        data = gather_input(node, edges, results)
        formatter = OUTPUT_FORMATS.get(config.format.lower(), format_text)
        return formatter(data)
