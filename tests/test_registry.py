from __future__ import annotations

import pytest

from agent_builder.errors import ConfigurationError, RegistryError
from agent_builder.nodes.base import Node, NodeHandler, NodeType
from agent_builder.nodes.core_nodes import InputHandler
from agent_builder.nodes.registry import HandlerRegistry, get_registry


def test_every_node_type_has_a_handler() -> None:
    registry = get_registry()

    assert registry.missing_node_types() == []
    assert registry.list_node_types() == list(NodeType)


def test_describe_lists_types_with_metadata() -> None:
    described = {info["type"]: info for info in get_registry().describe()}

    assert described["llm"]["title"] == "AI Model"
    assert described["llm"]["category"] == "core"
    assert described["xcm"]["requires_wallet"] is True
    assert described["input"]["requires_wallet"] is False


@pytest.mark.parametrize(
    "node_type, title",
    [("llm", "AI Model"), ("xcm", "Cross-Chain"), ("nft", "NFT"), ("governance", "Governance")],
)
def test_display_name_uses_node_type_title(node_type: str, title: str) -> None:
    assert Node.create("n", node_type, {}).display_name == title
    assert Node.create("n", node_type, {}, label="Mine").display_name == "Mine"


def test_incomplete_registry_is_rejected() -> None:
    registry = HandlerRegistry()
    registry.register(InputHandler)

    with pytest.raises(RegistryError, match="llm"):
        registry.check_complete()


def test_second_handler_for_a_type_is_rejected() -> None:
    class OtherInput(NodeHandler):
        node_type = NodeType.INPUT

        def execute(self, node, nodes, edges, results, context):
            return "other"

    registry = HandlerRegistry()
    registry.register(InputHandler)

    with pytest.raises(RegistryError):
        registry.register(OtherInput)


def test_handler_without_node_type_is_rejected() -> None:
    class Untyped(NodeHandler):
        def execute(self, node, nodes, edges, results, context):
            return None

    with pytest.raises(RegistryError):
        HandlerRegistry().register(Untyped)


def test_missing_handler_lookup_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="Unknown node type: output"):
        HandlerRegistry().get_handler(NodeType.OUTPUT)


def test_unknown_type_tag_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        NodeType.parse("teleporter")
