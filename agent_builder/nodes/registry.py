#!/usr/bin/env python3
"""
Handler registry for node types.

Maps every NodeType to exactly one handler. Handler modules in this package
register themselves with ``@register_handler``; ``get_registry`` imports
them and refuses to start if any node type is left without a handler.
"""
import importlib
import logging
import pkgutil
from typing import Any, Dict, List, Mapping, Optional, Sequence, Type

from agent_builder.errors import ConfigurationError, RegistryError
from .base import Edge, Node, NodeHandler, NodeType

logger = logging.getLogger(__name__)

# Modules in this package that only hold shared code
_NON_HANDLER_MODULES = {"base", "registry"}


class HandlerRegistry:
    """Registry for all node-type handlers"""

    def __init__(self):
        self._handlers: Dict[NodeType, NodeHandler] = {}
        self._metadata: Dict[NodeType, Dict] = {}

    def register(self, handler_class: Type[NodeHandler], metadata: Optional[Dict] = None):
        """
        Register a handler class for its node type.

        Args:
            handler_class: NodeHandler subclass with a ``node_type`` attribute
            metadata: Optional metadata (category, description)
        """
        node_type = getattr(handler_class, "node_type", None)
        if not isinstance(node_type, NodeType):
            raise RegistryError(f"{handler_class.__name__} does not declare a node_type")

        existing = self._handlers.get(node_type)
        if existing is not None and type(existing) is not handler_class:
            raise RegistryError(
                f"Node type '{node_type.value}' already handled by {type(existing).__name__}"
            )

        self._handlers[node_type] = handler_class()
        self._metadata[node_type] = dict(metadata or {})

    def get_handler(self, node_type: NodeType) -> NodeHandler:
        """Get the handler for a node type"""
        handler = self._handlers.get(node_type)
        if handler is None:
            label = node_type.value if isinstance(node_type, NodeType) else node_type
            raise ConfigurationError(f"Unknown node type: {label}")
        return handler

    def list_node_types(self) -> List[NodeType]:
        """List all registered node types in declaration order"""
        return [node_type for node_type in NodeType if node_type in self._handlers]

    def get_node_metadata(self, node_type: NodeType) -> Dict:
        """Get metadata for a node type"""
        return self._metadata.get(node_type, {})

    def missing_node_types(self) -> List[NodeType]:
        """Node types that have no handler"""
        return [node_type for node_type in NodeType if node_type not in self._handlers]

    def check_complete(self):
        """Raise RegistryError unless every node type has a handler"""
        missing = self.missing_node_types()
        if missing:
            names = ", ".join(node_type.value for node_type in missing)
            raise RegistryError(f"No handler registered for node type(s): {names}")

    def describe(self) -> List[Dict[str, Any]]:
        """Describe all registered node types"""
        described = []
        for node_type in self.list_node_types():
            handler = self._handlers[node_type]
            metadata = self.get_node_metadata(node_type)
            described.append({
                "type": node_type.value,
                "title": node_type.title,
                "description": metadata.get("description", handler.get_description()),
                "category": metadata.get("category", "other"),
                "requires_wallet": node_type.requires_wallet,
            })
        return described

    def execute(self, node: Node, nodes: Sequence[Node], edges: Sequence[Edge],
                results: Mapping[str, Any], context: Any) -> Any:
        """Dispatch a node to its handler"""
        return self.get_handler(node.type).execute(node, nodes, edges, results, context)

    def discover_handlers(self, package_name: str = __package__):
        """
        Import every handler module in a package.

        Importing a module runs its ``@register_handler`` decorators.

        Args:
            package_name: Dotted name of the package holding handler modules
        """
        package = importlib.import_module(package_name)
        for module_info in pkgutil.iter_modules(package.__path__):
            name = module_info.name
            if name.startswith("_") or name in _NON_HANDLER_MODULES:
                continue
            importlib.import_module(f"{package_name}.{name}")
            logger.debug("Loaded handler module %s.%s", package_name, name)


# Handlers registered at import time, before any registry exists
_pending: List[tuple] = []

# Global registry instance
_registry = None


def register_handler(metadata: Optional[Dict] = None):
    """
    Decorator to register a handler class.

    Usage:
        @register_handler(metadata={"category": "core"})
        class InputHandler(NodeHandler):
            node_type = NodeType.INPUT
            ...
    """
    def decorator(handler_class: Type[NodeHandler]):
        _pending.append((handler_class, metadata))
        if _registry is not None:
            _registry.register(handler_class, metadata)
        return handler_class
    return decorator


def get_registry() -> HandlerRegistry:
    """Get the global handler registry (lazy initialization)"""
    global _registry
    if _registry is None:
        registry = HandlerRegistry()
        registry.discover_handlers()
        for handler_class, metadata in _pending:
            registry.register(handler_class, metadata)
        registry.check_complete()
        _registry = registry
    return _registry
