"""
Node types and handlers for the agent builder.

Every node type has one handler class; handler modules in this package
register themselves with the registry when imported.
"""
from .base import DegradedResult, Edge, Node, NodeConfig, NodeHandler, NodeType
from .registry import HandlerRegistry, get_registry, register_handler

__all__ = [
    'DegradedResult',
    'Edge',
    'Node',
    'NodeConfig',
    'NodeHandler',
    'NodeType',
    'HandlerRegistry',
    'get_registry',
    'register_handler',
]
