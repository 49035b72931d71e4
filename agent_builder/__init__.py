"""
Visual Agent Builder - workflow execution engine.

Runs graphs of AI, tool and Polkadot nodes built in the visual editor.
"""
from agent_builder.engine import ExecutionContext, ExecutionResult, WorkflowExecutor, execute_workflow
from agent_builder.nodes import Edge, Node, NodeType

__version__ = "0.1.0"

__all__ = [
    'ExecutionContext',
    'ExecutionResult',
    'WorkflowExecutor',
    'execute_workflow',
    'Edge',
    'Node',
    'NodeType',
]
