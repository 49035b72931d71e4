"""
Execution engine for node-based workflows.

Handles dependency resolution, input aggregation and sequential execution.
"""
from .context import Account, ExecutionContext, TransactionSigner
from .data import (
    ExecutionResult,
    LogEntry,
    LogType,
    NodeStatus,
    RunSummary,
    gather_input,
    summarize,
)
from .executor import WorkflowExecutor, execute_workflow
from .resolver import execution_order

__all__ = [
    'Account',
    'ExecutionContext',
    'TransactionSigner',
    'ExecutionResult',
    'LogEntry',
    'LogType',
    'NodeStatus',
    'RunSummary',
    'gather_input',
    'summarize',
    'WorkflowExecutor',
    'execute_workflow',
    'execution_order',
]
