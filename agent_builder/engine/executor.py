#!/usr/bin/env python3
"""
Workflow execution engine.

Runs nodes one at a time in dependency order, records a result for each,
and keeps a timestamped run log. A failing node is recorded as an error and
the run moves on to the next node.
"""
import dataclasses
import logging
from types import MappingProxyType
from typing import Dict, List, Optional, Sequence

from agent_builder.errors import CycleError
from agent_builder.nodes.base import DegradedResult, Edge, Node
from agent_builder.nodes.registry import HandlerRegistry, get_registry
from .context import ExecutionContext
from .data import ExecutionResult, LogEntry, LogIdSequence, LogType, summarize, utc_timestamp
from .resolver import execution_order, run_scope

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    LogType.INFO: logging.INFO,
    LogType.SUCCESS: logging.INFO,
    LogType.WARNING: logging.WARNING,
    LogType.ERROR: logging.ERROR,
}


class WorkflowExecutor:
    """Executes node-based workflows"""

    def __init__(self, registry: Optional[HandlerRegistry] = None,
                 allow_cycles: Optional[bool] = None):
        """
        Initialize workflow executor.

        Args:
            registry: Handler registry (default: the global registry)
            allow_cycles: Run graphs with dependency cycles instead of
                failing them (default: taken from the run's config)
        """
        self.registry = registry or get_registry()
        self.allow_cycles = allow_cycles
        self._execution_log: List[LogEntry] = []
        self._log_ids = LogIdSequence()
        self._context = ExecutionContext()

    def _emit(self, message: str, log_type: LogType = LogType.INFO):
        entry = LogEntry(
            id=self._log_ids.next(),
            message=message,
            type=LogType.parse(log_type),
            timestamp=utc_timestamp(),
        )
        self._execution_log.append(entry)
        logger.log(_LOG_LEVELS[entry.type], "%s", message)
        if self._context.on_log is not None:
            try:
                self._context.on_log(entry.message, entry.type)
            except Exception:
                logger.warning("Log callback failed for entry %d", entry.id, exc_info=True)

    def execute_workflow(self, nodes: Sequence[Node], edges: Sequence[Edge],
                         context: Optional[ExecutionContext] = None) -> Dict[str, ExecutionResult]:
        """
        Execute a complete workflow.

        Args:
            nodes: Nodes of the workflow
            edges: Edges between nodes
            context: Run-scoped collaborators (wallet state, log callback,
                signer, config)

        Returns:
            Mapping of node id to ExecutionResult, in execution order
        """
        self._context = context or ExecutionContext()
        self._execution_log = []
        run_context = dataclasses.replace(self._context, on_log=self._emit)

        allow_cycles = self.allow_cycles
        if allow_cycles is None:
            allow_cycles = run_context.settings.engine.allow_cycles

        results: Dict[str, ExecutionResult] = {}
        self._emit(f"Starting workflow execution ({len(nodes)} nodes, {len(edges)} edges)")

        try:
            order = execution_order(nodes, edges, allow_cycles=allow_cycles)
        except CycleError as e:
            self._emit(f"Workflow not executed: {e}", LogType.ERROR)
            for node_id in run_scope(nodes, edges):
                results[node_id] = ExecutionResult.failed(str(e))
            return results

        nodes_by_id = {node.id: node for node in nodes}
        read_only_results = MappingProxyType(results)

        for node_id in order:
            node = nodes_by_id.get(node_id)
            if node is None:
                continue

            self._emit(f"Executing {node.display_name} ({node.id})")
            try:
                value = self.registry.execute(node, nodes, edges, read_only_results, run_context)
            except Exception as e:
                results[node_id] = ExecutionResult.failed(str(e) or type(e).__name__)
                logger.debug("Node %s failed", node_id, exc_info=True)
                self._emit(f"{node.display_name} ({node.id}) failed: {results[node_id].error}",
                           LogType.ERROR)
                continue

            if isinstance(value, DegradedResult):
                results[node_id] = ExecutionResult.degraded(value.value, value.reason)
                self._emit(f"{node.display_name} ({node.id}) completed in fallback mode: "
                           f"{value.reason}", LogType.WARNING)
            else:
                results[node_id] = ExecutionResult.completed(value)
                self._emit(f"{node.display_name} ({node.id}) completed", LogType.SUCCESS)

        summary = summarize(results)
        self._emit(
            f"Workflow execution finished: {summary.completed} completed, "
            f"{summary.degraded} degraded, {summary.failed} failed",
            LogType.SUCCESS if summary.success else LogType.WARNING,
        )
        return results

    def get_execution_log(self) -> List[LogEntry]:
        """Get the log of the last run"""
        return list(self._execution_log)


def execute_workflow(nodes: Sequence[Node], edges: Sequence[Edge],
                     context: Optional[ExecutionContext] = None) -> Dict[str, ExecutionResult]:
    """Execute a workflow with a fresh executor"""
    return WorkflowExecutor().execute_workflow(nodes, edges, context)
