#!/usr/bin/env python3
"""
Data management for node-based workflows.

Result and log records produced by a run, and the input aggregation that
feeds upstream results into a node.
"""
import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence

from agent_builder.nodes.base import Edge, Node


class NodeStatus(Enum):
    """Outcome of a single node execution"""
    COMPLETED = "completed"
    DEGRADED = "degraded"  # ran in fallback/demo mode
    ERROR = "error"


class LogType(Enum):
    """Severity of a run log entry"""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"

    @classmethod
    def parse(cls, value: Any) -> "LogType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.INFO


def utc_timestamp() -> str:
    """Current time as an ISO-8601 string"""
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ExecutionResult:
    """Result of executing one node in one run"""
    status: NodeStatus
    result: Any = None
    error: Optional[str] = None
    reason: Optional[str] = None
    timestamp: str = ""

    @classmethod
    def completed(cls, result: Any) -> "ExecutionResult":
        return cls(status=NodeStatus.COMPLETED, result=result, timestamp=utc_timestamp())

    @classmethod
    def degraded(cls, result: Any, reason: str) -> "ExecutionResult":
        return cls(status=NodeStatus.DEGRADED, result=result, reason=reason,
                   timestamp=utc_timestamp())

    @classmethod
    def failed(cls, error: str) -> "ExecutionResult":
        return cls(status=NodeStatus.ERROR, error=error, timestamp=utc_timestamp())

    @property
    def ok(self) -> bool:
        return self.status is not NodeStatus.ERROR

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"status": self.status.value}
        if self.status is NodeStatus.ERROR:
            data["error"] = self.error
        else:
            data["result"] = self.result
        if self.reason:
            data["reason"] = self.reason
        data["timestamp"] = self.timestamp
        return data


@dataclass(frozen=True)
class LogEntry:
    """One entry of the run log"""
    id: int
    message: str
    type: LogType
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "message": self.message,
            "type": self.type.value,
            "timestamp": self.timestamp,
        }


class LogIdSequence:
    """Monotonic, time-derived ids (epoch milliseconds, bumped on collisions)"""

    def __init__(self):
        self._last = 0

    def next(self) -> int:
        candidate = time.time_ns() // 1_000_000
        self._last = candidate if candidate > self._last else self._last + 1
        return self._last


def stringify(value: Any) -> str:
    """Render a node result as text for downstream nodes"""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


def gather_input(node: Node, edges: Sequence[Edge],
                 results: Mapping[str, ExecutionResult]) -> str:
    """
    Collect the results of all nodes feeding into ``node``.

    Values of incoming edges are taken in edge-list order; missing or empty
    values (e.g. from failed upstream nodes) are dropped and the remaining
    ones are joined with a blank line.

    Args:
        node: Node to gather input for
        edges: All edges of the workflow
        results: Results recorded so far in the run

    Returns:
        The joined upstream text, or "" when the node has no upstream
    """
    incoming = [edge for edge in edges if edge.target == node.id]
    if not incoming:
        return ""

    inputs = []
    for edge in incoming:
        source_result = results.get(edge.source)
        value = source_result.result if source_result is not None else None
        if not value:
            continue
        inputs.append(stringify(value))

    return "\n\n".join(inputs)


@dataclass(frozen=True)
class RunSummary:
    """Totals for one run"""
    total: int
    completed: int
    degraded: int
    failed: int

    @property
    def success(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "total_nodes": self.total,
            "completed_nodes": self.completed,
            "degraded_nodes": self.degraded,
            "failed_nodes": self.failed,
        }


def summarize(results: Mapping[str, ExecutionResult]) -> RunSummary:
    """Count outcomes in a results map"""
    statuses = [result.status for result in results.values()]
    return RunSummary(
        total=len(statuses),
        completed=statuses.count(NodeStatus.COMPLETED),
        degraded=statuses.count(NodeStatus.DEGRADED),
        failed=statuses.count(NodeStatus.ERROR),
    )
