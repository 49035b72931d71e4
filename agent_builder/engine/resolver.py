#!/usr/bin/env python3
"""
Dependency resolution for workflows.

Computes the order in which nodes run: every node after all of the nodes
feeding into it, ties broken by edge-list order.
"""
import logging
from collections import defaultdict
from typing import Dict, List, Sequence, Set

from agent_builder.errors import CycleError
from agent_builder.nodes.base import Edge, Node, NodeType

logger = logging.getLogger(__name__)


def _known_edges(nodes: Sequence[Node], edges: Sequence[Edge]) -> List[Edge]:
    node_ids = {node.id for node in nodes}
    known = []
    for edge in edges:
        if edge.source not in node_ids or edge.target not in node_ids:
            logger.warning("Ignoring edge %s -> %s: unknown node", edge.source, edge.target)
            continue
        known.append(edge)
    return known


def seed_nodes(nodes: Sequence[Node], edges: Sequence[Edge]) -> List[str]:
    """Entry points: input nodes plus nodes with no incoming edge, in node-list order"""
    targets = {edge.target for edge in edges}
    return [
        node.id for node in nodes
        if node.type is NodeType.INPUT or node.id not in targets
    ]


def reachable_nodes(seeds: Sequence[str], edges: Sequence[Edge]) -> List[str]:
    """Forward closure of the seeds over outgoing edges, in discovery order"""
    outgoing: Dict[str, List[str]] = defaultdict(list)
    for edge in edges:
        outgoing[edge.source].append(edge.target)

    discovered: List[str] = []
    seen: Set[str] = set()
    for seed in seeds:
        stack = [seed]
        while stack:
            node_id = stack.pop()
            if node_id in seen:
                continue
            seen.add(node_id)
            discovered.append(node_id)
            # reversed so successors pop in edge-list order
            stack.extend(reversed([t for t in outgoing[node_id] if t not in seen]))
    return discovered


def run_scope(nodes: Sequence[Node], edges: Sequence[Edge]) -> List[str]:
    """Ids of the nodes a run covers: the forward closure of the seeds"""
    edges = _known_edges(nodes, edges)
    return reachable_nodes(seed_nodes(nodes, edges), edges)


def execution_order(nodes: Sequence[Node], edges: Sequence[Edge],
                    allow_cycles: bool = False) -> List[str]:
    """
    Compute a dependency-respecting execution order.

    Depth-first post-order over predecessors, started from every node
    reachable from a seed (see ``seed_nodes``). Nodes not reachable from any
    seed are left out and never run.

    Args:
        nodes: Workflow nodes
        edges: Workflow edges
        allow_cycles: When False a dependency cycle raises CycleError; when
            True the visited guard alone breaks it and the order is whatever
            the traversal produces

    Returns:
        Node ids, each exactly once
    """
    edges = _known_edges(nodes, edges)
    reachable = run_scope(nodes, edges)
    in_scope = set(reachable)

    incoming: Dict[str, List[str]] = defaultdict(list)
    for edge in edges:
        incoming[edge.target].append(edge.source)

    visited: Set[str] = set()
    visiting: List[str] = []
    order: List[str] = []

    def visit(node_id: str):
        visited.add(node_id)
        visiting.append(node_id)
        for source in incoming[node_id]:
            if source not in in_scope:
                continue
            if source in visiting and not allow_cycles:
                cycle = visiting[visiting.index(source):] + [source]
                raise CycleError(cycle)
            if source not in visited:
                visit(source)
        visiting.pop()
        order.append(node_id)

    for node_id in reachable:
        if node_id not in visited:
            visit(node_id)

    skipped = len(nodes) - len(order)
    if skipped:
        logger.debug("%d node(s) unreachable from any entry point", skipped)
    return order
