from __future__ import annotations

from agent_builder.engine.data import ExecutionResult, gather_input

from conftest import edge, node


def test_no_incoming_edges_gives_empty_input() -> None:
    target = node("out", "output")

    assert gather_input(target, [edge("out", "x")], {}) == ""


def test_values_are_joined_in_edge_order() -> None:
    target = node("out", "output")
    results = {
        "a": ExecutionResult.completed("first"),
        "b": ExecutionResult.completed("second"),
    }

    assert gather_input(target, [edge("b", "out"), edge("a", "out")], results) == "second\n\nfirst"


def test_failed_missing_and_empty_upstream_values_are_dropped() -> None:
    target = node("out", "output")
    results = {
        "a": ExecutionResult.completed("kept"),
        "b": ExecutionResult.failed("boom"),
        "c": ExecutionResult.completed(""),
    }
    edges = [edge("a", "out"), edge("b", "out"), edge("c", "out"), edge("missing", "out")]

    assert gather_input(target, edges, results) == "kept"


def test_degraded_values_feed_downstream_and_structures_become_json() -> None:
    target = node("out", "output")
    results = {
        "a": ExecutionResult.degraded("mock text", "no key"),
        "b": ExecutionResult.completed({"k": 1}),
    }

    assert gather_input(target, [edge("a", "out"), edge("b", "out")], results) == 'mock text\n\n{"k": 1}'
