from __future__ import annotations

import json
import sys

import pytest

from agent_builder.workflows import cli

from conftest import ALICE


def _write(tmp_path, nodes, edges=()):
    path = tmp_path / "workflow.json"
    path.write_text(json.dumps({"nodes": nodes, "edges": list(edges)}), encoding="utf-8")
    return path


def _main(monkeypatch, *argv: str) -> int:
    monkeypatch.setattr(sys, "argv", ["agent-builder", *argv])
    try:
        cli.main()
    except SystemExit as e:
        return e.code or 0
    return 0


def test_list_nodes_groups_by_category(monkeypatch, capsys) -> None:
    assert _main(monkeypatch, "list-nodes") == 0

    out = capsys.readouterr().out
    assert "CORE:" in out and "POLKADOT:" in out
    assert "governance" in out


def test_validate_reports_unknown_edge_node(tmp_path, monkeypatch, capsys) -> None:
    path = _write(tmp_path, [{"id": "in", "type": "input"}], [{"source": "in", "target": "ghost"}])

    assert _main(monkeypatch, "validate", str(path)) == 1
    assert "Edge references unknown node: ghost" in capsys.readouterr().out


def test_execute_writes_results_and_exits_zero(tmp_path, monkeypatch) -> None:
    path = _write(tmp_path, [
        {"id": "in", "type": "input", "config": {"text": "hello"}},
        {"id": "out", "type": "output", "config": {"format": "json"}},
    ], [{"source": "in", "target": "out"}])
    output = tmp_path / "results.json"

    assert _main(monkeypatch, "execute", str(path), "--output", str(output)) == 0

    saved = json.loads(output.read_text(encoding="utf-8"))
    assert saved["success"] is True
    assert json.loads(saved["results"]["out"]["result"]) == {"output": "hello"}
    assert saved["logs"][-1]["type"] == "success"


@pytest.mark.parametrize("extra, expected", [((), 1), (("--account", ALICE), 0)])
def test_execute_exit_status_follows_failures(tmp_path, monkeypatch, extra, expected) -> None:
    path = _write(tmp_path, [{"id": "w", "type": "wallet", "config": {"action": "address"}}])

    assert _main(monkeypatch, "execute", str(path), *extra) == expected


def test_missing_workflow_file(tmp_path, monkeypatch, capsys) -> None:
    assert _main(monkeypatch, "execute", str(tmp_path / "nope.json")) == 1
    assert "Workflow file not found" in capsys.readouterr().err
