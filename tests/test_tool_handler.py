from __future__ import annotations

import pytest

from agent_builder.engine.context import ExecutionContext
from agent_builder.errors import ConfigurationError, ExternalServiceError, InvalidExpressionError
from agent_builder.nodes import tool_nodes
from agent_builder.nodes.base import DegradedResult
from agent_builder.nodes.tool_nodes import ToolHandler
from agent_builder.utils.config import AppConfig

from conftest import node


def _run(tool):
    return ToolHandler().execute(tool, [tool], [], {}, ExecutionContext(config=AppConfig()))


def test_calculator_formats_result() -> None:
    assert _run(node("t", "tool", toolType="calculator", expression="2+2")) == "Calculation: 2+2 = 4"


def test_calculator_raises_on_garbage() -> None:
    with pytest.raises(InvalidExpressionError):
        _run(node("t", "tool", toolType="calculator", expression="hello"))


def test_web_search_is_a_labeled_stub() -> None:
    result = _run(node("t", "tool", toolType="web-search", query="polkadot parachains"))

    assert result.startswith('Mock Web Search Results for: "polkadot parachains"')


def test_unknown_tool_type_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="Unknown tool type: telepathy"):
        _run(node("t", "tool", toolType="telepathy"))


def test_price_lookup_uses_coingecko(monkeypatch) -> None:
    seen = {}

    def fake_get(url, params=None, headers=None, timeout=30):
        seen.update(url=url, params=params)
        return {"polkadot": {"usd": 6.5}}

    monkeypatch.setattr(tool_nodes, "get_json", fake_get)

    assert _run(node("t", "tool", toolType="price", symbol="dot")) == "Price of DOT: 6.50 USD"
    assert seen["url"] == "https://api.coingecko.com/api/v3/simple/price"
    assert seen["params"] == {"ids": "polkadot", "vs_currencies": "usd"}


def test_price_failure_falls_back_to_mock(monkeypatch) -> None:
    def failing_get(url, params=None, headers=None, timeout=30):
        raise ExternalServiceError("GET failed")

    monkeypatch.setattr(tool_nodes, "get_json", failing_get)

    value = _run(node("t", "tool", toolType="price", symbol="DOT"))

    assert isinstance(value, DegradedResult)
    assert value.value.startswith("Price of DOT: 7.25 USD")
    assert value.reason == "GET failed"


def test_price_failure_without_mock_propagates(monkeypatch) -> None:
    def failing_get(url, params=None, headers=None, timeout=30):
        raise ExternalServiceError("GET failed")

    monkeypatch.setattr(tool_nodes, "get_json", failing_get)

    with pytest.raises(ExternalServiceError):
        _run(node("t", "tool", toolType="price", symbol="DOT", currency="eur"))
