#!/usr/bin/env python3
"""
Tool nodes: web search, calculator and token price lookup.
"""
import ast
import logging
import operator
import re
from typing import Any, Callable, Dict, Mapping, Sequence, Union

from agent_builder.engine.data import gather_input
from agent_builder.errors import ConfigurationError, ExternalServiceError, InvalidExpressionError
from agent_builder.utils.http import get_json
from .base import DegradedResult, Edge, Node, NodeHandler, NodeType, ToolConfig
from .registry import register_handler

logger = logging.getLogger(__name__)

Number = Union[int, float]

# ------------------ Calculator ------------------

_NON_MATH = re.compile(r"[^0-9+\-*/().\s]")

_BINARY_OPS: Dict[type, Callable[[Number, Number], Number]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
}

_UNARY_OPS: Dict[type, Callable[[Number], Number]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}


def _eval_node(node: ast.AST) -> Number:
    if isinstance(node, ast.Expression):
        return _eval_node(node.body)
    if isinstance(node, ast.Constant) and type(node.value) in (int, float):
        return node.value
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        left = _eval_node(node.left)
        right = _eval_node(node.right)
        if isinstance(node.op, ast.Div) and right == 0:
            raise InvalidExpressionError("Division by zero")
        return _BINARY_OPS[type(node.op)](left, right)
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_eval_node(node.operand))
    raise InvalidExpressionError()


def evaluate(expression: str) -> Number:
    """
    Evaluate a restricted arithmetic expression.

    Only digits, ``.``, ``( )`` and the operators ``+ - * /`` are kept; every
    other character is stripped first. Integral results come back as int.

    Raises:
        InvalidExpressionError: if nothing evaluable remains or the
            expression is malformed
    """
    cleaned = _NON_MATH.sub("", expression or "").strip()
    if not cleaned:
        raise InvalidExpressionError()
    try:
        tree = ast.parse(cleaned, mode="eval")
    except SyntaxError:
        raise InvalidExpressionError() from None

    try:
        value = _eval_node(tree)
    except (OverflowError, RecursionError):
        raise InvalidExpressionError() from None

    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


# ------------------ Price lookup ------------------

COINGECKO_IDS = {
    "DOT": "polkadot",
    "KSM": "kusama",
    "ACA": "acala",
    "GLMR": "moonbeam",
    "ASTR": "astar",
    "UNQ": "unique-network",
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "USDT": "tether",
}

# Used when the live lookup fails
MOCK_PRICES_USD = {
    "DOT": 7.25,
    "KSM": 32.10,
    "ACA": 0.09,
    "GLMR": 0.28,
    "ASTR": 0.07,
    "UNQ": 0.01,
    "BTC": 65000.0,
    "ETH": 3400.0,
    "USDT": 1.0,
}


def lookup_price(symbol: str, currency: str, api_url: str, timeout: float) -> float:
    """Fetch a token price from the CoinGecko simple-price API"""
    coin_id = COINGECKO_IDS.get(symbol.upper(), symbol.lower())
    data = get_json(
        f"{api_url.rstrip('/')}/simple/price",
        params={"ids": coin_id, "vs_currencies": currency.lower()},
        timeout=timeout,
    )
    try:
        return float(data[coin_id][currency.lower()])
    except (KeyError, TypeError, ValueError):
        raise ExternalServiceError(f"No {currency.upper()} price for {symbol.upper()}") from None


def web_search(query: str) -> str:
    """Stubbed web search"""
    return (
        f'Mock Web Search Results for: "{query}"\n\n'
        f"1. Example result 1 about {query}\n"
        f"2. Example result 2 about {query}\n"
        f"3. Example result 3 about {query}\n\n"
        "[Note: Integrate with a real search API for actual results]"
    )


@register_handler(metadata={"category": "core",
                            "description": "Web search, calculator, price lookup"})
class ToolHandler(NodeHandler):
    """Runs a built-in tool selected by ``toolType``"""

    node_type = NodeType.TOOL

    def execute(self, node: Node, nodes: Sequence[Node], edges: Sequence[Edge],
                results: Mapping[str, Any], context: Any) -> Any:
        config = self.config_of(node)
        input_text = gather_input(node, edges, results)

        tool_type = config.tool_type.lower()
        if tool_type == "web-search":
            return web_search(config.query or input_text)
        if tool_type == "calculator":
            expression = config.expression or input_text
            return f"Calculation: {expression} = {evaluate(expression)}"
        if tool_type == "price":
            return self._price(node, config, context)
        raise ConfigurationError(f"Unknown tool type: {config.tool_type}")

    def _price(self, node: Node, config: ToolConfig, context: Any) -> Any:
        symbol = config.symbol.upper()
        currency = config.currency.upper()
        settings = context.settings
        try:
            price = lookup_price(symbol, currency, settings.engine.price_api_url,
                                 settings.engine.http_timeout)
        except ExternalServiceError as e:
            mock = MOCK_PRICES_USD.get(symbol)
            if mock is None or currency != "USD":
                raise
            logger.warning("Price lookup for %s failed, using mock price: %s", symbol, e)
            context.log(f"{node.display_name}: live price unavailable, using mock data", "warning")
            return DegradedResult(
                f"Price of {symbol}: {mock:,.2f} {currency} [Note: mock data, live lookup failed]",
                reason=str(e),
            )
        return f"Price of {symbol}: {price:,.2f} {currency}"
