from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

from agent_builder.engine.context import Account, ExecutionContext, TransactionSigner
from agent_builder.nodes.base import Edge, Node
from agent_builder.utils import config as config_module
from agent_builder.utils.config import AppConfig, ConfigManager

ALICE = "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch) -> ConfigManager:
    """Point the global config at an empty temp file with no credentials in the environment."""
    for name in ("OPENAI_API_KEY", "ANTHROPIC_API_KEY", "GEMINI_API_KEY", "DEFAULT_MODEL", "DEFAULT_NETWORK",
                 "COINGECKO_API_URL", "AGENT_BUILDER_HTTP_TIMEOUT", "AGENT_BUILDER_ALLOW_CYCLES"):
        monkeypatch.delenv(name, raising=False)
    manager = ConfigManager(tmp_path / "config.json")
    monkeypatch.setattr(config_module, "_config_manager", manager)
    return manager


class RecordingSigner(TransactionSigner):
    def __init__(self, balance: Optional[Dict[str, Any]] = None) -> None:
        self.calls: List[tuple] = []
        self.balance = balance

    def submit(self, network: str, call: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append((network, call))
        return {"tx_hash": "0xabc", "block_hash": "0xdef"}

    def get_balance(self, network: str, address: str) -> Optional[Dict[str, Any]]:
        return self.balance


def node(node_id: str, node_type: str, **config: Any) -> Node:
    return Node.create(node_id, node_type, config)


def edge(source: str, target: str) -> Edge:
    return Edge(source=source, target=target)


def connected_context(**kwargs: Any) -> ExecutionContext:
    kwargs.setdefault("config", AppConfig())
    return ExecutionContext(is_connected=True, account=Account(address=ALICE, meta={"name": "Alice"}),
                            **kwargs)
