from __future__ import annotations

from typing import Any, Dict

import pytest

from agent_builder.engine.context import ExecutionContext, TransactionSigner
from agent_builder.errors import (
    ConfigurationError,
    ExternalServiceError,
    PreconditionError,
    WalletNotConnectedError,
)
from agent_builder.nodes.base import CHAIN_NODE_TYPES, NodeType
from agent_builder.nodes.chain_nodes import format_balance, to_planck
from agent_builder.nodes.registry import get_registry
from agent_builder.utils.config import AppConfig

from conftest import ALICE, RecordingSigner, connected_context, node

BOB = "14E5nqKAp3oAJcmzgZhUD2RcptBeUBScxKHgJKU4HPNcKVf3"


class ExplodingSigner(TransactionSigner):
    def submit(self, network: str, call: Dict[str, Any]) -> Dict[str, Any]:
        raise AssertionError("signer must not be used")

    def get_balance(self, network: str, address: str):
        raise AssertionError("signer must not be used")


class FailingSigner(TransactionSigner):
    def submit(self, network: str, call: Dict[str, Any]) -> Dict[str, Any]:
        raise RuntimeError("user rejected the request")


def _run(n, context: ExecutionContext) -> Any:
    return get_registry().execute(n, [n], [], {}, context)


@pytest.mark.parametrize("node_type", sorted(t.value for t in CHAIN_NODE_TYPES))
def test_chain_nodes_require_a_connected_wallet(node_type: str) -> None:
    context = ExecutionContext(is_connected=False, signer=ExplodingSigner(), config=AppConfig())

    with pytest.raises(WalletNotConnectedError, match="Wallet not connected"):
        _run(node("n", node_type), context)


def test_connected_without_account_is_a_precondition_error() -> None:
    context = ExecutionContext(is_connected=True, config=AppConfig())

    with pytest.raises(PreconditionError):
        _run(node("w", "wallet"), context)


def test_wallet_balance_is_simulated_without_signer() -> None:
    result = _run(node("w", "wallet", action="balance"), connected_context())

    assert result == "Balance of Alice (5Grwva...utQY) on Polkadot: 0 DOT (simulated)"


def test_wallet_balance_comes_from_signer() -> None:
    signer = RecordingSigner(balance={"free": 12_345_000_000_0})

    result = _run(node("w", "wallet", action="balance"), connected_context(signer=signer))

    assert result.endswith("on Polkadot: 12.345 DOT")


def test_wallet_address_and_accounts() -> None:
    context = connected_context()

    assert _run(node("w", "wallet", action="address"), context).endswith(ALICE)
    assert _run(node("w", "wallet", action="accounts"), context) == f"Connected accounts (1): Alice ({ALICE})"


def test_unknown_action_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="Unknown wallet action: teleport"):
        _run(node("w", "wallet", action="teleport"), connected_context())


def test_unknown_network_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="Unknown network"):
        _run(node("w", "wallet", network="solana"), connected_context())


def test_token_transfer_is_submitted_through_signer() -> None:
    signer = RecordingSigner()
    transfer = node("t", "token", action="transfer", amount="1.5", recipient=BOB)

    result = _run(transfer, connected_context(signer=signer))

    assert signer.calls == [("polkadot", {
        "pallet": "balances",
        "method": "transferKeepAlive",
        "args": {"dest": BOB, "value": 15_000_000_000},
    })]
    assert result.endswith("(tx 0xabc, in block 0xdef)")


def test_token_transfer_needs_recipient() -> None:
    with pytest.raises(ConfigurationError, match="recipient"):
        _run(node("t", "token", action="transfer", amount=1), connected_context())


def test_transfer_without_signer_is_simulated() -> None:
    transfer = node("t", "token", action="transfer", amount=2, recipient=BOB)

    assert _run(transfer, connected_context()).endswith("(simulated, no signer attached)")


def test_signer_failure_becomes_external_service_error() -> None:
    transfer = node("t", "token", action="transfer", amount=2, recipient=BOB)

    with pytest.raises(ExternalServiceError, match="user rejected"):
        _run(transfer, connected_context(signer=FailingSigner()))


def test_swap_rejects_same_token_and_zero_amount() -> None:
    with pytest.raises(ConfigurationError):
        _run(node("s", "swap", fromToken="DOT", toToken="dot", amount=1), connected_context())
    with pytest.raises(ConfigurationError):
        _run(node("s", "swap", amount=0), connected_context())


def test_swap_submits_dex_call() -> None:
    signer = RecordingSigner()

    result = _run(node("s", "swap", amount=10, slippage=1), connected_context(signer=signer))

    network, call = signer.calls[0]
    assert network == "acala"
    assert (call["pallet"], call["method"]) == ("dex", "swapWithExactSupply")
    assert call["args"]["path"] == ["DOT", "ACA"]
    assert result.startswith("Swapped 10 DOT for ACA on acala")


def test_staking_nominate_accepts_comma_separated_validators() -> None:
    signer = RecordingSigner()
    nominate = node("s", "staking", action="nominate", validators=f"{ALICE}, {BOB}")

    result = _run(nominate, connected_context(signer=signer))

    assert signer.calls[0][1]["args"] == {"targets": [ALICE, BOB]}
    assert result.startswith("Nominated 2 validator(s) on Polkadot")


def test_governance_vote_validates_and_submits() -> None:
    signer = RecordingSigner()
    vote = node("g", "governance", action="vote", referendumId="42", vote="nay", conviction=3)

    result = _run(vote, connected_context(signer=signer))

    assert result.startswith("Voted NAY on referendum #42 with conviction 3x")
    assert signer.calls[0][1]["args"]["vote"]["aye"] is False

    with pytest.raises(ConfigurationError):
        _run(node("g", "governance", action="vote"), connected_context())
    with pytest.raises(ConfigurationError):
        _run(node("g", "governance", action="vote", referendumId=1, conviction=7), connected_context())


def test_xcm_rejects_same_chain_and_defaults_recipient() -> None:
    with pytest.raises(ConfigurationError):
        _run(node("x", "xcm", sourceChain="acala", destChain="acala", amount=1), connected_context())

    signer = RecordingSigner()
    _run(node("x", "xcm", amount=1), connected_context(signer=signer))

    network, call = signer.calls[0]
    assert network == "polkadot"
    assert call["args"]["dest"] == "acala"
    assert call["args"]["beneficiary"] == ALICE


def test_nft_mint_and_list() -> None:
    signer = RecordingSigner()
    context = connected_context(signer=signer)

    minted = _run(node("n", "nft", action="mint", collectionId="7", name="Badge"), context)
    listed = _run(node("n", "nft", action="list"), context)

    assert minted.startswith('Minted "Badge" in collection 7 on Unique Network')
    assert signer.calls[0][0] == "unique"
    assert listed.endswith("(simulated)")


def test_planck_conversion_and_formatting() -> None:
    assert to_planck(1.5, 10) == 15_000_000_000
    assert format_balance(15_000_000_000, 10) == "1.5"
    assert format_balance(123_456_789, 10) == "0.0123"
    assert format_balance(0, 12) == "0"


def test_every_chain_node_type_is_wallet_gated() -> None:
    assert {t for t in NodeType if t.requires_wallet} == CHAIN_NODE_TYPES


def test_network_falls_back_to_configured_default() -> None:
    config = AppConfig()
    config.chain.default_network = "kusama"

    result = _run(node("w", "wallet", action="balance"), connected_context(config=config))
    explicit = _run(node("w", "wallet", action="balance", network="polkadot"), connected_context(config=config))

    assert result.endswith("on Kusama: 0 KSM (simulated)")
    assert "on Polkadot" in explicit
