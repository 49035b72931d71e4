#!/usr/bin/env python3
"""
Polkadot ecosystem nodes.

Wallet, token, swap, staking, governance, cross-chain (XCM) and NFT
actions. Every node here needs a connected wallet. State-changing actions
are described as ``{pallet, method, args}`` calls and handed to the run's
TransactionSigner; without a signer they are simulated.
"""
import dataclasses
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional, Sequence

from agent_builder.engine.data import gather_input
from agent_builder.errors import (
    ConfigurationError,
    ExternalServiceError,
    PreconditionError,
    WalletNotConnectedError,
    WorkflowError,
)
from .base import Edge, Node, NodeConfig, NodeHandler, NodeType
from .registry import register_handler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Network:
    key: str
    name: str
    symbol: str
    decimals: int


NETWORKS: Dict[str, Network] = {
    "polkadot": Network("polkadot", "Polkadot", "DOT", 10),
    "kusama": Network("kusama", "Kusama", "KSM", 12),
    "acala": Network("acala", "Acala", "ACA", 12),
    "moonbeam": Network("moonbeam", "Moonbeam", "GLMR", 18),
    "astar": Network("astar", "Astar", "ASTR", 18),
    "unique": Network("unique", "Unique Network", "UNQ", 18),
}

MAX_NOMINATIONS = 16
MAX_CONVICTION = 6


def get_network(key: str) -> Network:
    network = NETWORKS.get(key.strip().lower())
    if network is None:
        raise ConfigurationError(f"Unknown network: {key}")
    return network


def to_planck(amount: float, decimals: int) -> int:
    """Convert a token amount into the chain's smallest unit"""
    try:
        return int(Decimal(str(amount)) * (Decimal(10) ** decimals))
    except InvalidOperation:
        raise ConfigurationError(f"Invalid amount: {amount}") from None


def format_balance(planck: Any, decimals: int) -> str:
    """Render a planck amount with at most four decimals, trailing zeros dropped"""
    if not planck:
        return "0"
    value = (Decimal(str(planck)) / (Decimal(10) ** decimals)).quantize(Decimal("0.0001"))
    text = format(value, "f")
    return text.rstrip("0").rstrip(".") if "." in text else text


def _require_positive(amount: float, what: str):
    if amount <= 0:
        raise ConfigurationError(f"{what} amount must be greater than zero")


def _short(address: str) -> str:
    return address if len(address) <= 13 else f"{address[:6]}...{address[-4:]}"


class ChainHandler(NodeHandler):
    """
    Base class for wallet-gated nodes.

    ``execute`` checks the wallet connection before anything else, then
    dispatches on ``config.action`` to the method named in ``actions``.
    Action-less node types override ``perform`` instead.
    """

    actions: Dict[str, str] = {}

    def execute(self, node: Node, nodes: Sequence[Node], edges: Sequence[Edge],
                results: Mapping[str, Any], context: Any) -> str:
        config = self.config_of(node)
        if not context.is_connected:
            raise WalletNotConnectedError()
        if context.account is None:
            raise PreconditionError("No wallet account selected")
        if getattr(config, "network", None) == "":
            config = dataclasses.replace(config, network=context.settings.chain.default_network)
        input_text = gather_input(node, edges, results)
        return self.perform(node, config, input_text, context)

    def perform(self, node: Node, config: NodeConfig, input_text: str, context: Any) -> str:
        action = config.action.strip().lower()
        method_name = self.actions.get(action)
        if method_name is None:
            raise ConfigurationError(f"Unknown {self.node_type.value} action: {config.action}")
        return getattr(self, method_name)(node, config, input_text, context)

    def submit(self, context: Any, network: Network, pallet: str, method: str,
               args: Dict[str, Any]) -> str:
        """Submit a call through the signer; returns a status suffix"""
        call = {"pallet": pallet, "method": method, "args": args}
        if context.signer is None:
            logger.info("Simulating %s.%s on %s", pallet, method, network.key)
            return "(simulated, no signer attached)"

        context.log(f"Submitting {pallet}.{method} on {network.name}")
        try:
            receipt = context.signer.submit(network.key, call)
        except WorkflowError:
            raise
        except Exception as e:
            raise ExternalServiceError(f"Transaction submission failed: {e}") from e

        receipt = receipt or {}
        status = f"(tx {receipt.get('tx_hash', 'unknown')}"
        if receipt.get("block_hash"):
            status += f", in block {receipt['block_hash']}"
        return status + ")"

    def balance_of(self, context: Any, network: Network) -> Optional[str]:
        """Formatted free balance of the context account, if the signer can tell"""
        if context.signer is None:
            return None
        try:
            balance = context.signer.get_balance(network.key, context.account.address)
        except Exception as e:
            raise ExternalServiceError(f"Balance query failed: {e}") from e
        if not balance:
            return None
        return format_balance(balance.get("free"), network.decimals)


@register_handler(metadata={"category": "polkadot",
                            "description": "Connect wallets, check balances"})
class WalletHandler(ChainHandler):
    """Reports the connected account and its balance"""

    node_type = NodeType.WALLET
    actions = {"balance": "get_balance", "address": "get_address", "accounts": "list_accounts"}

    def get_balance(self, node, config, input_text, context) -> str:
        network = get_network(config.network)
        account = context.account
        balance = self.balance_of(context, network)
        if balance is None:
            return (f"Balance of {account.name} ({_short(account.address)}) on {network.name}: "
                    f"0 {network.symbol} (simulated)")
        return (f"Balance of {account.name} ({_short(account.address)}) on {network.name}: "
                f"{balance} {network.symbol}")

    def get_address(self, node, config, input_text, context) -> str:
        network = get_network(config.network)
        return f"Connected account {context.account.name} on {network.name}: {context.account.address}"

    def list_accounts(self, node, config, input_text, context) -> str:
        account = context.account
        return f"Connected accounts (1): {account.name} ({account.address})"


@register_handler(metadata={"category": "polkadot",
                            "description": "DOT, KSM, parachain tokens"})
class TokenHandler(ChainHandler):
    """Token metadata, balances and transfers"""

    node_type = NodeType.TOKEN
    actions = {"info": "get_info", "balance": "get_balance", "transfer": "transfer"}

    def _symbol(self, config, network: Network) -> str:
        return (config.token or network.symbol).upper()

    def get_info(self, node, config, input_text, context) -> str:
        network = get_network(config.network)
        symbol = self._symbol(config, network)
        if symbol == network.symbol:
            return f"{symbol} is the native token of {network.name} ({network.decimals} decimals)"
        return f"{symbol} on {network.name}: asset metadata not available (simulated)"

    def get_balance(self, node, config, input_text, context) -> str:
        network = get_network(config.network)
        symbol = self._symbol(config, network)
        balance = self.balance_of(context, network) if symbol == network.symbol else None
        if balance is None:
            return f"{symbol} balance of {_short(context.account.address)} on {network.name}: 0 (simulated)"
        return f"{symbol} balance of {_short(context.account.address)} on {network.name}: {balance}"

    def transfer(self, node, config, input_text, context) -> str:
        network = get_network(config.network)
        symbol = self._symbol(config, network)
        if not config.recipient:
            raise ConfigurationError("Token transfer needs a recipient")
        _require_positive(config.amount, "Transfer")

        value = to_planck(config.amount, network.decimals)
        if symbol == network.symbol:
            status = self.submit(context, network, "balances", "transferKeepAlive",
                                 {"dest": config.recipient, "value": value})
        else:
            status = self.submit(context, network, "tokens", "transfer",
                                 {"dest": config.recipient, "currency_id": symbol, "amount": value})
        return (f"Transferred {config.amount:g} {symbol} to {_short(config.recipient)} "
                f"on {network.name} {status}")


@register_handler(metadata={"category": "polkadot",
                            "description": "DEX swaps on Acala, Stellaswap"})
class SwapHandler(ChainHandler):
    """Swaps one token for another on a DEX"""

    node_type = NodeType.SWAP

    def perform(self, node, config, input_text, context) -> str:
        network = get_network(config.network)
        from_token = config.from_token.upper()
        to_token = config.to_token.upper()
        if from_token == to_token:
            raise ConfigurationError("Swap needs two different tokens")
        _require_positive(config.amount, "Swap")
        if not 0 <= config.slippage <= 50:
            raise ConfigurationError(f"Slippage must be between 0 and 50%, got {config.slippage}")

        status = self.submit(context, network, "dex", "swapWithExactSupply", {
            "path": [from_token, to_token],
            "supply_amount": to_planck(config.amount, network.decimals),
            "slippage_percent": config.slippage,
        })
        return (f"Swapped {config.amount:g} {from_token} for {to_token} on {config.dex} "
                f"(max slippage {config.slippage:g}%) {status}")


@register_handler(metadata={"category": "polkadot",
                            "description": "Nominate validators, manage stakes"})
class StakingHandler(ChainHandler):
    """Nominations, bonding and rewards"""

    node_type = NodeType.STAKING
    actions = {"nominate": "nominate", "bond": "bond", "unbond": "unbond", "rewards": "rewards"}

    def nominate(self, node, config, input_text, context) -> str:
        network = get_network(config.network)
        if not config.validators:
            raise ConfigurationError("Nomination needs at least one validator")
        if len(config.validators) > MAX_NOMINATIONS:
            raise ConfigurationError(f"At most {MAX_NOMINATIONS} validators can be nominated")
        status = self.submit(context, network, "staking", "nominate",
                             {"targets": list(config.validators)})
        return f"Nominated {len(config.validators)} validator(s) on {network.name} {status}"

    def bond(self, node, config, input_text, context) -> str:
        network = get_network(config.network)
        _require_positive(config.amount, "Bond")
        status = self.submit(context, network, "staking", "bond",
                             {"value": to_planck(config.amount, network.decimals), "payee": "Staked"})
        return f"Bonded {config.amount:g} {network.symbol} on {network.name} {status}"

    def unbond(self, node, config, input_text, context) -> str:
        network = get_network(config.network)
        _require_positive(config.amount, "Unbond")
        status = self.submit(context, network, "staking", "unbond",
                             {"value": to_planck(config.amount, network.decimals)})
        return f"Unbonding {config.amount:g} {network.symbol} on {network.name} {status}"

    def rewards(self, node, config, input_text, context) -> str:
        network = get_network(config.network)
        return (f"Pending staking rewards for {_short(context.account.address)} on {network.name}: "
                f"0 {network.symbol} (simulated)")


@register_handler(metadata={"category": "polkadot",
                            "description": "Referenda, treasury, council"})
class GovernanceHandler(ChainHandler):
    """OpenGov voting and delegation"""

    node_type = NodeType.GOVERNANCE
    actions = {"vote": "vote", "referenda": "referenda", "delegate": "delegate"}

    def _check_conviction(self, conviction: int):
        if not 0 <= conviction <= MAX_CONVICTION:
            raise ConfigurationError(f"Conviction must be between 0 and {MAX_CONVICTION}")

    def vote(self, node, config, input_text, context) -> str:
        network = get_network(config.network)
        if config.referendum_id is None:
            raise ConfigurationError("Vote needs a referendum id")
        choice = config.vote.strip().lower()
        if choice not in ("aye", "nay"):
            raise ConfigurationError(f"Vote must be 'aye' or 'nay', got {config.vote}")
        self._check_conviction(config.conviction)

        status = self.submit(context, network, "convictionVoting", "vote", {
            "poll_index": config.referendum_id,
            "vote": {"aye": choice == "aye", "conviction": config.conviction,
                     "balance": to_planck(config.amount, network.decimals)},
        })
        return (f"Voted {choice.upper()} on referendum #{config.referendum_id} "
                f"with conviction {config.conviction}x on {network.name} {status}")

    def referenda(self, node, config, input_text, context) -> str:
        network = get_network(config.network)
        return f"Active referenda on {network.name}: none found (simulated)"

    def delegate(self, node, config, input_text, context) -> str:
        network = get_network(config.network)
        if not config.delegate_to:
            raise ConfigurationError("Delegation needs a delegate address")
        self._check_conviction(config.conviction)
        _require_positive(config.amount, "Delegation")
        status = self.submit(context, network, "convictionVoting", "delegate", {
            "to": config.delegate_to,
            "conviction": config.conviction,
            "balance": to_planck(config.amount, network.decimals),
        })
        return (f"Delegated {config.amount:g} {network.symbol} to {_short(config.delegate_to)} "
                f"with conviction {config.conviction}x {status}")


@register_handler(metadata={"category": "polkadot",
                            "description": "XCM transfers between parachains"})
class XcmHandler(ChainHandler):
    """Transfers tokens between chains over XCM"""

    node_type = NodeType.XCM

    def perform(self, node, config, input_text, context) -> str:
        source = get_network(config.source_chain)
        dest = get_network(config.dest_chain)
        if source.key == dest.key:
            raise ConfigurationError("XCM transfer needs different source and destination chains")
        _require_positive(config.amount, "XCM transfer")

        recipient = config.recipient or context.account.address
        token = config.token.upper()
        status = self.submit(context, source, "polkadotXcm", "limitedReserveTransferAssets", {
            "dest": dest.key,
            "beneficiary": recipient,
            "asset": token,
            "amount": to_planck(config.amount, source.decimals),
        })
        return (f"XCM transfer of {config.amount:g} {token} from {source.name} to {dest.name} "
                f"for {_short(recipient)} {status}")


@register_handler(metadata={"category": "polkadot",
                            "description": "Unique Network, RMRK operations"})
class NFTHandler(ChainHandler):
    """Mints, transfers and lists NFTs"""

    node_type = NodeType.NFT
    actions = {"mint": "mint", "transfer": "transfer", "list": "list_tokens"}

    def mint(self, node, config, input_text, context) -> str:
        network = get_network(config.network)
        if not config.collection_id:
            raise ConfigurationError("Minting needs a collection id")
        name = config.name or input_text[:64] or "Untitled"
        status = self.submit(context, network, "unique", "createItem", {
            "collection_id": config.collection_id,
            "owner": context.account.address,
            "properties": {"name": name, "description": input_text},
        })
        return f'Minted "{name}" in collection {config.collection_id} on {network.name} {status}'

    def transfer(self, node, config, input_text, context) -> str:
        network = get_network(config.network)
        if not (config.collection_id and config.token_id):
            raise ConfigurationError("NFT transfer needs a collection id and token id")
        if not config.recipient:
            raise ConfigurationError("NFT transfer needs a recipient")
        status = self.submit(context, network, "unique", "transfer", {
            "recipient": config.recipient,
            "collection_id": config.collection_id,
            "item_id": config.token_id,
            "value": 1,
        })
        return (f"Transferred NFT {config.collection_id}/{config.token_id} to "
                f"{_short(config.recipient)} on {network.name} {status}")

    def list_tokens(self, node, config, input_text, context) -> str:
        network = get_network(config.network)
        where = f" in collection {config.collection_id}" if config.collection_id else ""
        return f"NFTs owned by {_short(context.account.address)}{where} on {network.name}: none (simulated)"
