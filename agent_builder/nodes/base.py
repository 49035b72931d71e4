#!/usr/bin/env python3
"""
Base classes for the node-based workflow system.

Defines the closed set of node types, the typed configuration for each of
them, the Node/Edge graph primitives and the handler base class.
"""
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Type

from agent_builder.errors import ConfigurationError


class NodeType(Enum):
    """Node type tags understood by the engine"""
    INPUT = "input"
    LLM = "llm"
    TOOL = "tool"
    WALLET = "wallet"
    TOKEN = "token"
    SWAP = "swap"
    STAKING = "staking"
    GOVERNANCE = "governance"
    XCM = "xcm"
    NFT = "nft"
    OUTPUT = "output"

    @classmethod
    def parse(cls, value: Any) -> "NodeType":
        """Convert a tag (or NodeType) into a NodeType"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigurationError(f"Unknown node type: {value}") from None

    @property
    def requires_wallet(self) -> bool:
        return self in CHAIN_NODE_TYPES

    @property
    def title(self) -> str:
        """Display title used in logs and node listings"""
        return NODE_TITLES.get(self, self.value.title())


CHAIN_NODE_TYPES = frozenset({
    NodeType.WALLET,
    NodeType.TOKEN,
    NodeType.SWAP,
    NodeType.STAKING,
    NodeType.GOVERNANCE,
    NodeType.XCM,
    NodeType.NFT,
})

NODE_TITLES = {
    NodeType.LLM: "AI Model",
    NodeType.XCM: "Cross-Chain",
    NodeType.NFT: "NFT",
}


# ---- Config coercion helpers ----

def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _as_float(value: Any) -> float:
    number = float(value)
    if math.isnan(number):
        raise ValueError("NaN")
    return number


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("boolean")
    number = float(value)
    if not number.is_integer():
        raise ValueError("not an integer")
    return int(number)


def _as_str(value: Any) -> str:
    return str(value)


def _as_str_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    raise ValueError("expected a list or comma-separated string")


def config_field(default: Any = None, coerce: Callable[[Any], Any] = _as_str,
                 default_factory: Optional[Callable[[], Any]] = None):
    """Declare a config field with its coercion function"""
    metadata = {"coerce": coerce}
    if default_factory is not None:
        return field(default_factory=default_factory, metadata=metadata)
    return field(default=default, metadata=metadata)


@dataclass(frozen=True)
class NodeConfig:
    """
    Base class for typed node configuration.

    Configs come from the editor's forms as free-form mappings with camelCase
    keys. ``from_dict`` accepts camelCase or snake_case keys, ignores unknown
    keys, treats ``None``/empty strings as "use the default" and coerces each
    value to the field's type.
    """

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "NodeConfig":
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Node config must be a mapping, got {type(data).__name__}")

        kwargs: Dict[str, Any] = {}
        for f in fields(cls):
            for key in (f.name, _camel(f.name)):
                if key not in data:
                    continue
                value = data[key]
                if value is None or (isinstance(value, str) and not value.strip()):
                    break
                coerce = f.metadata.get("coerce", _as_str)
                try:
                    kwargs[f.name] = coerce(value)
                except (TypeError, ValueError):
                    raise ConfigurationError(
                        f"Invalid value for '{key}': {value!r}"
                    ) from None
                break
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the editor's camelCase keys"""
        return {_camel(f.name): getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class InputConfig(NodeConfig):
    text: str = config_field("")
    placeholder: str = config_field("")


@dataclass(frozen=True)
class LLMConfig(NodeConfig):
    provider: str = config_field("")
    model: str = config_field("")  # empty: providers.default_model
    temperature: float = config_field(0.7, _as_float)
    system_prompt: str = config_field("You are a helpful assistant.")
    max_tokens: int = config_field(1000, _as_int)

    def __post_init__(self):
        if not 0.0 <= self.temperature <= 2.0:
            raise ConfigurationError(f"temperature must be between 0 and 2, got {self.temperature}")
        if self.max_tokens < 1:
            raise ConfigurationError(f"maxTokens must be positive, got {self.max_tokens}")


@dataclass(frozen=True)
class ToolConfig(NodeConfig):
    tool_type: str = config_field("web-search")
    query: str = config_field("")
    expression: str = config_field("")
    symbol: str = config_field("DOT")
    currency: str = config_field("usd")


@dataclass(frozen=True)
class WalletConfig(NodeConfig):
    action: str = config_field("balance")
    network: str = config_field("")  # empty: chain.default_network


@dataclass(frozen=True)
class TokenConfig(NodeConfig):
    action: str = config_field("balance")
    network: str = config_field("")  # empty: chain.default_network
    token: str = config_field("")
    amount: float = config_field(0.0, _as_float)
    recipient: str = config_field("")


@dataclass(frozen=True)
class SwapConfig(NodeConfig):
    network: str = config_field("acala")
    dex: str = config_field("acala")
    from_token: str = config_field("DOT")
    to_token: str = config_field("ACA")
    amount: float = config_field(0.0, _as_float)
    slippage: float = config_field(0.5, _as_float)


@dataclass(frozen=True)
class StakingConfig(NodeConfig):
    action: str = config_field("nominate")
    network: str = config_field("")  # empty: chain.default_network
    validators: List[str] = config_field(coerce=_as_str_list, default_factory=list)
    amount: float = config_field(0.0, _as_float)


@dataclass(frozen=True)
class GovernanceConfig(NodeConfig):
    action: str = config_field("vote")
    network: str = config_field("")  # empty: chain.default_network
    referendum_id: Optional[int] = config_field(None, _as_int)
    vote: str = config_field("aye")
    conviction: int = config_field(1, _as_int)
    amount: float = config_field(0.0, _as_float)
    delegate_to: str = config_field("")


@dataclass(frozen=True)
class XcmConfig(NodeConfig):
    source_chain: str = config_field("polkadot")
    dest_chain: str = config_field("acala")
    token: str = config_field("DOT")
    amount: float = config_field(0.0, _as_float)
    recipient: str = config_field("")


@dataclass(frozen=True)
class NFTConfig(NodeConfig):
    action: str = config_field("mint")
    network: str = config_field("unique")
    collection_id: str = config_field("")
    token_id: str = config_field("")
    name: str = config_field("")
    recipient: str = config_field("")


@dataclass(frozen=True)
class OutputConfig(NodeConfig):
    format: str = config_field("text")


CONFIG_CLASSES: Dict[NodeType, Type[NodeConfig]] = {
    NodeType.INPUT: InputConfig,
    NodeType.LLM: LLMConfig,
    NodeType.TOOL: ToolConfig,
    NodeType.WALLET: WalletConfig,
    NodeType.TOKEN: TokenConfig,
    NodeType.SWAP: SwapConfig,
    NodeType.STAKING: StakingConfig,
    NodeType.GOVERNANCE: GovernanceConfig,
    NodeType.XCM: XcmConfig,
    NodeType.NFT: NFTConfig,
    NodeType.OUTPUT: OutputConfig,
}


@dataclass(frozen=True)
class Node:
    """A typed unit of work in the workflow graph"""
    id: str
    type: NodeType
    config: NodeConfig
    label: Optional[str] = None
    position: Optional[Dict[str, float]] = None

    def __post_init__(self):
        if not self.id:
            raise ConfigurationError("Node id must be a non-empty string")
        expected = CONFIG_CLASSES[self.type]
        if not isinstance(self.config, expected):
            raise ConfigurationError(
                f"Node {self.id} of type '{self.type.value}' needs {expected.__name__}, "
                f"got {type(self.config).__name__}"
            )

    @classmethod
    def create(cls, node_id: str, node_type: Any,
               config: Optional[Mapping[str, Any]] = None, **kwargs) -> "Node":
        """Build a node, decoding the type tag and raw config mapping"""
        parsed_type = NodeType.parse(node_type)
        decoded = CONFIG_CLASSES[parsed_type].from_dict(config)
        return cls(id=str(node_id), type=parsed_type, config=decoded, **kwargs)

    @property
    def display_name(self) -> str:
        return self.label or self.type.title

    def to_dict(self) -> Dict[str, Any]:
        """Serialize node to dictionary"""
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "config": self.config.to_dict(),
        }
        if self.label:
            data["label"] = self.label
        if self.position is not None:
            data["position"] = self.position
        return data


@dataclass(frozen=True)
class Edge:
    """Directed data dependency: source's result feeds target's input"""
    source: str
    target: str
    id: Optional[str] = None
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Edge":
        try:
            source = data["source"]
            target = data["target"]
        except KeyError as e:
            raise ConfigurationError(f"Edge is missing '{e.args[0]}'") from None
        return cls(
            source=str(source),
            target=str(target),
            id=data.get("id"),
            source_handle=data.get("sourceHandle", data.get("source_handle")),
            target_handle=data.get("targetHandle", data.get("target_handle")),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"source": self.source, "target": self.target}
        if self.id:
            data["id"] = self.id
        if self.source_handle:
            data["sourceHandle"] = self.source_handle
        if self.target_handle:
            data["targetHandle"] = self.target_handle
        return data


@dataclass(frozen=True)
class DegradedResult:
    """
    A value produced in fallback/demo mode.

    Returned by handlers that are designed to degrade gracefully (the LLM
    node without credentials) so callers can tell "ran in demo mode" apart
    from both a real result and a failure.
    """
    value: Any
    reason: str


class NodeHandler(ABC):
    """
    Base class for node-type handlers.

    Each handler is bound to exactly one NodeType and implements ``execute``
    with the uniform contract used by the executor.
    """

    node_type: NodeType

    @abstractmethod
    def execute(self, node: Node, nodes: Sequence[Node], edges: Sequence[Edge],
                results: Mapping[str, Any], context: Any) -> Any:
        """
        Execute a node.

        Args:
            node: Node being executed
            nodes: All nodes of the workflow
            edges: All edges of the workflow
            results: Read-only map of results recorded so far in this run
            context: Run-scoped ExecutionContext

        Returns:
            The node's result value (or a DegradedResult)
        """

    def get_title(self) -> str:
        """Get display title for this handler"""
        return self.__class__.__name__.replace("Handler", "")

    def get_description(self) -> str:
        """Get description of what this handler does"""
        doc = (self.__doc__ or "").strip()
        return doc.splitlines()[0] if doc else ""

    def config_of(self, node: Node) -> NodeConfig:
        """Return the node's typed config, checking it matches this handler"""
        if node.type is not self.node_type:
            raise ConfigurationError(
                f"{self.get_title()} cannot execute node {node.id} of type '{node.type.value}'"
            )
        return node.config
