#!/usr/bin/env python3
"""
Run-scoped context passed to every node handler.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

from agent_builder.engine.data import LogType
from agent_builder.utils.config import AppConfig, get_config_manager

logger = logging.getLogger(__name__)

LogCallback = Callable[[str, LogType], None]


@dataclass(frozen=True)
class Account:
    """A wallet account as reported by the wallet extension"""
    address: str
    meta: Mapping[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return str(self.meta.get("name") or self.address)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Account":
        return cls(address=str(data["address"]), meta=dict(data.get("meta") or {}))


class TransactionSigner(ABC):
    """
    Signing interface to the wallet extension / chain RPC.

    Chain nodes hand a call description to ``submit``; submission and
    signing happen outside the engine.
    """

    @abstractmethod
    def submit(self, network: str, call: Dict[str, Any]) -> Dict[str, Any]:
        """
        Sign and submit a call.

        Args:
            network: Network key (e.g. "polkadot")
            call: {"pallet": ..., "method": ..., "args": {...}}

        Returns:
            Submission receipt, e.g. {"tx_hash": ..., "block_hash": ...}
        """

    def get_balance(self, network: str, address: str) -> Optional[Dict[str, Any]]:
        """Free/reserved balance in planck, or None when unavailable"""
        return None


@dataclass(frozen=True)
class ExecutionContext:
    """Collaborators available to handlers for one run"""
    is_connected: bool = False
    account: Optional[Account] = None
    on_log: Optional[LogCallback] = None
    signer: Optional[TransactionSigner] = None
    config: Optional[AppConfig] = None

    @property
    def settings(self) -> AppConfig:
        """Config for this run (process-wide config when none was given)"""
        if self.config is not None:
            return self.config
        return get_config_manager().load()

    def log(self, message: str, log_type: Any = LogType.INFO):
        """Emit an advisory log message"""
        if self.on_log is None:
            logger.debug("%s", message)
            return
        self.on_log(message, LogType.parse(log_type))

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]], **kwargs) -> "ExecutionContext":
        """
        Build a context from a request payload.

        Accepts ``isConnected``/``is_connected`` and an ``account`` given as
        an address string or ``{address, meta}``. Collaborators that cannot
        travel as JSON (on_log, signer, config) are passed as keyword
        arguments.
        """
        data = data or {}
        account = data.get("account")
        if isinstance(account, str):
            account = Account(address=account) if account else None
        elif isinstance(account, Mapping):
            account = Account.from_dict(account) if account.get("address") else None
        else:
            account = None

        connected = data.get("isConnected", data.get("is_connected"))
        if connected is None:
            connected = account is not None
        return cls(is_connected=bool(connected), account=account, **kwargs)
