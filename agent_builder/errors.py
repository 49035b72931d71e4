#!/usr/bin/env python3
"""
Exceptions raised by the workflow engine and node handlers.

Handlers raise these; the executor catches them and records a per-node
error result so the rest of the workflow keeps running.
"""
from typing import List, Optional


class WorkflowError(Exception):
    """Base class for all workflow errors"""


class ConfigurationError(WorkflowError):
    """Unknown node type, tool type, action, provider or invalid config value"""


class PreconditionError(WorkflowError):
    """A node's runtime precondition is not met"""


class WalletNotConnectedError(PreconditionError):
    """Raised by chain nodes when no wallet is connected"""

    def __init__(self, message: str = "Wallet not connected"):
        super().__init__(message)


class ExternalServiceError(WorkflowError):
    """An external API, price feed or signer failed"""


class InvalidExpressionError(WorkflowError):
    """Calculator expression could not be evaluated"""

    def __init__(self, message: str = "Invalid mathematical expression"):
        super().__init__(message)


class CycleError(WorkflowError):
    """The edge set contains a dependency cycle"""

    def __init__(self, path: List[str], message: Optional[str] = None):
        self.path = list(path)
        super().__init__(message or f"Dependency cycle detected: {' -> '.join(self.path)}")


class RegistryError(WorkflowError):
    """The handler registry is incomplete or inconsistent"""
