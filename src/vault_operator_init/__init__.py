"""vault-operator-init: one-time HashiCorp Vault initialization.

This package initializes a Vault cluster, reached directly or through a
Kubernetes tunnel, and keeps the resulting root token and unseal keys in a
local state file. Existing ``vault operator init`` output can be imported.

Example usage:
    from vault_operator_init import Provider, StateStore

    provider = Provider(StateStore("vault-init.tfstate.json"))
    provider.configure({"vault_addr": "https://vault.example.com:8200"})
    provider.apply("create", "main", secret_shares=5, secret_threshold=3)
"""

__version__ = "0.1.0"

from vault_operator_init.cli import cli
from vault_operator_init.exceptions import (
    ConfigurationError,
    InitializationError,
    OperationNotImplementedError,
    StateDecodeError,
    StateImportError,
    TunnelError,
    UnsupportedSchemeError,
    VaultOperatorError,
)
from vault_operator_init.provider import Provider
from vault_operator_init.state import StateStore
from vault_operator_init.transport import TransportResolver
from vault_operator_init.tunnel import TunnelBuilder

__all__ = [
    # Version
    "__version__",
    # Main CLI
    "cli",
    # Classes
    "Provider",
    "StateStore",
    "TransportResolver",
    "TunnelBuilder",
    # Exceptions
    "VaultOperatorError",
    "ConfigurationError",
    "TunnelError",
    "InitializationError",
    "StateImportError",
    "UnsupportedSchemeError",
    "StateDecodeError",
    "OperationNotImplementedError",
]
