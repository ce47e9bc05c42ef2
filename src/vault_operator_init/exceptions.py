"""Custom exceptions for vault-operator-init.

This module defines the exception hierarchy used throughout the application
to provide meaningful error messages and proper error handling.
"""


class VaultOperatorError(Exception):
    """Base exception for all vault-operator-init errors.

    All custom exceptions in this package inherit from this class,
    allowing callers to catch all vault-operator-init errors with a single
    except clause if desired.
    """

    pass


class ConfigurationError(VaultOperatorError):
    """Raised when the provider configuration cannot produce a Vault client.

    This can occur when:
    - No Vault address, URL or VAULT_ADDR is available
    - The resolved address is malformed
    - TLS material is missing or inconsistent
    """

    pass


class TunnelError(ConfigurationError):
    """Raised when the Kubernetes tunnel specification cannot be used.

    This can occur when:
    - The home directory cannot be determined to expand the kubeconfig path
    - The kubeconfig is invalid or missing
    - The Vault namespace or service name is not specified
    """

    pass


class InitializationError(VaultOperatorError):
    """Raised when the Vault sys/init call fails.

    The message is the one reported by Vault (or the transport) and the
    original exception is kept as ``__cause__``. A Vault that is already
    initialized ends up here as well.
    """

    pass


class StateImportError(VaultOperatorError):
    """Raised when an existing init output cannot be imported.

    This can occur when:
    - The import identifier is not a valid URI
    - The file cannot be read
    """

    pass


class UnsupportedSchemeError(StateImportError):
    """Raised when the import URI uses a scheme other than ``file``."""

    pass


class StateDecodeError(StateImportError):
    """Raised when init output is not valid JSON of the sys/init shape.

    Expected keys are ``keys``, ``keys_base64`` and ``root_token``.
    """

    pass


class OperationNotImplementedError(VaultOperatorError):
    """Raised for resource operations that are intentionally unsupported.

    Reading, updating and deleting an ``init`` resource always fail:
    Vault offers no way to read back or undo an initialization.
    """

    pass
