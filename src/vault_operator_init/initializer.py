"""Vault initialization.

This module issues the one-time sys/init call against a resolved client
handle. Vault is authoritative on share count and threshold, so neither is
checked here, and a failed call is never retried: initializing twice must
fail loudly.
"""

import requests
from hvac.exceptions import VaultError
from icecream import ic

from vault_operator_init import console
from vault_operator_init.exceptions import InitializationError, StateDecodeError
from vault_operator_init.models import ClientHandle, InitRequest, InitResult


def initialize(handle: ClientHandle, secret_shares: int, secret_threshold: int) -> InitResult:
    """Initialize Vault.

    Args:
        handle: Client handle bound to the Vault to initialize.
        secret_shares: Number of shares to split the root key into.
        secret_threshold: Number of shares required to reconstruct the root key.

    Returns:
        The root token and key shares exactly as returned by Vault.

    Raises:
        InitializationError: If Vault or the transport reports an error. The
            original exception is chained as the cause.

    """
    request = InitRequest(secret_shares=secret_shares, secret_threshold=secret_threshold)
    ic(handle.address, request)

    try:
        with console.spinner(f"Initializing Vault at {handle.address}..."):
            response = handle.client.sys.initialize(
                secret_shares=request.secret_shares,
                secret_threshold=request.secret_threshold,
            )
    except (VaultError, requests.exceptions.RequestException) as e:
        console.error(f"Failed to initialize Vault: {e}")
        raise InitializationError(str(e)) from e

    # hvac returns the decoded JSON body for sys/init
    if isinstance(response, requests.Response):
        response = response.json()

    try:
        return InitResult.from_response(response)
    except StateDecodeError as e:
        raise InitializationError(f"Unexpected sys/init response: {e}") from e


def is_initialized(handle: ClientHandle) -> bool:
    """Report whether the Vault behind handle has been initialized.

    Raises:
        InitializationError: If the status cannot be read.

    """
    try:
        initialized = bool(handle.client.sys.is_initialized())
    except (VaultError, requests.exceptions.RequestException) as e:
        raise InitializationError(f"Failed to read initialization status: {e}") from e
    ic(initialized)
    return initialized
