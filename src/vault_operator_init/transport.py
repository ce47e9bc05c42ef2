"""Vault transport resolution.

This module provides the TransportResolver class which decides how to
reach Vault for a given provider configuration, either directly or
through a Kubernetes tunnel, and builds the hvac client bound to the
resolved address. Resolution never talks to the network; the client
connects on first use.
"""

import os
from pathlib import Path
from urllib.parse import urlsplit

import hvac
from icecream import ic

from vault_operator_init import console
from vault_operator_init.exceptions import ConfigurationError
from vault_operator_init.models import ClientHandle, ProviderConfig, TLSConfig, TunnelEndpoint, TunnelSpec
from vault_operator_init.tunnel import TunnelBuilder, TunnelFactory

ENV_VAULT_ADDR = "VAULT_ADDR"

_SUPPORTED_SCHEMES = ("http", "https")


def tunnel_address(spec: TunnelSpec) -> str:
    """Return the local address Vault is reachable on through a tunnel.

    Args:
        spec: The tunnel specification.

    Returns:
        ``https://localhost:<port>`` when TLS is used, ``http://...`` otherwise.

    """
    scheme = "https" if spec.use_tls else "http"
    return f"{scheme}://localhost:{spec.local_port}"


def validate_address(address: str) -> str:
    """Check that an address is an http(s) URL with a host.

    Args:
        address: The address to validate.

    Returns:
        The address, unchanged.

    Raises:
        ConfigurationError: If the address is malformed.

    """
    try:
        parts = urlsplit(address)
        # Accessing .port validates it
        _ = parts.port
    except ValueError as e:
        raise ConfigurationError(f"Malformed Vault address '{address}': {e}") from e

    if parts.scheme not in _SUPPORTED_SCHEMES or not parts.hostname:
        raise ConfigurationError(
            f"Malformed Vault address '{address}': expected {' or '.join(_SUPPORTED_SCHEMES)}://host[:port]"
        )
    return address


def tls_client_options(tls: TLSConfig) -> dict[str, object]:
    """Translate TLS configuration into hvac.Client keyword arguments.

    Args:
        tls: The TLS configuration to apply.

    Returns:
        Keyword arguments ``verify`` and, when a client certificate is
        configured, ``cert``.

    Raises:
        ConfigurationError: If a configured file does not exist or only one
            of client certificate and key is given.

    """
    for label, path in (("ca_cert", tls.ca_cert), ("client_cert", tls.client_cert), ("client_key", tls.client_key)):
        if path and not Path(path).is_file():
            raise ConfigurationError(f"Failed to configure Vault API client with TLS: {label} '{path}' does not exist")

    if bool(tls.client_cert) != bool(tls.client_key):
        raise ConfigurationError(
            "Failed to configure Vault API client with TLS: client_cert and client_key must be set together"
        )

    options: dict[str, object] = {}
    if tls.insecure:
        options["verify"] = False
    elif tls.ca_cert:
        options["verify"] = tls.ca_cert
    else:
        options["verify"] = True

    if tls.client_cert:
        options["cert"] = (tls.client_cert, tls.client_key)

    return options


class TransportResolver:
    """Resolves a provider configuration into a Vault client handle.

    Attributes:
        tunnel_builder: Factory used when the configuration asks for a tunnel.

    """

    def __init__(self, tunnel_builder: TunnelFactory | None = None) -> None:
        """Initialize the resolver.

        Args:
            tunnel_builder: Tunnel factory to use; defaults to TunnelBuilder.

        """
        self.tunnel_builder: TunnelFactory = tunnel_builder or TunnelBuilder()

    def resolve_address(self, config: ProviderConfig) -> tuple[str, TLSConfig | None, TunnelEndpoint | None]:
        """Work out the Vault address for a configuration.

        A tunnel takes precedence over a direct address. Without a tunnel the
        first non-empty of ``vault_addr``, ``vault_url`` and ``$VAULT_ADDR``
        is used.

        Args:
            config: The decoded provider configuration.

        Returns:
            Tuple of (address, TLS configuration or None, tunnel endpoint or None).

        Raises:
            ConfigurationError: If no address can be resolved or the tunnel
                cannot be built.

        """
        if config.kube_config is not None:
            spec = config.kube_config
            endpoint = self.tunnel_builder.build(spec)
            tls = spec.tls_config() if spec.use_tls else None
            return tunnel_address(spec), tls, endpoint

        if config.vault_addr:
            address = config.vault_addr
        elif config.vault_url:
            console.warning("'vault_url' is deprecated, please use 'vault_addr' instead")
            address = config.vault_url
        else:
            address = os.environ.get(ENV_VAULT_ADDR, "")

        if not address:
            raise ConfigurationError(f"argument 'vault_addr' is required, or set {ENV_VAULT_ADDR} environment variable")

        return address, None, None

    def resolve(self, config: ProviderConfig) -> ClientHandle:
        """Build a client handle for a configuration.

        Args:
            config: The decoded provider configuration.

        Returns:
            ClientHandle bound to the resolved address.

        Raises:
            ConfigurationError: If the address cannot be resolved, is
                malformed, or TLS cannot be applied.

        """
        address, tls, endpoint = self.resolve_address(config)
        validate_address(address)
        ic(address, tls)

        options = tls_client_options(tls) if tls is not None else {}

        try:
            vault_client = hvac.Client(url=address, **options)
        except (ValueError, TypeError) as e:
            console.error(f"Failed to create Vault API client: {e}")
            raise ConfigurationError(f"Failed to create Vault API client for '{address}': {e}") from e

        console.action(f"Using Vault at {console.highlight(address)}")
        return ClientHandle(address=address, client=vault_client, tls=tls, tunnel=endpoint)

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"TransportResolver(tunnel_builder={self.tunnel_builder!r})"
