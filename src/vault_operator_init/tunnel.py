"""Kubernetes tunnel construction.

This module provides the TunnelBuilder class which turns a ``kube_config``
block into a local endpoint forwarding to the Vault service. Loading the
kubeconfig and building the API client is delegated to the kubernetes
library; the forwarding itself is not managed here.
"""

from pathlib import Path
from typing import Protocol

import yaml
from icecream import ic
from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException

from vault_operator_init import console
from vault_operator_init.exceptions import TunnelError
from vault_operator_init.models import TunnelEndpoint, TunnelSpec


class TunnelFactory(Protocol):
    """Anything able to build a tunnel endpoint from a spec."""

    def build(self, spec: TunnelSpec) -> TunnelEndpoint: ...


def expand_kubeconfig_path(path: str) -> str:
    """Expand a leading '~' in a kubeconfig path.

    Args:
        path: The configured kubeconfig path.

    Returns:
        The path with the home directory substituted.

    Raises:
        TunnelError: If the path needs expansion and the home directory
            cannot be determined.

    """
    if not path.startswith("~"):
        return path
    try:
        return str(Path(path).expanduser())
    except RuntimeError as e:
        raise TunnelError(f"Unable to get HOME directory to expand '{path}': {e}") from e


class TunnelBuilder:
    """Builds tunnel endpoints into a Kubernetes cluster."""

    def build(self, spec: TunnelSpec) -> TunnelEndpoint:
        """Build a tunnel endpoint for the Vault service described by spec.

        Args:
            spec: The tunnel specification.

        Returns:
            TunnelEndpoint carrying the local port and the Kubernetes clients.

        Raises:
            TunnelError: If the kubeconfig cannot be loaded or the namespace
                or service name is missing.

        """
        path = expand_kubeconfig_path(spec.path)
        ic(path)

        try:
            api_client = config.new_client_from_config(config_file=path)
        except (ConfigException, OSError, yaml.YAMLError) as e:
            raise TunnelError(f"Invalid or missing kubeconfig '{path}': {e}") from e
        core_v1 = client.CoreV1Api(api_client=api_client)

        if not spec.namespace:
            raise TunnelError("Vault namespace is not specified (kube_config.namespace)")
        if not spec.service:
            raise TunnelError("Vault service name is not specified (kube_config.service)")

        console.step(
            f"Tunnelling to {console.highlight(f'{spec.namespace}/{spec.service}')} "
            f"(localhost:{spec.local_port} -> {spec.remote_port})"
        )

        return TunnelEndpoint(
            local_port=spec.local_port,
            remote_port=spec.remote_port,
            namespace=spec.namespace,
            service=spec.service,
            api_client=api_client,
            core_v1=core_v1,
        )

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return "TunnelBuilder()"
