#!/usr/bin/env python
"""Command-line interface for vault-operator-init.

This module provides the main CLI entry point, building the provider
configuration from an optional YAML file and command-line flags and
running ``init`` resource operations against the resolved Vault.
"""

import functools
import sys
from collections.abc import Callable
from typing import Any, TypeVar

import click
import yaml
from icecream import ic

from vault_operator_init import __version__, console
from vault_operator_init.exceptions import VaultOperatorError
from vault_operator_init.models import Operation, ResourceState
from vault_operator_init.provider import RESOURCE_TYPE, Provider, setup
from vault_operator_init.state import StateStore

DEFAULT_STATE_FILE = "vault-init.tfstate.json"

F = TypeVar("F", bound=Callable[..., Any])


def load_config_file(path: str | None) -> dict[str, Any]:
    """Load a provider configuration file.

    Args:
        path: Path to a YAML file, or None.

    Returns:
        The decoded mapping; empty when no file is given or it is empty.

    Raises:
        click.ClickException: If the file cannot be read or is not a YAML mapping.

    """
    if path is None:
        return {}
    try:
        with open(path) as stream:
            raw = yaml.safe_load(stream)
    except OSError as err:
        raise click.ClickException(f"Cannot read config file '{path}': {err.strerror}") from err
    except yaml.YAMLError as err:
        raise click.ClickException(f"Config file '{path}' contains malformed YAML: {err}") from err

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise click.ClickException(f"Config file '{path}' does not contain a YAML mapping")
    return raw


def build_raw_config(file_config: dict[str, Any], flags: dict[str, Any]) -> dict[str, Any]:
    """Overlay command-line flags on a file configuration.

    Flags left unset do not override anything. Tunnel flags are merged
    into the ``kube_config`` block when it is a mapping or a single-block
    list; any other value is left alone for the configuration decode to
    reject.

    Args:
        file_config: Configuration read from file.
        flags: Provider flags; ``kube_config`` holds the tunnel flags.

    Returns:
        The untyped provider configuration.

    """
    raw = dict(file_config)
    for key in ("vault_addr", "vault_url"):
        if flags.get(key) is not None:
            raw[key] = flags[key]

    tunnel_flags = {k: v for k, v in flags.get("kube_config", {}).items() if v is not None}
    if tunnel_flags:
        block = raw.get("kube_config")
        if block is None or block == []:
            raw["kube_config"] = tunnel_flags
        elif isinstance(block, dict):
            raw["kube_config"] = {**block, **tunnel_flags}
        elif isinstance(block, list) and len(block) == 1 and isinstance(block[0], dict):
            raw["kube_config"] = {**block[0], **tunnel_flags}

    return raw


def handle_errors(func: F) -> F:
    """Report VaultOperatorError on the console and exit with status 1."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except VaultOperatorError as e:
            console.error(str(e))
            sys.exit(1)

    return wrapper  # type: ignore[return-value]


def _provider(ctx: click.Context) -> Provider:
    """Configure a provider from the group options stored on the context."""
    options: dict[str, Any] = ctx.obj
    raw = build_raw_config(load_config_file(options["config"]), options["flags"])
    ic(sorted(raw))
    provider = Provider(StateStore(options["state"]))
    provider.configure(raw)
    return provider


def _store(ctx: click.Context) -> StateStore:
    return StateStore(ctx.obj["state"])


def _ensure_absent(store: StateStore, name: str) -> None:
    if store.get(name) is not None:
        raise click.ClickException(
            f"{RESOURCE_TYPE}.{name} is already in {store.path}; run 'forget {name}' first to replace it"
        )


def print_state(name: str, state: ResourceState, *, reveal: bool) -> None:
    """Print a resource state, masking secrets unless reveal is set.

    Args:
        name: Resource name.
        state: The state to print.
        reveal: Print the root token and key shares in clear.

    """
    console.summary_panel(
        f"{RESOURCE_TYPE}.{name}",
        {
            "Vault": state.id,
            "Shares": "?" if state.secret_shares is None else str(state.secret_shares),
            "Threshold": "?" if state.secret_threshold is None else str(state.secret_threshold),
            "Root token": state.root_token if reveal else console.mask(state.root_token),
        },
    )
    console.keys_table(state.keys, state.keys_base64, reveal=reveal)


@click.group(invoke_without_command=True, help="Initialize HashiCorp Vault and keep its unseal keys in state")
@click.option("--version", "-v", required=False, is_flag=True, help="print version")
@click.option("--debug", required=False, is_flag=True, help="print debug information")
@click.option("--config", "config_file", required=False, type=click.Path(dir_okay=False), help="provider YAML file")
@click.option("--state", default=DEFAULT_STATE_FILE, show_default=True, help="state file")
@click.option("--vault-addr", required=False, help="Vault address")
@click.option("--vault-url", required=False, help="Vault address (deprecated, use --vault-addr)")
@click.option("--kube-config", "kube_config_path", required=False, help="kubeconfig used to tunnel to Vault")
@click.option("--namespace", required=False, help="namespace where Vault runs")
@click.option("--service", required=False, help="Vault service name")
@click.option("--local-port", required=False, help="local forward port [default: 8200]")
@click.option("--remote-port", required=False, help="remote service port to forward [default: 8200]")
@click.option("--use-tls/--no-use-tls", default=None, help="use TLS through the tunnel")
@click.option("--ca-cert", required=False, help="CA bundle to verify Vault with")
@click.option("--client-cert", required=False, help="client certificate")
@click.option("--client-key", required=False, help="client certificate key")
@click.option("--insecure-tls/--verify-tls", "use_insecure_tls", default=None, help="skip Vault TLS verification")
@click.pass_context
def cli(
    ctx: click.Context,
    version: bool,
    debug: bool,
    config_file: str | None,
    state: str,
    vault_addr: str | None,
    vault_url: str | None,
    kube_config_path: str | None,
    namespace: str | None,
    service: str | None,
    local_port: str | None,
    remote_port: str | None,
    use_tls: bool | None,
    ca_cert: str | None,
    client_cert: str | None,
    client_key: str | None,
    use_insecure_tls: bool | None,
) -> None:
    """Collect provider options for the subcommands."""
    setup(debug=debug)

    if version:
        click.echo(__version__)
        ctx.exit()

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        return

    ctx.obj = {
        "config": config_file,
        "state": state,
        "flags": {
            "vault_addr": vault_addr,
            "vault_url": vault_url,
            "kube_config": {
                "path": kube_config_path,
                "namespace": namespace,
                "service": service,
                "local_port": local_port,
                "remote_port": remote_port,
                "use_tls": use_tls,
                "ca_cert": ca_cert,
                "client_cert": client_cert,
                "client_key": client_key,
                "use_insecure_tls": use_insecure_tls,
            },
        },
    }


@cli.command(help="Run sys/init and store the root token and unseal keys")
@click.argument("name")
@click.option("--secret-shares", required=True, type=click.IntRange(min=0), help="number of key shares")
@click.option("--secret-threshold", required=True, type=click.IntRange(min=0), help="shares needed to unseal")
@click.pass_context
@handle_errors
def create(ctx: click.Context, name: str, secret_shares: int, secret_threshold: int) -> None:
    """Initialize Vault and commit the result under NAME."""
    _ensure_absent(_store(ctx), name)
    provider = _provider(ctx)
    result = provider.apply(
        Operation.CREATE,
        name,
        secret_shares=secret_shares,
        secret_threshold=secret_threshold,
    )
    print_state(name, result, reveal=False)


@cli.command("import", help="Import 'vault operator init -format=json' output from a file:// URI")
@click.argument("name")
@click.argument("uri")
@click.pass_context
@handle_errors
def import_(ctx: click.Context, name: str, uri: str) -> None:
    """Import existing init output under NAME."""
    _ensure_absent(_store(ctx), name)
    provider = _provider(ctx)
    result = provider.apply(Operation.IMPORT, name, import_id=uri)
    print_state(name, result, reveal=False)


@cli.command(help="Show a stored init resource")
@click.argument("name")
@click.option("--reveal", is_flag=True, help="print the root token and keys in clear")
@click.pass_context
@handle_errors
def show(ctx: click.Context, name: str, reveal: bool) -> None:
    """Print the stored state of NAME."""
    store = _store(ctx)
    stored = store.get(name)
    if stored is None:
        raise click.ClickException(f"{RESOURCE_TYPE}.{name} not found in {store.path}")
    print_state(name, stored, reveal=reveal)


@cli.command(help="Report whether Vault is initialized")
@click.pass_context
@handle_errors
def status(ctx: click.Context) -> None:
    """Read the init data source."""
    provider = _provider(ctx)
    initialized = provider.read_data_source()["initialized"]
    if initialized:
        console.success("Vault is initialized")
    else:
        console.info("Vault is not initialized")


@cli.command(help="Remove an init resource from the state file only")
@click.argument("name")
@click.pass_context
@handle_errors
def forget(ctx: click.Context, name: str) -> None:
    """Drop NAME from the state file; Vault is not touched."""
    store = _store(ctx)
    if not store.remove(name):
        raise click.ClickException(f"{RESOURCE_TYPE}.{name} not found in {store.path}")
    console.success(f"Removed {console.highlight(f'{RESOURCE_TYPE}.{name}')} from {store.path}")


if __name__ == "__main__":
    cli()
