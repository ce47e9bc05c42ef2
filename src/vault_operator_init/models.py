"""Data models for vault-operator-init.

This module provides type-safe data structures for the application,
replacing the loosely-typed provider configuration mappings with proper
Python data classes. Untyped input only enters through the ``from_*``
constructors, which validate it.
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple

from vault_operator_init.exceptions import ConfigurationError, StateDecodeError

DEFAULT_KUBE_CONFIG_PATH = "~/.kube/config"
DEFAULT_VAULT_PORT = "8200"

_TUNNEL_KEYS = frozenset(
    {
        "path",
        "namespace",
        "service",
        "local_port",
        "remote_port",
        "use_tls",
        "ca_cert",
        "client_cert",
        "client_key",
        "use_insecure_tls",
    }
)
_PROVIDER_KEYS = frozenset({"vault_addr", "vault_url", "request_headers", "kube_config"})


class Operation(str, Enum):
    """Lifecycle operations a declarative engine may invoke on a resource.

    Inherits from str to allow direct use in string contexts
    (e.g., command-line arguments, log output).
    """

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    IMPORT = "import"


def _get_str(raw: Mapping[str, Any], key: str, default: str = "") -> str:
    value = raw.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ConfigurationError(f"'{key}' must be a string, got {type(value).__name__}")
    return value


def _get_bool(raw: Mapping[str, Any], key: str, default: bool) -> bool:
    value = raw.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ConfigurationError(f"'{key}' must be a boolean, got {type(value).__name__}")
    return value


def _get_port(raw: Mapping[str, Any], key: str) -> str:
    value = raw.get(key)
    if value is None or value == "":
        return DEFAULT_VAULT_PORT
    # bool is an int subclass; a flag is never a port
    if isinstance(value, bool) or not isinstance(value, int | str):
        raise ConfigurationError(f"'{key}' must be a port number, got {type(value).__name__}")
    port = str(value).strip()
    if not (port.isascii() and port.isdigit()) or not 0 < int(port) < 65536:
        raise ConfigurationError(f"'{key}' must be a port number between 1 and 65535, got '{value}'")
    return port


def _reject_unknown(raw: Mapping[str, Any], allowed: frozenset[str], where: str) -> None:
    unknown = sorted(set(raw) - allowed)
    if unknown:
        raise ConfigurationError(f"Unsupported argument(s) in {where}: {', '.join(unknown)}")


@dataclass(frozen=True, slots=True)
class TLSConfig:
    """TLS material used to talk to Vault through the tunnel.

    Attributes:
        ca_cert: Path to a CA bundle used to verify Vault's certificate.
        client_cert: Path to a client certificate.
        client_key: Path to the client certificate's private key.
        insecure: Skip verification of Vault's certificate.

    """

    ca_cert: str = ""
    client_cert: str = ""
    client_key: str = ""
    insecure: bool = False


@dataclass(frozen=True, slots=True)
class TunnelSpec:
    """How to reach Vault through a Kubernetes cluster.

    Attributes:
        path: Path to the kubeconfig file; may start with '~'.
        namespace: Namespace where Vault runs.
        service: Name of the Vault service.
        local_port: Local port the forwarded connection listens on.
        remote_port: Port of the Vault service to forward.
        use_tls: Talk to Vault over https through the tunnel.
        ca_cert: CA bundle path, used only with use_tls.
        client_cert: Client certificate path, used only with use_tls.
        client_key: Client key path, used only with use_tls.
        use_insecure_tls: Skip Vault certificate verification.

    """

    path: str = DEFAULT_KUBE_CONFIG_PATH
    namespace: str = ""
    service: str = ""
    local_port: str = DEFAULT_VAULT_PORT
    remote_port: str = DEFAULT_VAULT_PORT
    use_tls: bool = False
    ca_cert: str = ""
    client_cert: str = ""
    client_key: str = ""
    use_insecure_tls: bool = True

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "TunnelSpec":
        """Decode a ``kube_config`` block.

        Args:
            raw: The untyped block as read from a config file or CLI flags.

        Returns:
            A validated TunnelSpec with defaults applied.

        Raises:
            ConfigurationError: If a key is unknown or a value has the wrong type.

        """
        _reject_unknown(raw, _TUNNEL_KEYS, "kube_config")
        return cls(
            path=_get_str(raw, "path", DEFAULT_KUBE_CONFIG_PATH) or DEFAULT_KUBE_CONFIG_PATH,
            namespace=_get_str(raw, "namespace"),
            service=_get_str(raw, "service"),
            local_port=_get_port(raw, "local_port"),
            remote_port=_get_port(raw, "remote_port"),
            use_tls=_get_bool(raw, "use_tls", False),
            ca_cert=_get_str(raw, "ca_cert"),
            client_cert=_get_str(raw, "client_cert"),
            client_key=_get_str(raw, "client_key"),
            use_insecure_tls=_get_bool(raw, "use_insecure_tls", True),
        )

    @property
    def is_empty(self) -> bool:
        """True when the block carries nothing beyond defaults."""
        return self == TunnelSpec()

    def tls_config(self) -> TLSConfig:
        """Return the TLS material carried by this spec."""
        return TLSConfig(
            ca_cert=self.ca_cert,
            client_cert=self.client_cert,
            client_key=self.client_key,
            insecure=self.use_insecure_tls,
        )


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    """Provider-level configuration.

    Attributes:
        vault_addr: Vault address, preferred form.
        vault_url: Deprecated alias of vault_addr.
        request_headers: Extra request headers (declared, not applied).
        kube_config: Tunnel specification, if Vault is reached through Kubernetes.

    """

    vault_addr: str = ""
    vault_url: str = ""
    request_headers: dict[str, str] = field(default_factory=dict)
    kube_config: TunnelSpec | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "ProviderConfig":
        """Decode an untyped provider configuration mapping.

        The ``kube_config`` block may be given either as a mapping or as a
        list holding a single mapping.

        Args:
            raw: The untyped configuration, or None for an empty one.

        Returns:
            A validated ProviderConfig.

        Raises:
            ConfigurationError: If the mapping has unknown keys or bad values.

        """
        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            raise ConfigurationError(f"Provider configuration must be a mapping, got {type(raw).__name__}")
        _reject_unknown(raw, _PROVIDER_KEYS, "provider configuration")

        headers = raw.get("request_headers") or {}
        if not isinstance(headers, Mapping) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in headers.items()
        ):
            raise ConfigurationError("'request_headers' must be a map of string to string")

        block = raw.get("kube_config")
        if isinstance(block, list):
            if len(block) > 1:
                raise ConfigurationError("Only one 'kube_config' block is allowed")
            block = block[0] if block else None
        if block is not None and not isinstance(block, Mapping):
            raise ConfigurationError(f"'kube_config' must be a mapping, got {type(block).__name__}")

        tunnel = TunnelSpec.from_mapping(block) if block is not None else None
        if tunnel is not None and tunnel.is_empty:
            tunnel = None

        return cls(
            vault_addr=_get_str(raw, "vault_addr"),
            vault_url=_get_str(raw, "vault_url"),
            request_headers=dict(headers),
            kube_config=tunnel,
        )


@dataclass(frozen=True, slots=True)
class TunnelEndpoint:
    """A local endpoint forwarding to the Vault service in Kubernetes.

    Attributes:
        local_port: Local port of the endpoint.
        remote_port: Forwarded Vault service port.
        namespace: Namespace of the Vault service.
        service: Name of the Vault service.
        api_client: Kubernetes ApiClient built from the kubeconfig.
        core_v1: CoreV1Api bound to api_client.
        host: Host the endpoint listens on.

    """

    local_port: str
    remote_port: str
    namespace: str
    service: str
    api_client: Any = field(repr=False, compare=False)
    core_v1: Any = field(repr=False, compare=False)
    host: str = "localhost"


@dataclass(frozen=True, slots=True)
class ClientHandle:
    """A Vault client bound to one resolved address.

    Attributes:
        address: The resolved Vault address; also the resource identity.
        client: The hvac.Client talking to address.
        tls: TLS configuration applied to client, if any.
        tunnel: The tunnel endpoint behind address, if any.

    """

    address: str
    client: Any = field(repr=False, compare=False)
    tls: TLSConfig | None = None
    tunnel: TunnelEndpoint | None = None


class InitRequest(NamedTuple):
    """Parameters of a sys/init call."""

    secret_shares: int
    secret_threshold: int


@dataclass(frozen=True, slots=True)
class InitResult:
    """The sensitive output of a sys/init call.

    Attributes:
        root_token: The initial root token.
        keys: Unseal key shares, hex encoded, in Vault's order.
        keys_base64: The same shares, base64 encoded.

    """

    root_token: str
    keys: tuple[str, ...]
    keys_base64: tuple[str, ...]

    @classmethod
    def from_response(cls, response: Any) -> "InitResult":
        """Build a result from a decoded sys/init response.

        Args:
            response: The decoded JSON document.

        Returns:
            The InitResult holding the three sensitive fields verbatim.

        Raises:
            StateDecodeError: If a field is missing or has the wrong type.

        """
        if not isinstance(response, Mapping):
            raise StateDecodeError(f"Expected a JSON object, got {type(response).__name__}")

        missing = [key for key in ("keys", "keys_base64", "root_token") if key not in response]
        if missing:
            raise StateDecodeError(f"Missing required field(s): {', '.join(missing)}")

        root_token = response["root_token"]
        if not isinstance(root_token, str):
            raise StateDecodeError("'root_token' must be a string")

        lists: dict[str, tuple[str, ...]] = {}
        for key in ("keys", "keys_base64"):
            value = response[key]
            if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
                raise StateDecodeError(f"'{key}' must be a list of strings")
            lists[key] = tuple(value)

        return cls(root_token=root_token, keys=lists["keys"], keys_base64=lists["keys_base64"])

    @classmethod
    def from_json(cls, text: str | bytes) -> "InitResult":
        """Decode the JSON printed by ``vault operator init -format=json``.

        Args:
            text: The JSON document.

        Returns:
            The decoded InitResult.

        Raises:
            StateDecodeError: If the document is not valid JSON of the expected shape.

        """
        try:
            document = json.loads(text)
        except ValueError as err:
            raise StateDecodeError(f"Malformed JSON: {err}") from err
        return cls.from_response(document)


@dataclass(frozen=True, slots=True)
class ResourceState:
    """Persisted state of an ``init`` resource.

    Attributes:
        id: The Vault address the resource was initialized against.
        root_token: The initial root token.
        keys: Unseal key shares.
        keys_base64: Unseal key shares, base64 encoded.
        secret_shares: Requested share count; unknown after an import.
        secret_threshold: Requested threshold; unknown after an import.

    """

    id: str
    root_token: str
    keys: tuple[str, ...]
    keys_base64: tuple[str, ...]
    secret_shares: int | None = None
    secret_threshold: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""
        return {
            "id": self.id,
            "secret_shares": self.secret_shares,
            "secret_threshold": self.secret_threshold,
            "root_token": self.root_token,
            "keys": list(self.keys),
            "keys_base64": list(self.keys_base64),
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ResourceState":
        """Rebuild a state from its ``to_dict`` form.

        Raises:
            StateDecodeError: If the stored document is incomplete.

        """
        result = InitResult.from_response(raw)
        resource_id = raw.get("id")
        if not isinstance(resource_id, str) or not resource_id:
            raise StateDecodeError("Stored state has no 'id'")
        return cls(
            id=resource_id,
            root_token=result.root_token,
            keys=result.keys,
            keys_base64=result.keys_base64,
            secret_shares=raw.get("secret_shares"),
            secret_threshold=raw.get("secret_threshold"),
        )

    @property
    def result(self) -> InitResult:
        """The sensitive fields as an InitResult."""
        return InitResult(root_token=self.root_token, keys=self.keys, keys_base64=self.keys_base64)
