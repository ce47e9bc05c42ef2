"""The ``init`` resource and its provider.

This module exposes the operations a declarative engine invokes on the
``init`` resource through an explicit dispatch table. Only ``create`` and
``import`` do anything; Vault cannot read back, update or undo an
initialization, so the remaining operations always fail.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from icecream import ic

from vault_operator_init import console
from vault_operator_init.exceptions import ConfigurationError, OperationNotImplementedError
from vault_operator_init.initializer import initialize, is_initialized
from vault_operator_init.models import ClientHandle, InitRequest, Operation, ProviderConfig, ResourceState
from vault_operator_init.state import StateStore, apply, import_from
from vault_operator_init.transport import TransportResolver

RESOURCE_TYPE = "vaultoperator_init"


@dataclass(frozen=True, slots=True)
class ResourceRequest:
    """Arguments of one resource operation.

    Attributes:
        name: Resource name in the state store.
        handle: Client handle of the current configuration cycle.
        secret_shares: Requested share count (create only).
        secret_threshold: Requested threshold (create only).
        import_id: ``file://`` URI of the init output (import only).

    """

    name: str
    handle: ClientHandle
    secret_shares: int | None = None
    secret_threshold: int | None = None
    import_id: str = ""


Handler = Callable[[ResourceRequest], ResourceState]


def _create(request: ResourceRequest) -> ResourceState:
    if request.secret_shares is None or request.secret_threshold is None:
        raise ConfigurationError("'secret_shares' and 'secret_threshold' are required")

    init_request = InitRequest(request.secret_shares, request.secret_threshold)
    result = initialize(request.handle, init_request.secret_shares, init_request.secret_threshold)
    return apply(request.handle.address, result, init_request)


def _import(request: ResourceRequest) -> ResourceState:
    return import_from(request.import_id, request.handle.address)


def _not_implemented(operation: Operation) -> Handler:
    def handler(request: ResourceRequest) -> ResourceState:
        raise OperationNotImplementedError(f"{RESOURCE_TYPE} {operation.value}: not implemented")

    return handler


RESOURCE_OPERATIONS: dict[Operation, Handler] = {
    Operation.CREATE: _create,
    Operation.READ: _not_implemented(Operation.READ),
    Operation.UPDATE: _not_implemented(Operation.UPDATE),
    Operation.DELETE: _not_implemented(Operation.DELETE),
    Operation.IMPORT: _import,
}


def setup(*, debug: bool) -> None:
    """Apply process-wide settings once, before any resource operation.

    Args:
        debug: Enable debug tracing.

    """
    if debug:
        ic.enable()
        ic.configureOutput(prefix="debug| ")
    else:
        ic.disable()


class Provider:
    """Runs ``init`` resource operations against one configured Vault.

    Attributes:
        store: State store receiving committed resource states.
        resolver: Transport resolver used by configure.
        config: Decoded provider configuration, once configured.
        handle: Client handle of the current configuration cycle.

    """

    def __init__(self, store: StateStore, resolver: TransportResolver | None = None) -> None:
        """Initialize the provider.

        Args:
            store: State store to commit resource states to.
            resolver: Transport resolver; defaults to TransportResolver().

        """
        self.store: StateStore = store
        self.resolver: TransportResolver = resolver or TransportResolver()
        self.config: ProviderConfig | None = None
        self.handle: ClientHandle | None = None

    def configure(self, raw: Mapping[str, Any] | None) -> ClientHandle:
        """Decode the provider configuration and build the client handle.

        Args:
            raw: Untyped provider configuration.

        Returns:
            The client handle for this configuration cycle.

        Raises:
            ConfigurationError: If the configuration is invalid or cannot be resolved.

        """
        config = ProviderConfig.from_mapping(raw)
        ic(config)
        handle = self.resolver.resolve(config)
        self.config = config
        self.handle = handle
        return handle

    def _require_handle(self) -> ClientHandle:
        if self.handle is None:
            raise ConfigurationError("Provider is not configured")
        return self.handle

    def apply(
        self,
        operation: Operation | str,
        name: str,
        *,
        secret_shares: int | None = None,
        secret_threshold: int | None = None,
        import_id: str = "",
    ) -> ResourceState:
        """Run one resource operation and commit its resulting state.

        Args:
            operation: The lifecycle operation to run.
            name: Resource name in the state store.
            secret_shares: Share count for create.
            secret_threshold: Threshold for create.
            import_id: ``file://`` URI for import.

        Returns:
            The committed resource state.

        Raises:
            VaultOperatorError: Whatever the operation raised; nothing is
                committed in that case.

        """
        operation = Operation(operation)
        handler = RESOURCE_OPERATIONS[operation]
        request = ResourceRequest(
            name=name,
            handle=self._require_handle(),
            secret_shares=secret_shares,
            secret_threshold=secret_threshold,
            import_id=import_id,
        )

        state = handler(request)
        self.store.commit(name, state)
        verb = "Imported" if operation is Operation.IMPORT else "Created"
        console.success(f"{verb} {console.highlight(f'{RESOURCE_TYPE}.{name}')}")
        return state

    def read_data_source(self) -> dict[str, bool]:
        """Read the ``init`` data source.

        Returns:
            Mapping with the ``initialized`` flag of the configured Vault.

        """
        return {"initialized": is_initialized(self._require_handle())}

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"Provider(store={self.store!r}, handle={self.handle!r})"
