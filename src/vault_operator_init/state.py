"""Resource state reconciliation and persistence.

This module maps Vault initialization output onto ``init`` resource state,
either from a live sys/init response or from an imported file holding the
output of ``vault operator init -format=json``, and persists the result in
a local JSON state file.

A state is always built from one coherent source: the root token and both
key lists are set together or the operation fails before anything is
committed.
"""

import contextlib
import json
import os
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any
from urllib.parse import unquote, urlsplit

from icecream import ic

from vault_operator_init import console
from vault_operator_init.exceptions import StateDecodeError, StateImportError, UnsupportedSchemeError
from vault_operator_init.models import InitRequest, InitResult, ResourceState

_STATE_FORMAT_VERSION = 1


def apply(address: str, result: InitResult, request: InitRequest | None = None) -> ResourceState:
    """Build the resource state for an initialization result.

    Args:
        address: The resolved Vault address, used as the resource id.
        result: The initialization output.
        request: The sys/init parameters, when known.

    Returns:
        ResourceState holding the result verbatim.

    """
    return ResourceState(
        id=address,
        root_token=result.root_token,
        keys=tuple(result.keys),
        keys_base64=tuple(result.keys_base64),
        secret_shares=request.secret_shares if request else None,
        secret_threshold=request.secret_threshold if request else None,
    )


def import_path(uri: str) -> Path:
    """Resolve the local path named by a ``file://`` import URI.

    The host part is kept, so ``file://init.json`` names ``init.json`` in
    the working directory while ``file:///tmp/init.json`` is absolute.

    Args:
        uri: The import identifier.

    Returns:
        The local file path.

    Raises:
        UnsupportedSchemeError: If the URI scheme is not ``file``.
        StateImportError: If the URI cannot be parsed or names no file.

    """
    try:
        parts = urlsplit(uri)
    except ValueError as e:
        raise StateImportError(f"Failed parsing import id '{uri}': {e}") from e

    if parts.scheme != "file":
        raise UnsupportedSchemeError(f"Unsupported scheme '{parts.scheme}' in '{uri}', expected file://")

    location = unquote(f"{parts.netloc}{parts.path}")
    if not location:
        raise StateImportError(f"Import id '{uri}' does not name a file")
    return Path(location)


def import_from(uri: str, address: str) -> ResourceState:
    """Import existing initialization output from a file.

    Args:
        uri: A ``file://`` URI pointing at sys/init shaped JSON.
        address: The resolved Vault address, used as the resource id.

    Returns:
        ResourceState holding the file's content verbatim.

    Raises:
        UnsupportedSchemeError: If the URI scheme is not ``file``.
        StateImportError: If the file cannot be read.
        StateDecodeError: If the file is not valid sys/init JSON.

    """
    path = import_path(uri)
    ic(path)

    try:
        content = path.read_bytes()
    except OSError as e:
        console.error(f"Failed reading file {path}")
        raise StateImportError(f"Failed reading '{path}': {e.strerror or e}") from e

    try:
        result = InitResult.from_json(content)
    except StateDecodeError as e:
        console.error(f"Failed decoding {path}")
        raise StateDecodeError(f"Failed decoding '{path}': {e}") from e

    return apply(address, result)


class StateStore:
    """Local JSON store of ``init`` resource states, keyed by resource name.

    Attributes:
        path: Location of the state file.

    """

    def __init__(self, path: str | Path) -> None:
        """Initialize the store.

        Args:
            path: Location of the state file; it need not exist yet.

        """
        self.path: Path = Path(path)

    def _load(self) -> dict[str, Any]:
        """Load the raw resources mapping.

        Raises:
            StateImportError: If the state file cannot be read.
            StateDecodeError: If the state file is corrupt.

        """
        try:
            document = json.loads(self.path.read_text())
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StateImportError(f"Cannot read state file '{self.path}': {e.strerror or e}") from e
        except ValueError as e:
            raise StateDecodeError(f"State file '{self.path}' is corrupt: {e}") from e

        if not isinstance(document, dict) or not isinstance(document.get("resources"), dict):
            raise StateDecodeError(f"State file '{self.path}' has no resources mapping")
        return document["resources"]

    def _save(self, resources: dict[str, Any]) -> None:
        """Replace the state file atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        document = {"version": _STATE_FORMAT_VERSION, "resources": resources}

        # Write next to the target so the replace stays on one filesystem
        tmp = NamedTemporaryFile("w", dir=self.path.parent, prefix=f".{self.path.name}.", delete=False)
        try:
            with tmp:
                os.chmod(tmp.name, 0o600)
                json.dump(document, tmp, indent=2, sort_keys=True)
                tmp.write("\n")
            Path(tmp.name).replace(self.path)
        except BaseException:
            with contextlib.suppress(OSError):
                Path(tmp.name).unlink(missing_ok=True)
            raise

    def names(self) -> list[str]:
        """Return the names of all stored resources."""
        return sorted(self._load())

    def get(self, name: str) -> ResourceState | None:
        """Return the stored state for a resource, or None."""
        raw = self._load().get(name)
        if raw is None:
            return None
        return ResourceState.from_dict(raw)

    def commit(self, name: str, state: ResourceState) -> None:
        """Store a complete resource state.

        Args:
            name: Resource name.
            state: The state to store; replaces any previous state.

        """
        resources = self._load()
        resources[name] = state.to_dict()
        self._save(resources)
        ic(name, state.id)

    def remove(self, name: str) -> bool:
        """Forget a resource. Vault is not touched.

        Returns:
            True if the resource was stored.

        """
        resources = self._load()
        if resources.pop(name, None) is None:
            return False
        self._save(resources)
        return True

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"StateStore(path={str(self.path)!r})"
