"""Shared test fixtures for vault-operator-init tests."""

import json
from unittest.mock import MagicMock, patch

import pytest

from vault_operator_init.models import ClientHandle, TunnelEndpoint, TunnelSpec
from vault_operator_init.state import StateStore

VAULT_ADDR = "https://vault.example.com:8200"


class FakeTunnelBuilder:
    """Tunnel factory recording the specs it was asked to build."""

    def __init__(self, error: Exception | None = None) -> None:
        self.specs: list[TunnelSpec] = []
        self.error = error

    def build(self, spec: TunnelSpec) -> TunnelEndpoint:
        self.specs.append(spec)
        if self.error is not None:
            raise self.error
        return TunnelEndpoint(
            local_port=spec.local_port,
            remote_port=spec.remote_port,
            namespace=spec.namespace,
            service=spec.service,
            api_client=MagicMock(),
            core_v1=MagicMock(),
        )


@pytest.fixture(autouse=True)
def no_vault_addr_env(monkeypatch):
    """Keep the developer's VAULT_ADDR out of the tests."""
    monkeypatch.delenv("VAULT_ADDR", raising=False)


@pytest.fixture
def fake_tunnel_builder():
    """A tunnel factory that never touches Kubernetes."""
    return FakeTunnelBuilder()


@pytest.fixture
def init_response():
    """Sample sys/init response."""
    return {
        "keys": ["a1b2c3", "d4e5f6", "0718293a"],
        "keys_base64": ["obLD", "1OX2", "BxgpOg=="],
        "root_token": "hvs.rootTokenValue",
        "recovery_keys": [],
        "recovery_keys_base64": [],
    }


@pytest.fixture
def mock_vault_client(init_response):
    """Mock hvac client answering sys/init with init_response."""
    vault_client = MagicMock()
    vault_client.sys.initialize.return_value = init_response
    vault_client.sys.is_initialized.return_value = False
    return vault_client


@pytest.fixture
def handle(mock_vault_client):
    """Client handle bound to the mock hvac client."""
    return ClientHandle(address=VAULT_ADDR, client=mock_vault_client)


@pytest.fixture
def mock_hvac_client(mock_vault_client):
    """Patch hvac.Client so resolution returns the mock client."""
    with patch("hvac.Client") as mock:
        mock.return_value = mock_vault_client
        yield mock


@pytest.fixture
def init_file(tmp_path):
    """An init output file as written by 'vault operator init -format=json'."""
    path = tmp_path / "init.json"
    path.write_text(json.dumps({"keys": ["k1"], "keys_base64": ["a2k="], "root_token": "t1"}))
    return path


@pytest.fixture
def store(tmp_path):
    """State store in a temporary directory."""
    return StateStore(tmp_path / "state" / "vault-init.tfstate.json")
