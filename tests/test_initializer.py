"""Tests for initializer.py module."""

import pytest
import requests
from hvac.exceptions import InvalidRequest

from vault_operator_init.exceptions import InitializationError
from vault_operator_init.initializer import initialize, is_initialized
from vault_operator_init.state import apply


class TestInitialize:
    """Tests for the sys/init call."""

    def test_initialize_success(self, handle, mock_vault_client, init_response):
        """Test that the response is returned verbatim."""
        result = initialize(handle, 3, 2)

        mock_vault_client.sys.initialize.assert_called_once_with(secret_shares=3, secret_threshold=2)
        assert result.root_token == init_response["root_token"]
        assert list(result.keys) == init_response["keys"]
        assert list(result.keys_base64) == init_response["keys_base64"]

    def test_no_local_validation(self, handle, mock_vault_client):
        """Test that share count and threshold are left for Vault to judge."""
        initialize(handle, 1, 5)

        mock_vault_client.sys.initialize.assert_called_once_with(secret_shares=1, secret_threshold=5)

    def test_already_initialized_propagates(self, handle, mock_vault_client):
        """Test that a second initialize surfaces Vault's error unchanged."""
        first = initialize(handle, 3, 2)
        state = apply(handle.address, first)

        error = InvalidRequest("Vault is already initialized", errors=["Vault is already initialized"])
        mock_vault_client.sys.initialize.side_effect = error

        with pytest.raises(InitializationError) as exc_info:
            initialize(handle, 3, 2)

        assert str(exc_info.value) == str(error)
        assert exc_info.value.__cause__ is error
        assert mock_vault_client.sys.initialize.call_count == 2
        assert state.root_token == first.root_token
        assert state.keys == first.keys

    def test_transport_error_not_retried(self, handle, mock_vault_client):
        """Test that connection failures are raised after a single attempt."""
        error = requests.exceptions.ConnectionError("connection refused")
        mock_vault_client.sys.initialize.side_effect = error

        with pytest.raises(InitializationError) as exc_info:
            initialize(handle, 3, 2)

        assert exc_info.value.__cause__ is error
        mock_vault_client.sys.initialize.assert_called_once()

    def test_unexpected_response(self, handle, mock_vault_client):
        """Test that a response without root_token is an initialization error."""
        mock_vault_client.sys.initialize.return_value = {"keys": [], "keys_base64": []}

        with pytest.raises(InitializationError) as exc_info:
            initialize(handle, 3, 2)

        assert "Unexpected sys/init response" in str(exc_info.value)


class TestIsInitialized:
    """Tests for the initialization status read."""

    def test_not_initialized(self, handle):
        """Test reporting an uninitialized Vault."""
        assert is_initialized(handle) is False

    def test_initialized(self, handle, mock_vault_client):
        """Test reporting an initialized Vault."""
        mock_vault_client.sys.is_initialized.return_value = True

        assert is_initialized(handle) is True

    def test_status_error(self, handle, mock_vault_client):
        """Test that status read failures are raised."""
        mock_vault_client.sys.is_initialized.side_effect = requests.exceptions.ConnectionError("down")

        with pytest.raises(InitializationError):
            is_initialized(handle)
