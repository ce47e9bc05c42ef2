"""Tests for transport.py module."""

from unittest.mock import patch

import pytest

from conftest import FakeTunnelBuilder
from vault_operator_init.exceptions import ConfigurationError, TunnelError
from vault_operator_init.models import ProviderConfig, TLSConfig, TunnelSpec
from vault_operator_init.transport import TransportResolver, tls_client_options, tunnel_address, validate_address


def _config(**raw):
    return ProviderConfig.from_mapping(raw)


class TestDirectAddress:
    """Tests for address selection without a tunnel."""

    def test_vault_addr_preferred(self, fake_tunnel_builder, monkeypatch):
        """Test that vault_addr wins over vault_url and VAULT_ADDR."""
        monkeypatch.setenv("VAULT_ADDR", "http://env:8200")
        resolver = TransportResolver(tunnel_builder=fake_tunnel_builder)

        address, tls, endpoint = resolver.resolve_address(
            _config(vault_addr="http://addr:8200", vault_url="http://url:8200")
        )

        assert address == "http://addr:8200"
        assert tls is None
        assert endpoint is None

    def test_vault_url_fallback(self, fake_tunnel_builder, monkeypatch):
        """Test that the deprecated vault_url is used when vault_addr is empty."""
        monkeypatch.setenv("VAULT_ADDR", "http://env:8200")
        resolver = TransportResolver(tunnel_builder=fake_tunnel_builder)

        address, _, _ = resolver.resolve_address(_config(vault_addr="", vault_url="http://url:8200"))

        assert address == "http://url:8200"

    def test_environment_fallback(self, fake_tunnel_builder, monkeypatch):
        """Test that VAULT_ADDR is used when no address is configured."""
        monkeypatch.setenv("VAULT_ADDR", "http://env:8200")
        resolver = TransportResolver(tunnel_builder=fake_tunnel_builder)

        address, _, _ = resolver.resolve_address(_config())

        assert address == "http://env:8200"

    def test_nothing_configured(self, fake_tunnel_builder):
        """Test that an unresolvable address names the field and variable."""
        resolver = TransportResolver(tunnel_builder=fake_tunnel_builder)

        with pytest.raises(ConfigurationError) as exc_info:
            resolver.resolve(_config())

        assert "vault_addr" in str(exc_info.value)
        assert "VAULT_ADDR" in str(exc_info.value)
        assert fake_tunnel_builder.specs == []


class TestTunnelAddress:
    """Tests for address selection through a tunnel."""

    def test_http_without_tls(self, fake_tunnel_builder):
        """Test that a tunnel without TLS resolves to http on localhost."""
        resolver = TransportResolver(tunnel_builder=fake_tunnel_builder)

        address, tls, endpoint = resolver.resolve_address(
            _config(kube_config={"namespace": "vault", "service": "vault", "local_port": "18200"})
        )

        assert address == "http://localhost:18200"
        assert tls is None
        assert endpoint.namespace == "vault"

    def test_https_with_tls(self, fake_tunnel_builder):
        """Test that a tunnel with TLS resolves to https and carries TLS material."""
        resolver = TransportResolver(tunnel_builder=fake_tunnel_builder)

        address, tls, _ = resolver.resolve_address(
            _config(
                kube_config={
                    "namespace": "vault",
                    "service": "vault",
                    "use_tls": True,
                    "ca_cert": "/etc/ca.pem",
                    "use_insecure_tls": False,
                }
            )
        )

        assert address == "https://localhost:8200"
        assert tls == TLSConfig(ca_cert="/etc/ca.pem", insecure=False)

    def test_tunnel_takes_precedence(self, fake_tunnel_builder, monkeypatch):
        """Test that a tunnel wins over a direct address."""
        monkeypatch.setenv("VAULT_ADDR", "http://env:8200")
        resolver = TransportResolver(tunnel_builder=fake_tunnel_builder)

        address, _, _ = resolver.resolve_address(
            _config(vault_addr="http://addr:8200", kube_config={"namespace": "vault", "service": "vault"})
        )

        assert address == "http://localhost:8200"
        assert len(fake_tunnel_builder.specs) == 1

    @pytest.mark.parametrize(("use_tls", "port", "expected"), [
        (False, "8200", "http://localhost:8200"),
        (True, "8200", "https://localhost:8200"),
        (True, "9443", "https://localhost:9443"),
    ])
    def test_tunnel_address(self, use_tls, port, expected):
        """Test tunnel address framing."""
        spec = TunnelSpec(namespace="vault", service="vault", use_tls=use_tls, local_port=port)

        assert tunnel_address(spec) == expected

    def test_missing_namespace_before_client(self, mock_hvac_client):
        """Test that a missing namespace fails before any Vault client is built."""
        builder = FakeTunnelBuilder(error=TunnelError("Vault namespace is not specified (kube_config.namespace)"))
        resolver = TransportResolver(tunnel_builder=builder)

        with pytest.raises(TunnelError) as exc_info:
            resolver.resolve(_config(kube_config={"service": "vault"}))

        assert "namespace" in str(exc_info.value)
        mock_hvac_client.assert_not_called()


class TestValidateAddress:
    """Tests for address validation."""

    @pytest.mark.parametrize("address", ["http://vault:8200", "https://10.0.0.1", "https://vault.example.com/"])
    def test_valid(self, address):
        """Test that http(s) URLs with a host are accepted."""
        assert validate_address(address) == address

    @pytest.mark.parametrize("address", ["vault:8200", "ftp://vault", "http://", "http://vault:port", "http://[::1"])
    def test_malformed(self, address):
        """Test that malformed addresses are configuration errors."""
        with pytest.raises(ConfigurationError) as exc_info:
            validate_address(address)

        assert "Malformed Vault address" in str(exc_info.value)


class TestTLSOptions:
    """Tests for applying TLS configuration."""

    def test_insecure_disables_verification(self):
        """Test that insecure TLS turns verification off."""
        assert tls_client_options(TLSConfig(insecure=True)) == {"verify": False}

    def test_default_verification(self):
        """Test that secure TLS without CA uses the system bundle."""
        assert tls_client_options(TLSConfig()) == {"verify": True}

    def test_ca_and_client_cert(self, tmp_path):
        """Test that CA bundle and client certificate are passed through."""
        ca, cert, key = (tmp_path / "ca.pem", tmp_path / "tls.crt", tmp_path / "tls.key")
        for path in (ca, cert, key):
            path.write_text("pem")

        options = tls_client_options(TLSConfig(ca_cert=str(ca), client_cert=str(cert), client_key=str(key)))

        assert options == {"verify": str(ca), "cert": (str(cert), str(key))}

    def test_missing_ca_file(self, tmp_path):
        """Test that a missing CA file is a configuration error."""
        with pytest.raises(ConfigurationError) as exc_info:
            tls_client_options(TLSConfig(ca_cert=str(tmp_path / "missing.pem")))

        assert "ca_cert" in str(exc_info.value)

    def test_cert_without_key(self, tmp_path):
        """Test that a client certificate requires its key."""
        cert = tmp_path / "tls.crt"
        cert.write_text("pem")

        with pytest.raises(ConfigurationError) as exc_info:
            tls_client_options(TLSConfig(client_cert=str(cert)))

        assert "must be set together" in str(exc_info.value)


class TestResolve:
    """Tests for building the client handle."""

    def test_direct_handle(self, fake_tunnel_builder, mock_hvac_client, mock_vault_client):
        """Test that the handle is bound to the resolved address."""
        resolver = TransportResolver(tunnel_builder=fake_tunnel_builder)

        handle = resolver.resolve(_config(vault_addr="https://vault:8200"))

        mock_hvac_client.assert_called_once_with(url="https://vault:8200")
        assert handle.address == "https://vault:8200"
        assert handle.client is mock_vault_client
        assert handle.tls is None
        assert handle.tunnel is None

    def test_tunnel_handle_with_tls(self, fake_tunnel_builder, mock_hvac_client):
        """Test that TLS options reach the hvac client for tunnelled connections."""
        resolver = TransportResolver(tunnel_builder=fake_tunnel_builder)

        handle = resolver.resolve(_config(kube_config={"namespace": "vault", "service": "vault", "use_tls": True}))

        mock_hvac_client.assert_called_once_with(url="https://localhost:8200", verify=False)
        assert handle.tls == TLSConfig(insecure=True)
        assert handle.tunnel is not None

    def test_tls_fields_ignored_without_tls(self, fake_tunnel_builder, mock_hvac_client):
        """Test that TLS material is not applied when the tunnel does not use TLS."""
        resolver = TransportResolver(tunnel_builder=fake_tunnel_builder)

        handle = resolver.resolve(
            _config(kube_config={"namespace": "vault", "service": "vault", "ca_cert": "/does/not/exist"})
        )

        mock_hvac_client.assert_called_once_with(url="http://localhost:8200")
        assert handle.tls is None

    def test_client_construction_failure(self, fake_tunnel_builder):
        """Test that hvac construction errors become configuration errors."""
        resolver = TransportResolver(tunnel_builder=fake_tunnel_builder)
        error = ValueError("bad adapter")

        with patch("hvac.Client", side_effect=error):
            with pytest.raises(ConfigurationError) as exc_info:
                resolver.resolve(_config(vault_addr="https://vault:8200"))

        assert exc_info.value.__cause__ is error

    def test_each_resolution_builds_new_client(self, fake_tunnel_builder, mock_hvac_client):
        """Test that handles are not shared between configuration cycles."""
        resolver = TransportResolver(tunnel_builder=fake_tunnel_builder)

        resolver.resolve(_config(vault_addr="https://a:8200"))
        resolver.resolve(_config(vault_addr="https://b:8200"))

        assert mock_hvac_client.call_count == 2
