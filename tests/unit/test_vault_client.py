"""Tests for the Vault store."""

from __future__ import annotations

from unittest.mock import MagicMock

from vault_sync_operator.services.vault.client import VaultStore


def make_store(health_response=None, lookup_error=None):
    client = MagicMock()
    client.sys.read_health_status.return_value = health_response if health_response is not None else {"sealed": False}
    if lookup_error is not None:
        client.auth.token.lookup_self.side_effect = lookup_error
    session = MagicMock()
    session.client = client
    session.ensure_authenticated.return_value = client
    return VaultStore(session), client


class TestVaultStore:
    """Test cases for VaultStore."""

    def test_write(self):
        """Test that writes send the shaped payload as-is."""
        store, client = make_store()
        store.write("secret/data/app", {"data": {"a": "1"}})
        client.write_data.assert_called_once_with("secret/data/app", data={"data": {"a": "1"}})

    def test_delete(self):
        """Test deleting a path."""
        store, client = make_store()
        store.delete("secret/data/app")
        client.delete.assert_called_once_with("secret/data/app")

    def test_health_ok(self):
        """Test an active node."""
        store, _ = make_store()
        assert store.health_check()

    def test_health_standby_and_sealed_count_as_reachable(self):
        """Test that 429 and 503 answers still mean reachable."""
        for status in (429, 503):
            store, _ = make_store(health_response=MagicMock(status_code=status))
            assert store.health_check()

    def test_health_other_status(self):
        """Test that other answers are unhealthy."""
        store, _ = make_store(health_response=MagicMock(status_code=501))
        assert not store.health_check()

    def test_health_unreachable(self):
        """Test that connection errors are unhealthy."""
        store, client = make_store()
        client.sys.read_health_status.side_effect = ConnectionError("refused")
        assert not store.health_check()

    def test_readiness(self):
        """Test that readiness checks the token."""
        store, client = make_store()
        assert store.readiness_check()
        client.auth.token.lookup_self.assert_called_once()

    def test_readiness_invalid_token(self):
        """Test that a rejected token is not ready."""
        store, _ = make_store(lookup_error=RuntimeError("permission denied"))
        assert not store.readiness_check()
