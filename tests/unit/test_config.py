"""Tests for operator configuration."""

from __future__ import annotations

import pytest

from vault_sync_operator.config import OperatorConfig


class TestOperatorConfig:
    """Test cases for OperatorConfig.from_env."""

    def test_defaults(self, monkeypatch):
        for name in ("VAULT_ADDR", "VAULT_KV_VERSION", "WATCH_KINDS", "CLUSTER_NAME", "VAULT_SKIP_VERIFY"):
            monkeypatch.delenv(name, raising=False)

        config = OperatorConfig.from_env()

        assert config.vault_addr == "http://vault:8200"
        assert config.vault_kv_version == "auto"
        assert config.cluster_name == ""
        assert not config.vault_skip_verify
        assert config.watch_kinds == ("Deployment", "StatefulSet", "DaemonSet", "Secret")

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("VAULT_ADDR", "https://vault.example:8200")
        monkeypatch.setenv("VAULT_KV_VERSION", "2")
        monkeypatch.setenv("CLUSTER_NAME", " east ")
        monkeypatch.setenv("VAULT_SKIP_VERIFY", "true")
        monkeypatch.setenv("WATCH_KINDS", "Deployment, Secret")
        monkeypatch.setenv("VAULT_RATE_LIMIT_BURST", "50")

        config = OperatorConfig.from_env()

        assert config.vault_addr == "https://vault.example:8200"
        assert config.vault_kv_version == "2"
        assert config.cluster_name == "east"
        assert config.vault_skip_verify
        assert config.watch_kinds == ("Deployment", "Secret")
        assert config.vault_rate_burst == 50

    def test_invalid_kv_version(self, monkeypatch):
        monkeypatch.setenv("VAULT_KV_VERSION", "3")

        with pytest.raises(ValueError, match="VAULT_KV_VERSION"):
            OperatorConfig.from_env()

    def test_unknown_watch_kind(self, monkeypatch):
        monkeypatch.setenv("WATCH_KINDS", "Deployment,CronJob")

        with pytest.raises(ValueError, match="CronJob"):
            OperatorConfig.from_env()

    def test_non_numeric(self, monkeypatch):
        monkeypatch.setenv("RECONCILE_TIMEOUT_SECONDS", "soon")

        with pytest.raises(ValueError, match="RECONCILE_TIMEOUT_SECONDS"):
            OperatorConfig.from_env()
