"""Vault Sync Operator: mirrors Kubernetes secrets into HashiCorp Vault."""

__version__ = "0.1.0"
