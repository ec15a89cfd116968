"""Vault secret store client, session and rate-limited writer."""

from .client import VaultStore
from .session import VaultSession
from .writer import RateLimitedWriter, payload_size

__all__ = [
    "RateLimitedWriter",
    "VaultSession",
    "VaultStore",
    "payload_size",
]
