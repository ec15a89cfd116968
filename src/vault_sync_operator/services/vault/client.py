"""Vault secret store implementation."""

from __future__ import annotations

import logging
from typing import Any

from .session import VaultSession

logger = logging.getLogger(__name__)

# sys/health answers 429 for standbys and 503 while sealed; the server is still reachable
HEALTHY_STATUS_CODES = (200, 429, 503)


class VaultStore:
    """Vault KV implementation of the secret store."""

    def __init__(self, session: VaultSession) -> None:
        self.session = session

    def write(self, path: str, payload: dict[str, Any]) -> None:
        """Write an already shaped payload to a physical path."""
        client = self.session.ensure_authenticated()
        client.write_data(path, data=payload)

    def delete(self, path: str) -> None:
        """Delete a physical path."""
        client = self.session.ensure_authenticated()
        client.delete(path)

    def health_check(self) -> bool:
        """Check that Vault answers on sys/health."""
        try:
            response = self.session.client.sys.read_health_status(method="GET")
        except Exception as e:
            logger.warning(f"Vault health check failed: {e}")
            return False

        # hvac returns parsed JSON for 200 and the raw response otherwise
        if isinstance(response, dict):
            return True
        return getattr(response, "status_code", None) in HEALTHY_STATUS_CODES

    def readiness_check(self) -> bool:
        """Check that Vault is reachable and the session token is valid."""
        if not self.health_check():
            return False
        try:
            client = self.session.ensure_authenticated()
            client.auth.token.lookup_self()
            return True
        except Exception as e:
            logger.warning(f"Vault readiness check failed: {e}")
            return False
