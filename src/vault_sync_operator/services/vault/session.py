"""Vault authentication session."""

from __future__ import annotations

import logging
import threading
from typing import Callable

import hvac

from ... import metrics
from ...config import DEFAULT_TOKEN_PATH, OperatorConfig
from ...utils.errors import StoreError, classify_store_error, sanitize_exception

logger = logging.getLogger(__name__)


class VaultSession:
    """Lazily authenticated Vault client shared by the store and the writer.

    The client token is acquired with the Kubernetes auth method the first
    time it is needed and re-acquired after ``invalidate``. Login is
    serialized under a lock so concurrent reconciles log in once.
    """

    def __init__(
        self,
        client_factory: Callable[[], hvac.Client],
        role: str,
        auth_path: str = "kubernetes",
        token_path: str = DEFAULT_TOKEN_PATH,
    ) -> None:
        self._client_factory = client_factory
        self.role = role
        self.auth_path = auth_path.strip("/")
        self.token_path = token_path
        self._client: hvac.Client | None = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: OperatorConfig) -> VaultSession:
        """Build a session for the configured Vault address and auth role."""

        def factory() -> hvac.Client:
            return hvac.Client(
                url=config.vault_addr,
                verify=not config.vault_skip_verify,
                timeout=config.vault_request_timeout,
            )

        return cls(
            factory,
            role=config.vault_role,
            auth_path=config.vault_auth_path,
            token_path=config.vault_token_path,
        )

    @property
    def client(self) -> hvac.Client:
        """The underlying client, created on first use (may be unauthenticated)."""
        with self._lock:
            return self._get_client()

    def _get_client(self) -> hvac.Client:
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    @property
    def has_token(self) -> bool:
        with self._lock:
            return bool(self._client is not None and self._client.token)

    def _read_jwt(self) -> str:
        with open(self.token_path, encoding="utf-8") as f:
            return f.read().strip()

    def ensure_authenticated(self) -> hvac.Client:
        """Return a client holding a token, logging in when it has none.

        Raises:
            StoreError: If the service account token cannot be read or the
                login is rejected
        """
        with self._lock:
            client = self._get_client()
            if client.token:
                return client

            login_path = f"auth/{self.auth_path}/login"
            try:
                jwt = self._read_jwt()
                client.auth.kubernetes.login(role=self.role, jwt=jwt, mount_point=self.auth_path)
            except Exception as e:
                classification = classify_store_error(e)
                metrics.vault_auth_attempts_total.labels(result="failed").inc()
                logger.error(f"Vault login at {login_path} failed for role {self.role}: {sanitize_exception(e)}")
                raise StoreError(
                    f"vault login failed: {sanitize_exception(e)}",
                    operation="login",
                    path=login_path,
                    classification=classification,
                ) from e

            metrics.vault_auth_attempts_total.labels(result="success").inc()
            logger.info(f"Authenticated to vault with role {self.role}")
            return client

    def invalidate(self) -> None:
        """Drop the current token so the next operation logs in again."""
        with self._lock:
            if self._client is not None:
                self._client.token = None
