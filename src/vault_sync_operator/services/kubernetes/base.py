"""Base object store interface."""

from __future__ import annotations

from typing import Protocol

from ...models import SecretRef, SyncTarget, TargetRef


class ObjectStore(Protocol):
    """Protocol defining the platform reads and writes the engine needs."""

    def get_target(self, ref: TargetRef) -> SyncTarget | None:
        """Fetch a sync target, or None if it no longer exists."""
        ...

    def update_target(self, target: SyncTarget) -> None:
        """Persist the target's annotations and finalizers."""
        ...

    def get_secret(self, namespace: str, name: str) -> SecretRef:
        """Fetch a secret referenced by a target.

        Raises:
            SecretNotFoundError: If the secret does not exist
        """
        ...
