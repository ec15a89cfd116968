"""Base secret store interface."""

from __future__ import annotations

from typing import Any, Protocol


class SecretStore(Protocol):
    """Protocol defining secret store operations."""

    def write(self, path: str, payload: dict[str, Any]) -> None:
        """Write a payload to a physical path, replacing what was there."""
        ...

    def delete(self, path: str) -> None:
        """Delete a physical path."""
        ...

    def health_check(self) -> bool:
        """Check that the store is reachable."""
        ...

    def readiness_check(self) -> bool:
        """Check that the store is reachable and the session token is valid."""
        ...
