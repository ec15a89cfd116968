"""Correlation IDs and cancellation deadlines for reconcile calls."""

from __future__ import annotations

import contextvars
import threading
import time
from contextlib import contextmanager
from typing import Any, Iterator

from .errors import ReconcileCancelled

# Context variable for storing correlation ID
correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


def set_correlation_id(corr_id: str) -> None:
    """Set the correlation ID in the current context."""
    correlation_id.set(corr_id)


def get_correlation_id() -> str | None:
    """Get the correlation ID from the current context."""
    return correlation_id.get()


@contextmanager
def with_correlation_id(corr_id: str) -> Iterator[str]:
    """Context manager to set a correlation ID for the duration of a block.
    
    Args:
        corr_id: Correlation ID to use
        
    Yields:
        The correlation ID
    """
    token = correlation_id.set(corr_id)
    try:
        yield corr_id
    finally:
        correlation_id.reset(token)


def get_context_dict(additional: dict[str, Any] | None = None) -> dict[str, Any]:
    """Get a dictionary of context values.
    
    Args:
        additional: Additional key-value pairs to include
        
    Returns:
        Dictionary with context values including correlation_id
    """
    ctx = {}
    
    corr_id = get_correlation_id()
    if corr_id:
        ctx["correlation_id"] = corr_id
    
    if additional:
        ctx.update(additional)
    
    return ctx


class Deadline:
    """Cancellation signal for one reconcile.

    A deadline fires when its wall-clock budget runs out or when its
    cancel event is set (the operator shares one event across all
    in-flight reconciles so shutdown aborts every blocking wait).
    """

    def __init__(
        self,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.expires_at = time.monotonic() + timeout if timeout is not None else None
        self.cancel_event = cancel_event or threading.Event()

    def remaining(self) -> float | None:
        """Seconds left before expiry, or None when unbounded."""
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def cancelled(self) -> bool:
        remaining = self.remaining()
        return self.cancel_event.is_set() or (remaining is not None and remaining <= 0)

    def cancel(self) -> None:
        self.cancel_event.set()

    def check(self, operation: str = "operation") -> None:
        """Raise if the deadline already fired."""
        if self.cancelled:
            raise ReconcileCancelled(f"{operation} cancelled: reconcile deadline exceeded or operator stopping")

    def sleep(self, seconds: float, operation: str = "wait") -> None:
        """Sleep cooperatively, aborting when the deadline fires first.

        Raises:
            ReconcileCancelled: If cancelled or expired before the sleep completes
        """
        self.check(operation)
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            self.cancel_event.wait(remaining)
            raise ReconcileCancelled(f"{operation} cancelled: reconcile deadline exceeded")
        if self.cancel_event.wait(seconds):
            raise ReconcileCancelled(f"{operation} cancelled: operator stopping")
