"""Rate limiting utilities for API calls."""

from __future__ import annotations

import os
import threading
import time
from contextlib import contextmanager
from functools import wraps
from typing import Any, Callable, Iterator, TypeVar

from .. import metrics
from .context import Deadline

_F = TypeVar("_F", bound=Callable[..., Any])


class TokenBucket:
    """Thread-safe token bucket shared by every caller of one API.

    Tokens refill continuously at ``rate`` per second up to ``burst``.
    ``acquire`` blocks until a token is available instead of failing fast,
    so callers self-throttle.
    """

    def __init__(self, rate: float, burst: int, api_type: str = "vault") -> None:
        if rate <= 0:
            raise ValueError("rate must be positive")
        if burst < 1:
            raise ValueError("burst must be at least 1")
        self.rate = rate
        self.burst = burst
        self.api_type = api_type
        self._tokens = float(burst)
        self._updated = time.monotonic()
        self._lock = threading.Lock()
        self._in_flight = 0

    def _refill(self, now: float) -> None:
        elapsed = now - self._updated
        if elapsed > 0:
            self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate)
            self._updated = now

    def try_acquire(self) -> bool:
        """Take a token if one is available right now."""
        with self._lock:
            self._refill(time.monotonic())
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return True
            return False

    def acquire(self, deadline: Deadline | None = None) -> float:
        """Block until a token is available.

        Args:
            deadline: Optional cancellation signal; waiting aborts when it fires

        Returns:
            Seconds spent waiting

        Raises:
            ReconcileCancelled: If the deadline fires while waiting
        """
        waited = 0.0
        while True:
            with self._lock:
                self._refill(time.monotonic())
                if self._tokens >= 1.0:
                    self._tokens -= 1.0
                    break
                wait = (1.0 - self._tokens) / self.rate
            if waited == 0.0:
                metrics.rate_limit_hits_total.labels(api_type=self.api_type).inc()
            if deadline is not None:
                deadline.sleep(wait, operation=f"{self.api_type} rate limit wait")
            else:
                time.sleep(wait)
            waited += wait

        if waited:
            metrics.rate_limit_wait_seconds.labels(api_type=self.api_type).observe(waited)
        return waited

    def release(self) -> None:
        """Mark an admitted operation as finished."""
        with self._lock:
            self._in_flight = max(0, self._in_flight - 1)
        metrics.rate_limit_in_flight.labels(api_type=self.api_type).dec()

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @contextmanager
    def admit(self, deadline: Deadline | None = None) -> Iterator[None]:
        """Acquire a token for one operation and release it when done."""
        self.acquire(deadline)
        with self._lock:
            self._in_flight += 1
        metrics.rate_limit_in_flight.labels(api_type=self.api_type).inc()
        try:
            yield
        finally:
            self.release()


# Kubernetes API limiter shared by every object store call
_K8S_RATE_LIMIT_PER_SECOND = float(os.getenv("K8S_RATE_LIMIT_PER_SECOND", "10.0"))
_k8s_bucket = TokenBucket(_K8S_RATE_LIMIT_PER_SECOND, max(1, int(_K8S_RATE_LIMIT_PER_SECOND)), api_type="k8s")


def rate_limit_k8s(func: _F) -> _F:
    """Decorator to rate limit Kubernetes API calls.
    
    Every wrapped call takes a token from the shared Kubernetes bucket
    before reaching the API server.
    """
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        with _k8s_bucket.admit():
            return func(*args, **kwargs)
    
    return wrapper  # type: ignore


def configure_k8s_rate_limit(rate: float) -> None:
    """Replace the shared Kubernetes bucket with one at ``rate`` calls per second."""
    global _k8s_bucket
    _k8s_bucket = TokenBucket(rate, max(1, int(rate)), api_type="k8s")
