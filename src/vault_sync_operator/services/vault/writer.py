"""Rate-limited, batching writer in front of the secret store."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Sequence

from hvac import exceptions as hvac_exceptions

from ... import metrics
from ...constants import (
    BATCH_PAUSE_SECONDS,
    BATCH_SIZE,
    ERROR_CONNECTION_FAILED,
    ERROR_INVALID_PATH,
    ERROR_PERMISSION_DENIED,
    LARGE_PAYLOAD_BYTES,
    OP_DELETE,
    OP_WRITE,
)
from ...models import BatchOperation
from ...utils.context import Deadline
from ...utils.errors import StoreError, classify_store_error, sanitize_exception
from ...utils.rate_limit import TokenBucket
from .base import SecretStore
from .session import VaultSession

logger = logging.getLogger(__name__)


def payload_size(payload: dict[str, Any]) -> int:
    """Sum of UTF-8 byte lengths of keys and string values, nested dicts included."""
    size = 0
    for key, value in payload.items():
        size += len(str(key).encode("utf-8"))
        if isinstance(value, dict):
            size += payload_size(value)
        elif isinstance(value, str):
            size += len(value.encode("utf-8"))
    return size


def classify_error(error: BaseException) -> str:
    """Bucket a store error, trusting hvac's exception types before the text."""
    if isinstance(error, StoreError):
        return error.classification
    if isinstance(error, hvac_exceptions.Forbidden):
        return ERROR_PERMISSION_DENIED
    if isinstance(error, hvac_exceptions.InvalidPath):
        return ERROR_INVALID_PATH
    if isinstance(error, hvac_exceptions.VaultDown):
        return ERROR_CONNECTION_FAILED
    return classify_store_error(error)


class RateLimitedWriter:
    """Serializes store mutations behind a shared token bucket.

    Each write or delete takes exactly one token. Batches are split into
    fixed-size chunks executed under a writer-wide mutex with a short
    pause between chunks, so concurrent reconciles never interleave
    their chunks.
    """

    def __init__(
        self,
        store: SecretStore,
        session: VaultSession,
        limiter: TokenBucket,
        batch_size: int = BATCH_SIZE,
        batch_pause: float = BATCH_PAUSE_SECONDS,
        large_payload_bytes: int = LARGE_PAYLOAD_BYTES,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.store = store
        self.session = session
        self.limiter = limiter
        self.batch_size = batch_size
        self.batch_pause = batch_pause
        self.large_payload_bytes = large_payload_bytes
        self._batch_lock = threading.Lock()

    def write(self, path: str, payload: dict[str, Any], deadline: Deadline | None = None) -> None:
        """Write one payload to a physical path.

        Raises:
            StoreError: If the write fails, classified by cause
            ReconcileCancelled: If the deadline fires while waiting for a token
        """
        with self.limiter.admit(deadline):
            self._execute(OP_WRITE, path, lambda: self._write_payload(path, payload))

    def delete(self, path: str, deadline: Deadline | None = None) -> None:
        """Delete one physical path.

        Raises:
            StoreError: If the delete fails, classified by cause
            ReconcileCancelled: If the deadline fires while waiting for a token
        """
        with self.limiter.admit(deadline):
            self._execute(OP_DELETE, path, lambda: self.store.delete(path))

    def batch_write(self, operations: Sequence[BatchOperation], deadline: Deadline | None = None) -> None:
        """Execute write and delete operations in chunks.

        The first failing operation aborts the batch and is raised.
        """
        if not operations:
            return

        chunks = [
            operations[i:i + self.batch_size]
            for i in range(0, len(operations), self.batch_size)
        ]
        with self._batch_lock:
            for index, chunk in enumerate(chunks):
                if index:
                    self._pause(deadline)
                for op in chunk:
                    if op.kind == OP_WRITE:
                        self.write(op.path, op.payload or {}, deadline)
                    elif op.kind == OP_DELETE:
                        self.delete(op.path, deadline)
                    else:
                        raise ValueError(f"unknown batch operation kind {op.kind!r}")

    def _pause(self, deadline: Deadline | None) -> None:
        if deadline is not None:
            deadline.sleep(self.batch_pause, operation="batch pause")
        else:
            time.sleep(self.batch_pause)

    def _write_payload(self, path: str, payload: dict[str, Any]) -> None:
        size = payload_size(payload)
        if size > self.large_payload_bytes:
            self._write_large(path, payload, size)
        else:
            self.store.write(path, payload)

    def _write_large(self, path: str, payload: dict[str, Any], size: int) -> None:
        # TODO: split payloads above the threshold across several writes
        metrics.vault_large_payloads_total.inc()
        logger.warning(f"Writing large payload of {size} bytes to {path}")
        self.store.write(path, payload)

    def _execute(self, operation: str, path: str, action: Callable[[], None]) -> None:
        start_time = time.time()
        try:
            self.session.ensure_authenticated()
            action()
            metrics.vault_operations_total.labels(operation=operation, result="success").inc()
        except Exception as e:
            classification = classify_error(e)
            metrics.vault_operations_total.labels(operation=operation, result="error").inc()
            metrics.vault_write_errors_total.labels(error_type=classification, operation=operation).inc()
            if classification == ERROR_PERMISSION_DENIED:
                self.session.invalidate()
            if isinstance(e, StoreError):
                raise
            raise StoreError(
                f"vault {operation} failed for {path}: {sanitize_exception(e)}",
                operation=operation,
                path=path,
                classification=classification,
            ) from e
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="vault", operation=operation).observe(duration)
