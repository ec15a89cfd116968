"""Shared state between kopf handlers: the runtime and the reconcile runner."""

from __future__ import annotations

import logging
import threading
import time
import uuid
from typing import Any

import kopf

from ..builders.paths import PathResolver
from ..config import OperatorConfig
from ..constants import RETRY_BASE_DELAY_SECONDS, RETRY_MAX_DELAY_SECONDS
from ..models import ReconcileResult, TargetRef
from ..services.kubernetes.store import KubernetesObjectStore, get_k8s_clients
from ..services.vault.client import VaultStore
from ..services.vault.session import VaultSession
from ..services.vault.writer import RateLimitedWriter
from ..utils import rate_limit
from ..utils.context import Deadline, with_correlation_id
from ..utils.errors import sanitize_exception
from ..utils.rate_limit import TokenBucket
from .lifecycle import LifecycleController
from .planner import SyncPlanner

logger = logging.getLogger(__name__)

# Per-object memo keys
MEMO_LOCK = "reconcile_lock"
MEMO_NEXT_SYNC = "next_sync_at"


def build_controller(config: OperatorConfig) -> tuple[LifecycleController, VaultStore]:
    """Wire the controller and its collaborators from configuration.

    Returns:
        The controller and the vault store backing the health probes
    """
    session = VaultSession.from_config(config)
    store = VaultStore(session)
    limiter = TokenBucket(config.vault_rate_limit, config.vault_rate_burst, api_type="vault")
    writer = RateLimitedWriter(store, session, limiter)

    apps_api, core_api = get_k8s_clients()
    object_store = KubernetesObjectStore(apps_api, core_api)
    resolver = PathResolver(config.cluster_name, config.vault_kv_version)
    controller = LifecycleController(object_store, SyncPlanner(object_store), writer, resolver)
    return controller, store


class Runtime:
    """Process-wide operator state created at startup."""

    def __init__(self, config: OperatorConfig, controller: LifecycleController, store: VaultStore) -> None:
        self.config = config
        self.controller = controller
        self.store = store
        # Set on shutdown; every reconcile deadline watches it
        self.shutdown_event = threading.Event()

    def deadline(self) -> Deadline:
        return Deadline(self.config.reconcile_timeout, cancel_event=self.shutdown_event)

    def stop(self) -> None:
        self.shutdown_event.set()


# Global runtime instance, set on startup
_runtime: Runtime | None = None


def start_runtime(config: OperatorConfig) -> Runtime:
    """Build the runtime used by every handler."""
    global _runtime
    rate_limit.configure_k8s_rate_limit(config.k8s_rate_limit)
    controller, store = build_controller(config)
    _runtime = Runtime(config, controller, store)
    return _runtime


def get_runtime() -> Runtime | None:
    return _runtime


def stop_runtime() -> None:
    global _runtime
    if _runtime is not None:
        _runtime.stop()
        _runtime = None


def retry_delay(retry: int) -> float:
    """Backoff before retry number ``retry`` (0 for the first failure)."""
    return min(RETRY_MAX_DELAY_SECONDS, RETRY_BASE_DELAY_SECONDS * (2 ** retry))


def reconcile_target(
    runtime: Runtime,
    ref: TargetRef,
    memo: Any,
    retry: int = 0,
    blocking: bool = True,
) -> ReconcileResult | None:
    """Reconcile ``ref`` on behalf of a kopf handler.

    kopf already runs one change handler per object at a time; the lock in
    the object's memo keeps the periodic timer from overlapping with it.
    On success the next periodic sync is recorded in the memo.

    Args:
        runtime: Started operator runtime
        ref: Target to reconcile
        memo: kopf per-object memo
        retry: kopf retry counter of the calling handler
        blocking: Wait for a reconcile already in flight; when False, return
            None instead

    Raises:
        kopf.TemporaryError: When the reconcile failed; kopf retries after
            an exponential backoff
    """
    if runtime.shutdown_event.is_set():
        return None
    lock = memo.setdefault(MEMO_LOCK, threading.Lock())
    if not lock.acquire(blocking=blocking):
        return None
    try:
        with with_correlation_id(uuid.uuid4().hex):
            try:
                result = runtime.controller.reconcile(ref, runtime.deadline())
            except Exception as e:
                delay = retry_delay(retry)
                logger.warning(f"Reconcile of {ref} failed, retrying in {delay:.0f}s: {sanitize_exception(e)}")
                raise kopf.TemporaryError(f"reconcile of {ref} failed: {sanitize_exception(e)}", delay=delay) from e
    finally:
        lock.release()

    if result.requeue_after > 0:
        memo[MEMO_NEXT_SYNC] = time.monotonic() + result.requeue_after
    else:
        memo.pop(MEMO_NEXT_SYNC, None)
    return result


def sync_due(memo: Any) -> bool:
    """True when the periodic interval recorded in the memo has elapsed."""
    due = memo.get(MEMO_NEXT_SYNC)
    return due is not None and time.monotonic() >= due
