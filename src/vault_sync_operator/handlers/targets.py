"""kopf handlers that feed annotated workloads and secrets to the controller."""

from __future__ import annotations

import logging
import os
from typing import Any

import kopf

from ..constants import (
    ANNOTATION_PATH,
    FINALIZER,
    KIND_DAEMON_SET,
    KIND_DEPLOYMENT,
    KIND_SECRET,
    KIND_STATEFUL_SET,
    RETRY_BASE_DELAY_SECONDS,
)
from ..models import TargetRef
from .shared import get_runtime, reconcile_target, sync_due

logger = logging.getLogger(__name__)

# How often timers look for targets whose periodic interval has elapsed
SYNC_CHECK_INTERVAL = float(os.getenv("SYNC_CHECK_INTERVAL_SECONDS", "5"))


def is_candidate(meta: dict[str, Any]) -> bool:
    """True when the object opted in to sync or still carries our finalizer."""
    annotations = meta.get("annotations") or {}
    finalizers = meta.get("finalizers") or []
    return ANNOTATION_PATH in annotations or FINALIZER in finalizers


def _candidate(meta: dict[str, Any], **_: Any) -> bool:
    return is_candidate(meta)


def _target_ref(kind: str, meta: dict[str, Any]) -> TargetRef:
    return TargetRef(kind=kind, namespace=meta.get("namespace", "default"), name=meta.get("name", ""))


def handle_target_change(kind: str, meta: dict[str, Any], memo: Any, retry: int = 0) -> None:
    """Reconcile a target after kopf saw it created, changed, resumed or deleted."""
    runtime = get_runtime()
    if runtime is None:
        raise kopf.TemporaryError("operator runtime is not started", delay=RETRY_BASE_DELAY_SECONDS)
    if kind not in runtime.config.watch_kinds:
        return
    reconcile_target(runtime, _target_ref(kind, meta), memo, retry)


def check_target_interval(kind: str, meta: dict[str, Any], memo: Any, retry: int = 0) -> None:
    """Reconcile a target whose periodic self-healing interval has elapsed."""
    runtime = get_runtime()
    if runtime is None or kind not in runtime.config.watch_kinds:
        return
    if not sync_due(memo):
        return
    # A change handler already reconciling this object does the work
    reconcile_target(runtime, _target_ref(kind, meta), memo, retry, blocking=False)


@kopf.on.create("apps", "v1", "deployments", when=_candidate)
@kopf.on.update("apps", "v1", "deployments", when=_candidate)
@kopf.on.resume("apps", "v1", "deployments", when=_candidate)
@kopf.on.delete("apps", "v1", "deployments", when=_candidate, optional=True)
def handle_deployment(meta: dict[str, Any], memo: Any, retry: int = 0, **kwargs: Any) -> None:
    """Handle Deployment changes."""
    handle_target_change(KIND_DEPLOYMENT, meta, memo, retry)


@kopf.timer("apps", "v1", "deployments", interval=SYNC_CHECK_INTERVAL, when=_candidate)
def check_deployment(meta: dict[str, Any], memo: Any, retry: int = 0, **kwargs: Any) -> None:
    check_target_interval(KIND_DEPLOYMENT, meta, memo, retry)


@kopf.on.create("apps", "v1", "statefulsets", when=_candidate)
@kopf.on.update("apps", "v1", "statefulsets", when=_candidate)
@kopf.on.resume("apps", "v1", "statefulsets", when=_candidate)
@kopf.on.delete("apps", "v1", "statefulsets", when=_candidate, optional=True)
def handle_stateful_set(meta: dict[str, Any], memo: Any, retry: int = 0, **kwargs: Any) -> None:
    """Handle StatefulSet changes."""
    handle_target_change(KIND_STATEFUL_SET, meta, memo, retry)


@kopf.timer("apps", "v1", "statefulsets", interval=SYNC_CHECK_INTERVAL, when=_candidate)
def check_stateful_set(meta: dict[str, Any], memo: Any, retry: int = 0, **kwargs: Any) -> None:
    check_target_interval(KIND_STATEFUL_SET, meta, memo, retry)


@kopf.on.create("apps", "v1", "daemonsets", when=_candidate)
@kopf.on.update("apps", "v1", "daemonsets", when=_candidate)
@kopf.on.resume("apps", "v1", "daemonsets", when=_candidate)
@kopf.on.delete("apps", "v1", "daemonsets", when=_candidate, optional=True)
def handle_daemon_set(meta: dict[str, Any], memo: Any, retry: int = 0, **kwargs: Any) -> None:
    """Handle DaemonSet changes."""
    handle_target_change(KIND_DAEMON_SET, meta, memo, retry)


@kopf.timer("apps", "v1", "daemonsets", interval=SYNC_CHECK_INTERVAL, when=_candidate)
def check_daemon_set(meta: dict[str, Any], memo: Any, retry: int = 0, **kwargs: Any) -> None:
    check_target_interval(KIND_DAEMON_SET, meta, memo, retry)


@kopf.on.create("v1", "secrets", when=_candidate)
@kopf.on.update("v1", "secrets", when=_candidate)
@kopf.on.resume("v1", "secrets", when=_candidate)
@kopf.on.delete("v1", "secrets", when=_candidate, optional=True)
def handle_secret(meta: dict[str, Any], memo: Any, retry: int = 0, **kwargs: Any) -> None:
    """Handle Secret changes."""
    handle_target_change(KIND_SECRET, meta, memo, retry)


@kopf.timer("v1", "secrets", interval=SYNC_CHECK_INTERVAL, when=_candidate)
def check_secret(meta: dict[str, Any], memo: Any, retry: int = 0, **kwargs: Any) -> None:
    check_target_interval(KIND_SECRET, meta, memo, retry)
