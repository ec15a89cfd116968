"""Lifecycle controller: the finalizer state machine for sync targets."""

from __future__ import annotations

import enum
import time
from typing import Callable

from .. import metrics
from ..builders.paths import PathResolver, resolve_path, sub_path
from ..constants import (
    ANNOTATION_KV_VERSION,
    ANNOTATION_PATH,
    ANNOTATION_PRESERVE_ON_DELETE,
    ANNOTATION_RECONCILE,
    ANNOTATION_ROTATION_CHECK,
    ANNOTATION_SECRET_VERSIONS,
    EVENT_REASON_SYNC_SKIPPED,
    FINALIZER,
    MIN_RECONCILE_INTERVAL_SECONDS,
    MODE_AUTO_DISCOVERY,
    OP_DELETE,
    RECONCILE_OFF,
)
from ..models import BatchOperation, ReconcileResult, SyncTarget, TargetRef
from ..services.kubernetes.base import ObjectStore
from ..services.vault.writer import RateLimitedWriter
from ..tracing import add_span_attribute, trace_span
from ..utils.context import Deadline
from ..utils.durations import parse_duration
from ..utils.errors import ConfigurationError
from ..utils.events import (
    emit_sync_succeeded,
    emit_vault_secret_deleted,
    emit_vault_secret_preserved,
)
from ..utils.versions import diff_versions, has_changed, parse_version_snapshot, serialize_version_snapshot
from .base import BaseHandler
from .planner import SyncPlanner, sync_mode


class SyncState(enum.Enum):
    """Where a target stands in the finalizer lifecycle."""

    DISABLED = "disabled"
    ACTIVE_UNPROTECTED = "active-unprotected"
    ACTIVE_PROTECTED = "active-protected"
    DELETING_CLEANUP = "deleting-cleanup"
    DELETING_CLEANUP_SKIPPED = "deleting-cleanup-skipped"
    DELETING_RELEASED = "deleting-released"


def _flag(target: SyncTarget, annotation: str) -> str:
    return target.annotations.get(annotation, "").strip().lower()


def classify_state(target: SyncTarget) -> SyncState:
    """Map a target's annotations, finalizers and deletion mark to a state."""
    protected = FINALIZER in target.finalizers
    if not target.annotations.get(ANNOTATION_PATH, "").strip():
        return SyncState.DISABLED
    if target.being_deleted:
        if not protected:
            return SyncState.DELETING_RELEASED
        if _flag(target, ANNOTATION_PRESERVE_ON_DELETE) == "true":
            return SyncState.DELETING_CLEANUP_SKIPPED
        return SyncState.DELETING_CLEANUP
    if not protected:
        return SyncState.ACTIVE_UNPROTECTED
    return SyncState.ACTIVE_PROTECTED


class LifecycleController(BaseHandler):
    """Reconciles one target at a time through its lifecycle state.

    Metadata updates and store mutations never share a step: a reconcile
    either changes the finalizer, or syncs and then records the snapshot,
    or cleans up the store and then releases the finalizer.
    """

    def __init__(
        self,
        object_store: ObjectStore,
        planner: SyncPlanner,
        writer: RateLimitedWriter,
        resolver: PathResolver,
    ):
        super().__init__()
        self.object_store = object_store
        self.planner = planner
        self.writer = writer
        self.resolver = resolver
        self._state_handlers: dict[SyncState, Callable[[SyncTarget, Deadline], ReconcileResult]] = {
            SyncState.DISABLED: self._handle_disabled,
            SyncState.ACTIVE_UNPROTECTED: self._handle_active_unprotected,
            SyncState.ACTIVE_PROTECTED: self._handle_active_protected,
            SyncState.DELETING_CLEANUP: self._handle_deleting_cleanup,
            SyncState.DELETING_CLEANUP_SKIPPED: self._handle_deleting_cleanup_skipped,
            SyncState.DELETING_RELEASED: self._handle_deleting_released,
        }

    def reconcile(self, ref: TargetRef, deadline: Deadline | None = None) -> ReconcileResult:
        """Reconcile a target by reference.

        Returns:
            Result whose ``requeue_after`` is the periodic interval, or 0

        Raises:
            SyncError: Configuration, reference or store failures; the caller
                requeues with backoff
        """
        deadline = deadline or Deadline()
        loaded: list[SyncTarget] = []

        def run() -> ReconcileResult:
            target = self.object_store.get_target(ref)
            if target is None:
                return ReconcileResult()
            loaded.append(target)
            state = classify_state(target)
            with trace_span("reconcile_target", ref, {"sync.state": state.value}):
                return self._state_handlers[state](target, deadline)

        return self.reconcile_with_metrics(
            ref,
            run,
            event_ref=lambda: loaded[0].event_ref() if loaded else None,
        )

    def reconcile_interval(self, target: SyncTarget) -> float:
        """Periodic self-healing interval in seconds; 0 disables it.

        Unparsable values disable the interval instead of failing the sync,
        and anything shorter than the minimum is raised to it.
        """
        raw = target.annotations.get(ANNOTATION_RECONCILE)
        if raw is None or not raw.strip() or raw.strip().lower() == RECONCILE_OFF:
            return 0.0
        try:
            seconds = parse_duration(raw, ANNOTATION_RECONCILE)
        except ConfigurationError as e:
            metrics.config_parse_errors_total.labels(kind=target.ref.kind, error_type="reconcile").inc()
            self.log_warning(
                target,
                f"Invalid reconcile interval, disabling periodic reconciliation: {e}",
                reason="InvalidReconcileInterval",
                annotation_value=raw,
            )
            return 0.0
        if seconds < MIN_RECONCILE_INTERVAL_SECONDS:
            self.log_info(
                target,
                "Reconcile interval too short, using minimum",
                reason="ReconcileIntervalClamped",
                requested_seconds=seconds,
                enforced_seconds=MIN_RECONCILE_INTERVAL_SECONDS,
            )
            return MIN_RECONCILE_INTERVAL_SECONDS
        return seconds

    def resolver_for(self, target: SyncTarget) -> PathResolver:
        """Resolver honouring the target's kv-version override."""
        try:
            return self.resolver.for_kv_version(target.annotations.get(ANNOTATION_KV_VERSION))
        except ConfigurationError:
            metrics.config_parse_errors_total.labels(kind=target.ref.kind, error_type="kv_version").inc()
            raise

    def cleanup_paths(self, target: SyncTarget) -> list[str]:
        """Logical paths to delete when the target goes away.

        Auto-discovered secrets live below the base path, one per name
        recorded in the version snapshot.
        """
        logical_path = target.annotations.get(ANNOTATION_PATH, "").strip()
        paths = [logical_path]
        try:
            entries = self.planner.parse_config(target)
        except ConfigurationError:
            return paths
        if sync_mode(target, entries) == MODE_AUTO_DISCOVERY:
            snapshot = parse_version_snapshot(target.annotations.get(ANNOTATION_SECRET_VERSIONS))
            paths.extend(sub_path(logical_path, name) for name in sorted(snapshot))
        return paths

    def _persist(self, target: SyncTarget) -> None:
        self.object_store.update_target(target)

    def _handle_disabled(self, target: SyncTarget, deadline: Deadline) -> ReconcileResult:
        if self.remove_finalizer(target):
            self._persist(target)
            self.log_info(target, "Sync disabled, finalizer removed", event="finalizer", reason="SyncDisabled")
        return ReconcileResult()

    def _handle_active_unprotected(self, target: SyncTarget, deadline: Deadline) -> ReconcileResult:
        self.ensure_finalizer(target)
        self._persist(target)
        self.log_info(target, "Finalizer added", event="finalizer", reason="FinalizerAdded")
        return ReconcileResult()

    def _handle_active_protected(self, target: SyncTarget, deadline: Deadline) -> ReconcileResult:
        kind = target.ref.kind
        interval = self.reconcile_interval(target)
        resolver = self.resolver_for(target)

        with trace_span("plan_sync", target.ref):
            plan = self.planner.plan(target)
            add_span_attribute("sync.mode", plan.mode)

        last_raw = target.annotations.get(ANNOTATION_SECRET_VERSIONS)
        last_versions = parse_version_snapshot(last_raw)
        if _flag(target, ANNOTATION_ROTATION_CHECK) == "disabled":
            changed = True
        else:
            changed = has_changed(last_versions, plan.versions)

        if not changed:
            metrics.sync_skipped_total.labels(kind=kind).inc()
            self.log_info(target, "No secret changes detected, skipping sync", event="sync", reason=EVENT_REASON_SYNC_SKIPPED)
            return ReconcileResult(requeue_after=interval)

        changes = diff_versions(last_versions, plan.versions)
        operations = []
        for logical_path, payload in sorted(plan.payloads.items()):
            physical_path = resolver.resolve(logical_path)
            operations.append(BatchOperation(path=physical_path, payload=resolver.shape_for_write(physical_path, payload)))
        base_path = resolver.resolve(target.annotations[ANNOTATION_PATH].strip())

        start_time = time.time()
        with trace_span("commit_sync", target.ref, {"vault.path": base_path}):
            try:
                self.writer.batch_write(operations, deadline)
            except Exception:
                metrics.sync_attempts_total.labels(kind=kind, mode=plan.mode, result="error").inc()
                raise
            finally:
                metrics.sync_duration_seconds.labels(kind=kind).observe(time.time() - start_time)

        metrics.sync_attempts_total.labels(kind=kind, mode=plan.mode, result="success").inc()
        self.log_info(
            target,
            "Secrets synced to vault",
            event="sync",
            reason="SyncSucceeded",
            path=base_path,
            mode=plan.mode,
            key_count=plan.key_count,
            changed_secrets=changes,
        )
        emit_sync_succeeded(target.event_ref(), base_path, len(plan.versions))

        snapshot = serialize_version_snapshot(plan.versions)
        if snapshot != last_raw:
            target.annotations[ANNOTATION_SECRET_VERSIONS] = snapshot
            try:
                self._persist(target)
            except Exception as e:
                # The store write already succeeded; the next reconcile resyncs
                metrics.lifecycle_errors_total.labels(kind=kind, operation="persist_versions").inc()
                self.log_error(target, "Failed to persist secret versions", error=e, reason="VersionPersistFailed")

        return ReconcileResult(requeue_after=interval)

    def _handle_deleting_cleanup(self, target: SyncTarget, deadline: Deadline) -> ReconcileResult:
        resolver = self._cleanup_resolver(target)
        paths = []
        for logical_path in self.cleanup_paths(target):
            try:
                paths.append(resolver.shape_for_delete(resolver.resolve(logical_path)))
            except ConfigurationError as e:
                # Syncs to this path fail the same way, so nothing was written there
                self.log_warning(
                    target,
                    f"Skipping cleanup of unresolvable path: {e}",
                    reason="CleanupPathInvalid",
                    logical_path=logical_path,
                )

        if paths:
            operations = [BatchOperation(path=path, kind=OP_DELETE) for path in paths]
            with trace_span("cleanup_vault", target.ref, {"vault.path": paths[0]}):
                try:
                    self.writer.batch_write(operations, deadline)
                except Exception as e:
                    # Keep the finalizer so the cleanup is retried
                    self.log_error(target, "Failed to delete vault secret", error=e, reason="CleanupFailed", paths=paths)
                    raise

            self.log_info(target, "Vault secret deleted", event="deletion", reason="VaultSecretDeleted", paths=paths)
            emit_vault_secret_deleted(target.event_ref(), paths[0])
        self._release(target)
        return ReconcileResult()

    def _handle_deleting_cleanup_skipped(self, target: SyncTarget, deadline: Deadline) -> ReconcileResult:
        # Reported by its scoped logical path; the store is not touched here
        path = resolve_path(target.annotations[ANNOTATION_PATH].strip(), self.resolver.cluster_tag)
        self.log_info(target, "Preserving vault secret on delete", event="deletion", reason="VaultSecretPreserved", path=path)
        emit_vault_secret_preserved(target.event_ref(), path)
        self._release(target)
        return ReconcileResult()

    def _handle_deleting_released(self, target: SyncTarget, deadline: Deadline) -> ReconcileResult:
        return ReconcileResult()

    def _cleanup_resolver(self, target: SyncTarget) -> PathResolver:
        # A bad override must not block deletion forever
        try:
            return self.resolver_for(target)
        except ConfigurationError as e:
            self.log_warning(target, f"Ignoring kv-version override during cleanup: {e}", reason="InvalidKVVersion")
            return self.resolver

    def _release(self, target: SyncTarget) -> None:
        self.remove_finalizer(target)
        try:
            self._persist(target)
        except Exception:
            metrics.lifecycle_errors_total.labels(kind=target.ref.kind, operation="remove_finalizer").inc()
            raise
