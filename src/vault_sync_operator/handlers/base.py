"""Base handler class with common functionality for sync target handlers."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, TypeVar

from .. import metrics
from ..constants import CONTROLLER_NAME, FINALIZER
from ..logging import log_resource_event
from ..models import SyncTarget, TargetRef
from ..utils.errors import sanitize_exception
from ..utils.events import emit_sync_failed

_T = TypeVar("_T")


class BaseHandler:
    """Base class for handlers with structured logging, finalizers and metrics."""

    def __init__(self, controller: str = CONTROLLER_NAME):
        """Initialize base handler.
        
        Args:
            controller: Controller name stamped on every structured log line
        """
        self.controller = controller
        self.logger = logging.getLogger(__name__)

    def _get_resource_context(self, target: SyncTarget | TargetRef) -> dict[str, Any]:
        """Extract common resource context from a target or its reference.
        
        Args:
            target: Sync target, or only its reference when the object is gone
            
        Returns:
            Dictionary with resource context fields
        """
        if isinstance(target, SyncTarget):
            ref, uid = target.ref, target.uid or "unknown"
        else:
            ref, uid = target, "unknown"
        return {
            "kind": ref.kind,
            "name": ref.name,
            "namespace": ref.namespace,
            "uid": uid,
        }

    def _log(
        self,
        level: int,
        target: SyncTarget | TargetRef,
        message: str,
        event: str,
        reason: str,
        **kwargs: Any,
    ) -> None:
        ctx = self._get_resource_context(target)
        log_resource_event(
            self.logger,
            controller=self.controller,
            resource_kind=ctx["kind"],
            resource_name=ctx["name"],
            namespace=ctx["namespace"],
            uid=ctx["uid"],
            event=event,
            reason=reason,
            message=message,
            level=level,
            **kwargs,
        )

    def log_info(
        self,
        target: SyncTarget | TargetRef,
        message: str,
        event: str = "info",
        reason: str = "Info",
        **kwargs: Any,
    ) -> None:
        """Log an info-level structured log message.
        
        Args:
            target: Sync target or its reference
            message: Log message
            event: Event type (default: "info")
            reason: Reason for the event (default: "Info")
            **kwargs: Additional fields to include in the log
        """
        self._log(logging.INFO, target, message, event, reason, **kwargs)

    def log_warning(
        self,
        target: SyncTarget | TargetRef,
        message: str,
        event: str = "warning",
        reason: str = "Warning",
        **kwargs: Any,
    ) -> None:
        """Log a warning-level structured log message."""
        self._log(logging.WARNING, target, message, event, reason, **kwargs)

    def log_error(
        self,
        target: SyncTarget | TargetRef,
        message: str,
        error: BaseException | None = None,
        event: str = "error",
        reason: str = "Error",
        **kwargs: Any,
    ) -> None:
        """Log an error-level structured log message.
        
        Args:
            target: Sync target or its reference
            message: Log message
            error: Optional exception to include sanitized error details
            event: Event type (default: "error")
            reason: Reason for the event (default: "Error")
            **kwargs: Additional fields to include in the log
        """
        log_data = kwargs.copy()
        
        if error is not None:
            log_data["error"] = sanitize_exception(error)
            log_data["error_type"] = type(error).__name__
            classification = getattr(error, "classification", None)
            if classification:
                log_data["classification"] = classification
            annotation = getattr(error, "annotation", None)
            if annotation:
                log_data["annotation"] = annotation
                log_data["annotation_value"] = getattr(error, "raw_value", None)
        
        self._log(logging.ERROR, target, message, event, reason, **log_data)

    def ensure_finalizer(self, target: SyncTarget) -> bool:
        """Add the finalizer to the target; True if it was missing."""
        if FINALIZER in target.finalizers:
            return False
        target.finalizers.append(FINALIZER)
        metrics.finalizer_operations_total.labels(kind=target.ref.kind, operation="add").inc()
        return True

    def remove_finalizer(self, target: SyncTarget) -> bool:
        """Remove the finalizer from the target; True if it was present."""
        if FINALIZER not in target.finalizers:
            return False
        target.finalizers.remove(FINALIZER)
        metrics.finalizer_operations_total.labels(kind=target.ref.kind, operation="remove").inc()
        return True

    def reconcile_with_metrics(
        self,
        ref: TargetRef,
        reconcile_fn: Callable[[], _T],
        event_ref: Callable[[], dict[str, Any] | None] | None = None,
    ) -> _T:
        """Execute reconciliation with metrics and error handling.
        
        Args:
            ref: Reference of the target being reconciled
            reconcile_fn: Function to execute for reconciliation
            event_ref: Returns the object reference to post a failure event on,
                or None when the object could not be loaded
                
        Returns:
            Whatever ``reconcile_fn`` returns
        """
        metrics.reconcile_total.labels(kind=ref.kind, result="started").inc()
        
        start_time = time.time()
        try:
            result = reconcile_fn()
            metrics.reconcile_total.labels(kind=ref.kind, result="success").inc()
            return result
        except Exception as e:
            metrics.error_total.labels(kind=ref.kind, error_type=type(e).__name__).inc()
            self.log_error(ref, "Reconciliation failed", error=e, reason="ReconciliationFailed")
            body = event_ref() if event_ref is not None else None
            if body is not None:
                emit_sync_failed(body, f"Reconciliation failed: {sanitize_exception(e)}")
            metrics.reconcile_total.labels(kind=ref.kind, result="error").inc()
            raise
        finally:
            duration = time.time() - start_time
            metrics.reconcile_duration_seconds.labels(kind=ref.kind).observe(duration)
