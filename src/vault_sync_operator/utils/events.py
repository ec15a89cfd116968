"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

import logging
from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_SYNC_FAILED,
    EVENT_REASON_SYNC_SUCCEEDED,
    EVENT_REASON_VAULT_SECRET_DELETED,
    EVENT_REASON_VAULT_SECRET_PRESERVED,
)

logger = logging.getLogger(__name__)


def emit_event(
    body: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Events are fire-and-forget: a failure to post is logged and never
    affects the reconcile outcome.

    Args:
        body: Object reference (apiVersion, kind, metadata)
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    try:
        kopf.event(
            body,
            reason=reason,
            message=message,
            type=type_,
        )
    except Exception as e:
        logger.warning(f"Failed to post event {reason}: {e}")


def emit_sync_succeeded(body: dict[str, Any], path: str, secret_count: int) -> None:
    """Emit sync succeeded event."""
    emit_event(body, EVENT_REASON_SYNC_SUCCEEDED, f"Synced {secret_count} secret(s) to vault path {path}")


def emit_sync_failed(body: dict[str, Any], message: str) -> None:
    """Emit sync failed event."""
    emit_event(body, EVENT_REASON_SYNC_FAILED, message, type_="Warning")


def emit_vault_secret_deleted(body: dict[str, Any], path: str) -> None:
    """Emit vault secret deleted event."""
    emit_event(body, EVENT_REASON_VAULT_SECRET_DELETED, f"Deleted vault path {path}")


def emit_vault_secret_preserved(body: dict[str, Any], path: str) -> None:
    """Emit vault secret preserved event."""
    emit_event(body, EVENT_REASON_VAULT_SECRET_PRESERVED, f"Preserved vault path {path} per preserve-on-delete")
