"""Sync planner: decides what to write where for one target."""

from __future__ import annotations

import logging

from .. import metrics
from ..builders.paths import sub_path
from ..builders.sync_config import SecretSyncEntry, parse_sync_config
from ..constants import (
    ANNOTATION_PATH,
    ANNOTATION_SECRETS,
    MODE_AUTO_DISCOVERY,
    MODE_EXPLICIT,
    MODE_SECRET_KEYS,
)
from ..models import SecretRef, SyncPlan, SyncTarget
from ..services.kubernetes.base import ObjectStore
from ..utils.discovery import extract_secret_names
from ..utils.errors import ConfigurationError, SecretKeyMissingError, SecretNotFoundError
from ..utils.secrets import content_version, secret_value_text

logger = logging.getLogger(__name__)


def sync_mode(target: SyncTarget, entries: list[SecretSyncEntry] | None) -> str:
    if entries is not None:
        return MODE_EXPLICIT
    if target.is_secret:
        return MODE_SECRET_KEYS
    return MODE_AUTO_DISCOVERY


class SyncPlanner:
    """Builds payloads keyed by logical path plus the version snapshot.

    Planning only reads from the object store. Explicit mode merges the
    selected keys of every listed secret into one payload at the target's
    path; auto-discovery writes each referenced secret whole to its own
    sub-path; a standalone secret without explicit config syncs its own keys.
    """

    def __init__(self, object_store: ObjectStore) -> None:
        self.object_store = object_store

    def parse_config(self, target: SyncTarget) -> list[SecretSyncEntry] | None:
        """Parse the explicit config annotation, counting failures."""
        try:
            return parse_sync_config(target.annotations.get(ANNOTATION_SECRETS))
        except ConfigurationError:
            metrics.config_parse_errors_total.labels(kind=target.ref.kind, error_type="secrets").inc()
            raise

    def plan(self, target: SyncTarget) -> SyncPlan:
        """Plan the sync for an enabled target.

        Raises:
            ConfigurationError: If the explicit config annotation is malformed
            SecretNotFoundError: If a referenced secret does not exist
            SecretKeyMissingError: If an explicitly requested key is absent
        """
        logical_path = target.annotations.get(ANNOTATION_PATH, "").strip()
        entries = self.parse_config(target)
        mode = sync_mode(target, entries)

        if mode == MODE_EXPLICIT:
            return self._plan_explicit(target, logical_path, entries or [])
        if mode == MODE_SECRET_KEYS:
            return self._plan_secret_keys(target, logical_path)
        return self._plan_auto_discovery(target, logical_path)

    def _fetch_secret(self, target: SyncTarget, name: str) -> SecretRef:
        namespace = target.ref.namespace
        if target.is_secret and name == target.ref.name and target.secret_data is not None:
            # Persisting the snapshot bumps our own resourceVersion
            return SecretRef(name, namespace, target.secret_data, content_version(target.secret_data))
        try:
            return self.object_store.get_secret(namespace, name)
        except SecretNotFoundError:
            metrics.secret_not_found_errors_total.labels(namespace=namespace, secret_name=name).inc()
            raise

    def _plan_explicit(self, target: SyncTarget, logical_path: str, entries: list[SecretSyncEntry]) -> SyncPlan:
        payload: dict[str, str] = {}
        versions: dict[str, str] = {}
        for entry in entries:
            secret = self._fetch_secret(target, entry.name)
            for key in entry.keys:
                if key not in secret.data:
                    metrics.secret_key_missing_errors_total.labels(
                        namespace=secret.namespace, secret_name=secret.name, key=key
                    ).inc()
                    raise SecretKeyMissingError(secret.name, secret.namespace, key, secret.keys())
                payload[entry.vault_key(key)] = secret_value_text(secret.data[key])
            versions[secret.name] = secret.version
        return SyncPlan(mode=MODE_EXPLICIT, payloads={logical_path: payload}, versions=versions)

    def _plan_auto_discovery(self, target: SyncTarget, logical_path: str) -> SyncPlan:
        names = extract_secret_names(target.pod_spec)
        metrics.secrets_discovered.labels(namespace=target.ref.namespace, name=target.ref.name).set(len(names))
        if not names:
            logger.info(f"No secret references found in pod template of {target.ref}")

        payloads: dict[str, dict[str, str]] = {}
        versions: dict[str, str] = {}
        for name in names:
            secret = self._fetch_secret(target, name)
            payloads[sub_path(logical_path, name)] = {
                key: secret_value_text(value) for key, value in secret.data.items()
            }
            versions[name] = secret.version
        return SyncPlan(mode=MODE_AUTO_DISCOVERY, payloads=payloads, versions=versions)

    def _plan_secret_keys(self, target: SyncTarget, logical_path: str) -> SyncPlan:
        secret = self._fetch_secret(target, target.ref.name)
        payload = {key: secret_value_text(value) for key, value in secret.data.items()}
        return SyncPlan(
            mode=MODE_SECRET_KEYS,
            payloads={logical_path: payload},
            versions={secret.name: secret.version},
        )
