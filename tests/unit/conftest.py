"""Shared fixtures: in-memory fakes of the object store and the secret store."""

from __future__ import annotations

from typing import Any
from unittest.mock import patch

import pytest

from vault_sync_operator.builders.paths import PathResolver
from vault_sync_operator.constants import ANNOTATION_PATH, FINALIZER, KIND_DEPLOYMENT, KIND_SECRET
from vault_sync_operator.handlers.lifecycle import LifecycleController
from vault_sync_operator.handlers.planner import SyncPlanner
from vault_sync_operator.models import SecretRef, SyncTarget, TargetRef
from vault_sync_operator.services.vault.writer import RateLimitedWriter
from vault_sync_operator.utils.errors import SecretNotFoundError
from vault_sync_operator.utils.rate_limit import TokenBucket


class FakeObjectStore:
    """Object store keeping targets and secrets in dictionaries."""

    def __init__(self) -> None:
        self.targets: dict[TargetRef, SyncTarget] = {}
        self.secrets: dict[tuple[str, str], SecretRef] = {}
        self.updates: list[SyncTarget] = []
        self.fail_updates = False

    def add_secret(self, name: str, data: dict[str, str], version: str = "1", namespace: str = "default") -> None:
        encoded = {key: value.encode("utf-8") for key, value in data.items()}
        self.secrets[(namespace, name)] = SecretRef(name, namespace, encoded, version)

    def add_target(self, target: SyncTarget) -> SyncTarget:
        self.targets[target.ref] = target
        return target

    def get_target(self, ref: TargetRef) -> SyncTarget | None:
        target = self.targets.get(ref)
        if target is None:
            return None
        # Hand out a copy so unsaved changes are not visible
        return SyncTarget(
            ref=target.ref,
            annotations=dict(target.annotations),
            finalizers=list(target.finalizers),
            deletion_timestamp=target.deletion_timestamp,
            uid=target.uid,
            api_version=target.api_version,
            pod_spec=target.pod_spec,
            secret_data=target.secret_data,
        )

    def update_target(self, target: SyncTarget) -> None:
        if self.fail_updates:
            raise RuntimeError("conflict")
        self.updates.append(target)
        self.targets[target.ref] = target

    def get_secret(self, namespace: str, name: str) -> SecretRef:
        secret = self.secrets.get((namespace, name))
        if secret is None:
            raise SecretNotFoundError(name, namespace)
        return secret


class FakeSecretStore:
    """Secret store that records writes and deletes by path."""

    def __init__(self) -> None:
        self.data: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str]] = []
        self.error: Exception | None = None

    def write(self, path: str, payload: dict[str, Any]) -> None:
        self.calls.append(("write", path))
        if self.error is not None:
            raise self.error
        self.data[path] = dict(payload)

    def delete(self, path: str) -> None:
        self.calls.append(("delete", path))
        if self.error is not None:
            raise self.error
        self.data.pop(path, None)

    def health_check(self) -> bool:
        return True

    def readiness_check(self) -> bool:
        return True


class FakeSession:
    """Session stand-in counting logins and invalidations."""

    def __init__(self) -> None:
        self.logins = 0
        self.invalidations = 0

    def ensure_authenticated(self) -> None:
        self.logins += 1

    def invalidate(self) -> None:
        self.invalidations += 1


def make_deployment(
    name: str = "app",
    annotations: dict[str, str] | None = None,
    finalizers: list[str] | None = None,
    pod_spec: dict[str, Any] | None = None,
    deleting: bool = False,
) -> SyncTarget:
    return SyncTarget(
        ref=TargetRef(KIND_DEPLOYMENT, "default", name),
        annotations=dict(annotations or {}),
        finalizers=list(finalizers or []),
        deletion_timestamp="2024-01-01T00:00:00Z" if deleting else None,
        uid=f"uid-{name}",
        api_version="apps/v1",
        pod_spec=pod_spec,
    )


def make_secret_target(
    name: str = "creds",
    data: dict[str, str] | None = None,
    annotations: dict[str, str] | None = None,
    finalizers: list[str] | None = None,
) -> SyncTarget:
    return SyncTarget(
        ref=TargetRef(KIND_SECRET, "default", name),
        annotations=dict(annotations or {}),
        finalizers=list(finalizers or []),
        uid=f"uid-{name}",
        api_version="v1",
        secret_data={key: value.encode("utf-8") for key, value in (data or {}).items()},
    )


@pytest.fixture(autouse=True)
def no_kubernetes_events():
    """Keep event posting away from a real cluster."""
    with patch("vault_sync_operator.utils.events.kopf.event") as mock_event:
        yield mock_event


@pytest.fixture
def object_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def secret_store() -> FakeSecretStore:
    return FakeSecretStore()


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def writer(secret_store: FakeSecretStore, session: FakeSession) -> RateLimitedWriter:
    return RateLimitedWriter(secret_store, session, TokenBucket(1000.0, 1000), batch_pause=0.0)


@pytest.fixture
def controller(object_store: FakeObjectStore, writer: RateLimitedWriter) -> LifecycleController:
    return LifecycleController(object_store, SyncPlanner(object_store), writer, PathResolver())


@pytest.fixture
def enabled_deployment(object_store: FakeObjectStore) -> SyncTarget:
    """Protected deployment in auto-discovery mode referencing secret ``db``."""
    object_store.add_secret("db", {"user": "u", "pass": "p"}, version="7")
    pod_spec = {"containers": [{"name": "app", "envFrom": [{"secretRef": {"name": "db"}}]}]}
    return object_store.add_target(
        make_deployment(
            annotations={ANNOTATION_PATH: "secret/data/app"},
            finalizers=[FINALIZER],
            pod_spec=pod_spec,
        )
    )
