"""Models for sync targets, referenced secrets and store operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .constants import KIND_SECRET, OP_WRITE, WORKLOAD_KINDS


@dataclass(frozen=True)
class TargetRef:
    """Namespace-qualified identity of a sync target."""

    kind: str
    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.kind}/{self.namespace}/{self.name}"


@dataclass
class SyncTarget:
    """A workload or standalone secret that may participate in sync."""

    ref: TargetRef
    annotations: dict[str, str] = field(default_factory=dict)
    finalizers: list[str] = field(default_factory=list)
    deletion_timestamp: str | None = None
    uid: str = ""
    api_version: str = ""
    pod_spec: dict[str, Any] | None = None
    secret_data: dict[str, bytes] | None = None
    raw: Any = None

    @property
    def is_workload(self) -> bool:
        return self.ref.kind in WORKLOAD_KINDS

    @property
    def is_secret(self) -> bool:
        return self.ref.kind == KIND_SECRET

    @property
    def being_deleted(self) -> bool:
        return self.deletion_timestamp is not None

    def event_ref(self) -> dict[str, Any]:
        """Minimal object reference for posting Kubernetes events."""
        return {
            "apiVersion": self.api_version,
            "kind": self.ref.kind,
            "metadata": {
                "name": self.ref.name,
                "namespace": self.ref.namespace,
                "uid": self.uid,
            },
        }


@dataclass
class SecretRef:
    """A platform secret as seen by the engine (read-only)."""

    name: str
    namespace: str
    data: dict[str, bytes]
    version: str

    def keys(self) -> list[str]:
        return sorted(self.data)


@dataclass
class BatchOperation:
    """One store mutation inside a batch."""

    path: str
    payload: dict[str, Any] | None = None
    kind: str = OP_WRITE


@dataclass
class SyncPlan:
    """What to write, where, and the version snapshot to persist afterwards."""

    mode: str
    payloads: dict[str, dict[str, str]]
    versions: dict[str, str]

    @property
    def key_count(self) -> int:
        return sum(len(payload) for payload in self.payloads.values())


@dataclass
class ReconcileResult:
    """Outcome of one reconcile; ``requeue_after`` of 0 means no requeue."""

    requeue_after: float = 0.0
