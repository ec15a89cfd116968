"""Kubernetes API implementation of the object store."""

from __future__ import annotations

import time
from typing import Any, Callable

from kubernetes import client
from kubernetes.client.rest import ApiException

from ... import metrics
from ...constants import KIND_DAEMON_SET, KIND_DEPLOYMENT, KIND_SECRET, KIND_STATEFUL_SET
from ...models import SecretRef, SyncTarget, TargetRef
from ...utils.errors import SecretNotFoundError
from ...utils.rate_limit import rate_limit_k8s
from ...utils.secrets import decode_secret_data

# kind -> (api version, read method, replace method)
_TARGET_METHODS: dict[str, tuple[str, str, str]] = {
    KIND_DEPLOYMENT: ("apps/v1", "read_namespaced_deployment", "replace_namespaced_deployment"),
    KIND_STATEFUL_SET: ("apps/v1", "read_namespaced_stateful_set", "replace_namespaced_stateful_set"),
    KIND_DAEMON_SET: ("apps/v1", "read_namespaced_daemon_set", "replace_namespaced_daemon_set"),
    KIND_SECRET: ("v1", "read_namespaced_secret", "replace_namespaced_secret"),
}


def get_k8s_clients() -> tuple[client.AppsV1Api, client.CoreV1Api]:
    """Get Kubernetes API clients.

    Returns:
        AppsV1Api and CoreV1Api instances
    """
    from kubernetes import config

    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()

    return client.AppsV1Api(), client.CoreV1Api()


class KubernetesObjectStore:
    """Reads targets and secrets, and writes target metadata back.

    Updates replace the whole object read earlier, so a concurrent change
    surfaces as a 409 conflict and the reconcile is retried.
    """

    def __init__(self, apps_api: Any, core_api: Any) -> None:
        self.apps_api = apps_api
        self.core_api = core_api
        self._serializer = client.ApiClient()

    def _api_for(self, kind: str) -> Any:
        return self.core_api if kind == KIND_SECRET else self.apps_api

    def _call(self, operation: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        start_time = time.time()
        try:
            result = rate_limit_k8s(func)(*args, **kwargs)
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result="success").inc()
            return result
        except Exception:
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result="error").inc()
            raise
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="k8s", operation=operation).observe(duration)

    def get_target(self, ref: TargetRef) -> SyncTarget | None:
        """Fetch a target; None when it has already been removed."""
        if ref.kind not in _TARGET_METHODS:
            raise ValueError(f"unsupported target kind {ref.kind!r}")
        _, read_method, _ = _TARGET_METHODS[ref.kind]
        api = self._api_for(ref.kind)
        try:
            obj = self._call(f"get_{ref.kind.lower()}", getattr(api, read_method), ref.name, ref.namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            raise
        return self._to_target(ref, obj)

    def _to_target(self, ref: TargetRef, obj: Any) -> SyncTarget:
        api_version, _, _ = _TARGET_METHODS[ref.kind]
        meta = obj.metadata
        target = SyncTarget(
            ref=ref,
            annotations=dict(meta.annotations or {}),
            finalizers=list(meta.finalizers or []),
            deletion_timestamp=str(meta.deletion_timestamp) if meta.deletion_timestamp else None,
            uid=meta.uid or "",
            api_version=obj.api_version or api_version,
            raw=obj,
        )
        if ref.kind == KIND_SECRET:
            target.secret_data = decode_secret_data(obj.data)
        elif obj.spec is not None and obj.spec.template is not None:
            target.pod_spec = self._serializer.sanitize_for_serialization(obj.spec.template.spec)
        return target

    def update_target(self, target: SyncTarget) -> None:
        """Replace the target with its current annotations and finalizers."""
        ref = target.ref
        _, _, replace_method = _TARGET_METHODS[ref.kind]
        obj = target.raw
        obj.metadata.annotations = dict(target.annotations)
        obj.metadata.finalizers = list(target.finalizers)
        api = self._api_for(ref.kind)
        target.raw = self._call(
            f"update_{ref.kind.lower()}", getattr(api, replace_method), ref.name, ref.namespace, obj
        )

    def get_secret(self, namespace: str, name: str) -> SecretRef:
        """Fetch a referenced secret with its resourceVersion as version token."""
        try:
            obj = self._call("get_secret", self.core_api.read_namespaced_secret, name, namespace)
        except ApiException as e:
            if e.status == 404:
                raise SecretNotFoundError(name, namespace) from e
            raise
        return SecretRef(
            name=name,
            namespace=namespace,
            data=decode_secret_data(obj.data),
            version=obj.metadata.resource_version or "",
        )
