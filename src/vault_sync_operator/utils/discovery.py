"""Discovery of secret references in pod templates."""

from __future__ import annotations

from typing import Any


def _container_secret_names(container: dict[str, Any]) -> set[str]:
    names = set()
    for env in container.get("env") or []:
        ref = (env.get("valueFrom") or {}).get("secretKeyRef") or {}
        if ref.get("name"):
            names.add(ref["name"])
    for env_from in container.get("envFrom") or []:
        ref = env_from.get("secretRef") or {}
        if ref.get("name"):
            names.add(ref["name"])
    return names


def _volume_secret_names(volume: dict[str, Any]) -> set[str]:
    names = set()
    secret = volume.get("secret") or {}
    if secret.get("secretName"):
        names.add(secret["secretName"])
    for source in (volume.get("projected") or {}).get("sources") or []:
        projected = source.get("secret") or {}
        if projected.get("name"):
            names.add(projected["name"])
    return names


def extract_secret_names(pod_spec: dict[str, Any] | None) -> list[str]:
    """Return every secret name referenced by a pod spec.

    Looks at env secret key refs and envFrom secret refs on containers and
    init containers, and at secret and projected-secret volumes. The result
    is de-duplicated and sorted.

    Args:
        pod_spec: Pod spec in Kubernetes JSON form (camelCase keys)

    Returns:
        Sorted list of unique secret names
    """
    if not pod_spec:
        return []

    names: set[str] = set()
    for container in (pod_spec.get("containers") or []) + (pod_spec.get("initContainers") or []):
        names |= _container_secret_names(container)
    for volume in pod_spec.get("volumes") or []:
        names |= _volume_secret_names(volume)
    return sorted(names)
