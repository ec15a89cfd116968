"""Kubernetes object store for sync targets and referenced secrets."""

from .store import KubernetesObjectStore, get_k8s_clients

__all__ = [
    "KubernetesObjectStore",
    "get_k8s_clients",
]
