"""Builder for physical vault paths and write payloads."""

from __future__ import annotations

from typing import Any

from ..constants import ANNOTATION_KV_VERSION, CLUSTER_PATH_SEGMENT, KV_AUTO, KV_V1, KV_V2, KV_VERSIONS
from ..utils.errors import ConfigurationError

KV2_DATA_SEGMENT = "data"


def resolve_path(logical_path: str, cluster_tag: str = "") -> str:
    """Scope a logical path to a cluster.

    Args:
        logical_path: User-supplied path from the path annotation
        cluster_tag: Optional cluster name; empty means no scoping

    Returns:
        ``clusters/<cluster_tag>/<logical_path>`` or the logical path itself
    """
    logical = logical_path.strip("/")
    if cluster_tag:
        return f"{CLUSTER_PATH_SEGMENT}/{cluster_tag}/{logical}"
    return logical


def sub_path(logical_path: str, name: str) -> str:
    """Logical path of one secret below a base path."""
    return f"{logical_path.strip('/')}/{name}"


class PathResolver:
    """Maps logical paths to physical vault paths and payload shapes.

    The KV version comes from configuration rather than guessing. With
    ``auto`` a path is treated as KV v2 only when its second segment is
    exactly ``data``; with ``2`` the ``data`` segment is inserted when
    missing; with ``1`` paths and payloads pass through untouched.
    """

    def __init__(self, cluster_tag: str = "", kv_version: str = KV_AUTO) -> None:
        if kv_version not in KV_VERSIONS:
            raise ValueError(f"unsupported kv version {kv_version!r}")
        self.cluster_tag = cluster_tag
        self.kv_version = kv_version

    def for_kv_version(self, kv_version: str | None) -> PathResolver:
        """Return a resolver honouring a per-target KV version override.

        Raises:
            ConfigurationError: If the override is not a known KV version
        """
        if kv_version is None or not kv_version.strip():
            return self
        value = kv_version.strip().lower()
        if value not in KV_VERSIONS:
            raise ConfigurationError(
                f"kv-version must be one of {', '.join(KV_VERSIONS)}, got {kv_version!r}",
                ANNOTATION_KV_VERSION,
                kv_version,
            )
        if value == self.kv_version:
            return self
        return PathResolver(self.cluster_tag, value)

    def _cluster_prefix(self) -> str:
        return f"{CLUSTER_PATH_SEGMENT}/{self.cluster_tag}/" if self.cluster_tag else ""

    def _unscoped(self, physical_path: str) -> str:
        prefix = self._cluster_prefix()
        if prefix and physical_path.startswith(prefix):
            return physical_path[len(prefix):]
        return physical_path

    @staticmethod
    def _has_data_segment(path: str) -> bool:
        segments = path.strip("/").split("/")
        return len(segments) > 1 and segments[1] == KV2_DATA_SEGMENT

    def _kv_rewrite(self, logical_path: str) -> str:
        logical = logical_path.strip("/")
        if self.kv_version != KV_V2 or self._has_data_segment(logical):
            return logical
        segments = logical.split("/")
        if len(segments) < 2:
            raise ConfigurationError(
                f"kv v2 path {logical_path!r} needs a mount and a secret name",
                ANNOTATION_KV_VERSION,
                self.kv_version,
            )
        return "/".join([segments[0], KV2_DATA_SEGMENT] + segments[1:])

    def resolve(self, logical_path: str) -> str:
        """Physical path for a logical path: KV rewrite, then cluster scoping."""
        return resolve_path(self._kv_rewrite(logical_path), self.cluster_tag)

    def is_kv_v2(self, physical_path: str) -> bool:
        if self.kv_version == KV_V1:
            return False
        return self._has_data_segment(self._unscoped(physical_path))

    def shape_for_write(self, physical_path: str, data: dict[str, Any]) -> dict[str, Any]:
        """Wrap the payload under ``data`` for KV v2 paths, copy it otherwise."""
        if self.is_kv_v2(physical_path):
            return {KV2_DATA_SEGMENT: dict(data)}
        return dict(data)

    def shape_for_delete(self, physical_path: str) -> str:
        """Delete path for a physical path; deletes are never wrapped."""
        return physical_path
