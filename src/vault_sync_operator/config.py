"""Runtime configuration for the Vault Sync Operator."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .constants import KV_AUTO, KV_VERSIONS, WORKLOAD_KINDS, KIND_SECRET

DEFAULT_TOKEN_PATH = "/var/run/secrets/kubernetes.io/serviceaccount/token"


def _get_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def _get_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class OperatorConfig:
    """Process-wide operator settings, read once at startup."""

    vault_addr: str = "http://vault:8200"
    vault_role: str = "vault-sync-operator"
    vault_auth_path: str = "kubernetes"
    vault_token_path: str = DEFAULT_TOKEN_PATH
    vault_kv_version: str = KV_AUTO
    vault_request_timeout: float = 30.0
    vault_skip_verify: bool = False
    cluster_name: str = ""
    vault_rate_limit: float = 10.0
    vault_rate_burst: int = 20
    k8s_rate_limit: float = 10.0
    reconcile_timeout: float = 60.0
    metrics_port: int = 8080
    watch_kinds: tuple[str, ...] = field(default=WORKLOAD_KINDS + (KIND_SECRET,))

    @classmethod
    def from_env(cls) -> OperatorConfig:
        """Build configuration from environment variables.

        Raises:
            ValueError: If a numeric or enumerated setting is invalid
        """
        kv_version = os.getenv("VAULT_KV_VERSION", KV_AUTO).strip().lower()
        if kv_version not in KV_VERSIONS:
            raise ValueError(f"VAULT_KV_VERSION must be one of {', '.join(KV_VERSIONS)}, got {kv_version!r}")

        known_kinds = WORKLOAD_KINDS + (KIND_SECRET,)
        raw_kinds = os.getenv("WATCH_KINDS", ",".join(known_kinds))
        watch_kinds = tuple(k.strip() for k in raw_kinds.split(",") if k.strip())
        unknown = [k for k in watch_kinds if k not in known_kinds]
        if unknown:
            raise ValueError(f"WATCH_KINDS contains unsupported kinds: {', '.join(unknown)}")

        return cls(
            vault_addr=os.getenv("VAULT_ADDR", "http://vault:8200"),
            vault_role=os.getenv("VAULT_ROLE", "vault-sync-operator"),
            vault_auth_path=os.getenv("VAULT_AUTH_PATH", "kubernetes"),
            vault_token_path=os.getenv("VAULT_TOKEN_PATH", DEFAULT_TOKEN_PATH),
            vault_kv_version=kv_version,
            vault_request_timeout=_get_float("VAULT_REQUEST_TIMEOUT_SECONDS", "30"),
            vault_skip_verify=_get_bool("VAULT_SKIP_VERIFY", "false"),
            cluster_name=os.getenv("CLUSTER_NAME", "").strip(),
            vault_rate_limit=_get_float("VAULT_RATE_LIMIT_PER_SECOND", "10"),
            vault_rate_burst=int(_get_float("VAULT_RATE_LIMIT_BURST", "20")),
            k8s_rate_limit=_get_float("K8S_RATE_LIMIT_PER_SECOND", "10"),
            reconcile_timeout=_get_float("RECONCILE_TIMEOUT_SECONDS", "60"),
            metrics_port=int(_get_float("METRICS_PORT", "8080")),
            watch_kinds=watch_kinds,
        )
