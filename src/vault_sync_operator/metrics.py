"""Prometheus metrics for the Vault Sync Operator."""

from prometheus_client import Counter, Gauge, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "vault_sync_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "vault_sync_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

error_total = Counter(
    "vault_sync_operator_error_total",
    "Total number of reconciliation errors by exception type",
    ["kind", "error_type"],
)

# Sync metrics
sync_attempts_total = Counter(
    "vault_sync_operator_sync_attempts_total",
    "Total number of secret sync attempts",
    ["kind", "mode", "result"],
)

sync_duration_seconds = Histogram(
    "vault_sync_operator_sync_duration_seconds",
    "Duration of secret sync operations in seconds",
    ["kind"],
)

sync_skipped_total = Counter(
    "vault_sync_operator_sync_skipped_total",
    "Total number of syncs skipped because no secret version changed",
    ["kind"],
)

secrets_discovered = Gauge(
    "vault_sync_operator_secrets_discovered",
    "Number of secrets discovered in workload pod templates",
    ["namespace", "name"],
)

secret_not_found_errors_total = Counter(
    "vault_sync_operator_secret_not_found_errors_total",
    "Total number of secret not found errors",
    ["namespace", "secret_name"],
)

secret_key_missing_errors_total = Counter(
    "vault_sync_operator_secret_key_missing_errors_total",
    "Total number of missing key errors in secrets",
    ["namespace", "secret_name", "key"],
)

config_parse_errors_total = Counter(
    "vault_sync_operator_config_parse_errors_total",
    "Total number of annotation parsing errors",
    ["kind", "error_type"],
)

lifecycle_errors_total = Counter(
    "vault_sync_operator_lifecycle_errors_total",
    "Total number of finalizer or version snapshot persistence failures",
    ["kind", "operation"],
)

finalizer_operations_total = Counter(
    "vault_sync_operator_finalizer_operations_total",
    "Total number of finalizer additions and removals",
    ["kind", "operation"],
)

# Vault metrics
vault_auth_attempts_total = Counter(
    "vault_sync_operator_auth_attempts_total",
    "Total number of Vault authentication attempts",
    ["result"],
)

vault_operations_total = Counter(
    "vault_sync_operator_vault_operations_total",
    "Total number of Vault write and delete operations",
    ["operation", "result"],
)

vault_write_errors_total = Counter(
    "vault_sync_operator_vault_write_errors_total",
    "Total number of Vault errors by classification",
    ["error_type", "operation"],
)

vault_large_payloads_total = Counter(
    "vault_sync_operator_vault_large_payloads_total",
    "Total number of writes whose payload exceeded the large payload threshold",
)

# API call metrics
api_call_total = Counter(
    "vault_sync_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "vault_sync_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)

# Rate limiting metrics
rate_limit_hits_total = Counter(
    "vault_sync_operator_rate_limit_hits_total",
    "Total number of times a caller had to wait for a rate limit token",
    ["api_type"],
)

rate_limit_wait_seconds = Histogram(
    "vault_sync_operator_rate_limit_wait_seconds",
    "Time spent waiting for a rate limit token",
    ["api_type"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)

rate_limit_in_flight = Gauge(
    "vault_sync_operator_rate_limit_in_flight",
    "Number of admitted operations currently in flight",
    ["api_type"],
)
