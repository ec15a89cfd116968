"""Constants for the Vault Sync Operator."""

# Annotation prefix
ANNOTATION_PREFIX = "vault-sync.io"

# Annotations
ANNOTATION_PATH = f"{ANNOTATION_PREFIX}/path"
ANNOTATION_SECRETS = f"{ANNOTATION_PREFIX}/secrets"
ANNOTATION_PRESERVE_ON_DELETE = f"{ANNOTATION_PREFIX}/preserve-on-delete"
ANNOTATION_ROTATION_CHECK = f"{ANNOTATION_PREFIX}/rotation-check"
ANNOTATION_RECONCILE = f"{ANNOTATION_PREFIX}/reconcile"
ANNOTATION_SECRET_VERSIONS = f"{ANNOTATION_PREFIX}/secret-versions"
ANNOTATION_KV_VERSION = f"{ANNOTATION_PREFIX}/kv-version"

# Finalizers
FINALIZER = f"{ANNOTATION_PREFIX}/finalizer"

# Controller name used in structured logs
CONTROLLER_NAME = "vault-sync-operator"

# Resource Kinds
KIND_DEPLOYMENT = "Deployment"
KIND_STATEFUL_SET = "StatefulSet"
KIND_DAEMON_SET = "DaemonSet"
KIND_SECRET = "Secret"

WORKLOAD_KINDS = (KIND_DEPLOYMENT, KIND_STATEFUL_SET, KIND_DAEMON_SET)

# Sync modes
MODE_EXPLICIT = "explicit"
MODE_AUTO_DISCOVERY = "auto-discovery"
MODE_SECRET_KEYS = "secret-keys"

# Store operation kinds
OP_WRITE = "write"
OP_DELETE = "delete"

# Store error classifications
ERROR_PERMISSION_DENIED = "permission_denied"
ERROR_INVALID_PATH = "invalid_path"
ERROR_CONNECTION_FAILED = "connection_failed"
ERROR_UNKNOWN = "unknown"

# KV engine versions
KV_AUTO = "auto"
KV_V1 = "1"
KV_V2 = "2"
KV_VERSIONS = (KV_AUTO, KV_V1, KV_V2)

# Cluster scoping
CLUSTER_PATH_SEGMENT = "clusters"

# Writer tuning
BATCH_SIZE = 5
BATCH_PAUSE_SECONDS = 0.1
LARGE_PAYLOAD_BYTES = 1024 * 1024

# Reconcile interval
MIN_RECONCILE_INTERVAL_SECONDS = 30.0
RECONCILE_OFF = "off"

# Event Reasons
EVENT_REASON_SYNC_SUCCEEDED = "SyncSucceeded"
EVENT_REASON_SYNC_SKIPPED = "SyncSkipped"
EVENT_REASON_SYNC_FAILED = "SyncFailed"
EVENT_REASON_VAULT_SECRET_DELETED = "VaultSecretDeleted"
EVENT_REASON_VAULT_SECRET_PRESERVED = "VaultSecretPreserved"

# Retry backoff for failed reconciles: base * 2^retry, capped
RETRY_BASE_DELAY_SECONDS = 1.0
RETRY_MAX_DELAY_SECONDS = 300.0

# Prefix of the annotations kopf keeps its handler progress in
KOPF_STORAGE_PREFIX = "kopf.vault-sync.io"
