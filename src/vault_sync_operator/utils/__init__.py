"""Utility functions for the Vault Sync Operator."""

from .context import (
    Deadline,
    get_context_dict,
    get_correlation_id,
    set_correlation_id,
    with_correlation_id,
)
from .discovery import extract_secret_names
from .durations import parse_duration
from .events import emit_event
from .rate_limit import TokenBucket, configure_k8s_rate_limit, rate_limit_k8s
from .secrets import content_version, decode_secret_data, secret_value_text
from .versions import diff_versions, has_changed, parse_version_snapshot, serialize_version_snapshot

__all__ = [
    "Deadline",
    "TokenBucket",
    "configure_k8s_rate_limit",
    "content_version",
    "decode_secret_data",
    "diff_versions",
    "emit_event",
    "extract_secret_names",
    "get_context_dict",
    "get_correlation_id",
    "has_changed",
    "parse_duration",
    "parse_version_snapshot",
    "rate_limit_k8s",
    "secret_value_text",
    "serialize_version_snapshot",
    "set_correlation_id",
    "with_correlation_id",
]
