"""Error taxonomy and sanitization utilities."""

from __future__ import annotations

import re
from typing import Any

from ..constants import (
    ERROR_CONNECTION_FAILED,
    ERROR_INVALID_PATH,
    ERROR_PERMISSION_DENIED,
    ERROR_UNKNOWN,
)


class SyncError(Exception):
    """Base class for errors that fail a single reconcile."""


class ConfigurationError(SyncError):
    """An annotation holds a value the engine cannot parse."""

    def __init__(self, message: str, annotation: str, raw_value: str) -> None:
        super().__init__(message)
        self.annotation = annotation
        self.raw_value = raw_value


class SecretReferenceError(SyncError):
    """A referenced secret or key is not available."""

    def __init__(self, message: str, secret_name: str, namespace: str) -> None:
        super().__init__(message)
        self.secret_name = secret_name
        self.namespace = namespace


class SecretNotFoundError(SecretReferenceError):
    """A referenced secret does not exist (yet)."""

    def __init__(self, secret_name: str, namespace: str) -> None:
        super().__init__(
            f"secret {secret_name} not found in namespace {namespace} "
            "(check if secret generators such as kustomize or helm have run)",
            secret_name,
            namespace,
        )


class SecretKeyMissingError(SecretReferenceError):
    """A key requested by the explicit sync configuration is absent."""

    def __init__(self, secret_name: str, namespace: str, key: str, available_keys: list[str]) -> None:
        super().__init__(
            f"key {key} not found in secret {secret_name} "
            f"(available keys: {', '.join(available_keys) or 'none'})",
            secret_name,
            namespace,
        )
        self.key = key
        self.available_keys = available_keys


class StoreError(SyncError):
    """A secret store mutation failed."""

    def __init__(self, message: str, operation: str, path: str, classification: str) -> None:
        super().__init__(message)
        self.operation = operation
        self.path = path
        self.classification = classification


class ReconcileCancelled(SyncError):
    """The reconcile deadline fired while waiting."""


# Substrings used to bucket store errors, checked in order
STORE_ERROR_PATTERNS: list[tuple[str, tuple[str, ...]]] = [
    (ERROR_PERMISSION_DENIED, ("permission denied", "forbidden", "403")),
    (ERROR_INVALID_PATH, ("invalid path", "not found", "404")),
    (ERROR_CONNECTION_FAILED, ("connection refused", "timeout", "timed out", "network")),
]


def classify_store_error(error: BaseException) -> str:
    """Bucket a store error by its text.

    Classification only feeds metrics and logs; callers still propagate
    the original error.
    """
    text = str(error).lower()
    for classification, needles in STORE_ERROR_PATTERNS:
        if any(needle in text for needle in needles):
            return classification
    return ERROR_UNKNOWN


# Patterns that might expose sensitive information
SENSITIVE_PATTERNS = [
    r"(hvs\.)[A-Za-z0-9_\-]+",
    r"\b(s\.)[A-Za-z0-9]{24}\b",
    r"(bearer\s+)[A-Za-z0-9\-_\.]+",
    r"(eyJ)[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]*",
]

# Fields to redact completely
SENSITIVE_FIELDS = {
    "client_token",
    "token",
    "jwt",
    "password",
    "secret_id",
    "credentials",
}


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove sensitive information.
    
    Args:
        message: Original error message
        
    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = message
    
    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(pattern, r"\1[REDACTED]", sanitized, flags=re.IGNORECASE)
    
    for field in SENSITIVE_FIELDS:
        sanitized = re.sub(
            rf"\b{field}[:=\s]+([^\s,;\)]+)",
            rf"{field}: [REDACTED]",
            sanitized,
            flags=re.IGNORECASE,
        )
    
    return sanitized


def sanitize_exception(error: BaseException) -> str:
    """Sanitize exception message."""
    return sanitize_error_message(str(error))


def sanitize_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """Sanitize dictionary by redacting sensitive fields.
    
    Args:
        data: Dictionary to sanitize
        sensitive_keys: Additional keys to redact (merged with SENSITIVE_FIELDS)
        
    Returns:
        Sanitized dictionary with sensitive values redacted
    """
    all_sensitive = SENSITIVE_FIELDS | (sensitive_keys or set())
    sanitized = {}
    
    for key, value in data.items():
        key_lower = key.lower()
        if any(sensitive in key_lower for sensitive in all_sensitive):
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, sensitive_keys)
        elif isinstance(value, str):
            sanitized[key] = sanitize_error_message(value)
        else:
            sanitized[key] = value
    
    return sanitized
