"""Structured JSON logging for the Vault Sync Operator."""

import json
import logging
import os
import sys
from typing import Any

from .utils.context import get_context_dict

# Loggers that are chatty at INFO and never carry sync outcomes
NOISY_LOGGERS = ("kubernetes.client.rest", "urllib3", "hvac")

# Field names whose values are replaced wholesale, at any depth
REDACTED_FIELDS = frozenset({"token", "client_token", "jwt", "password", "payload", "data", "secret_data"})
REDACTED = "***REDACTED***"


def setup_structured_logging(level: int | str | None = None) -> None:
    """Send one JSON document per line to stdout.

    The level defaults to ``LOG_LEVEL`` (INFO when unset).
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def log_resource_event(
    logger: logging.Logger,
    controller: str,
    resource_kind: str,
    resource_name: str,
    namespace: str,
    uid: str,
    event: str,
    reason: str,
    message: str,
    level: int = logging.INFO,
    **kwargs: Any,
) -> None:
    """Log one lifecycle event of a sync target as a JSON line."""
    if not logger.isEnabledFor(level):
        return
    record = {
        "controller": controller,
        "resource": resource_kind,
        "name": resource_name,
        "namespace": namespace,
        "uid": uid,
        "event": event,
        "reason": reason,
        "message": message,
    }
    record.update(get_context_dict())
    record.update(sanitize_secrets(kwargs))
    logger.log(level, json.dumps(record, default=str))


def sanitize_secrets(fields: dict[str, Any]) -> dict[str, Any]:
    """Blank out values of secret-bearing fields, including nested ones."""
    sanitized: dict[str, Any] = {}
    for key, value in fields.items():
        if key in REDACTED_FIELDS:
            sanitized[key] = REDACTED
        elif isinstance(value, dict):
            sanitized[key] = sanitize_secrets(value)
        else:
            sanitized[key] = value
    return sanitized
