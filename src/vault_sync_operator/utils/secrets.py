"""Utilities for reading Kubernetes secret data."""

from __future__ import annotations

import base64
import binascii
import hashlib
from typing import Any


def decode_secret_data(data: dict[str, Any] | None) -> dict[str, bytes]:
    """Decode the base64 ``data`` map of a Secret into raw bytes.

    Args:
        data: Secret data as returned by the API (base64 strings or bytes)

    Returns:
        Dictionary of key to raw bytes
    """
    result = {}
    for key, value in (data or {}).items():
        if value is None:
            result[key] = b""
        elif isinstance(value, bytes):
            result[key] = value
        else:
            try:
                result[key] = base64.b64decode(value, validate=True)
            except (binascii.Error, ValueError):
                # Already decoded by the caller
                result[key] = str(value).encode("utf-8")
    return result


def secret_value_text(value: bytes) -> str:
    """Render secret bytes as the string value written to vault."""
    return value.decode("utf-8", errors="replace")


def content_version(data: dict[str, bytes]) -> str:
    """Derive a version token from secret contents.

    Used when a secret is its own sync target: writing the version snapshot
    back onto it bumps its resourceVersion, so the content digest is the
    only token that does not change on every sync.
    """
    digest = hashlib.sha256()
    for key in sorted(data):
        digest.update(key.encode("utf-8"))
        digest.update(b"\0")
        digest.update(data[key])
        digest.update(b"\0")
    return f"sha256:{digest.hexdigest()[:32]}"
