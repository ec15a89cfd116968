"""Builder for the explicit secret sync configuration."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from ..constants import ANNOTATION_SECRETS
from ..utils.errors import ConfigurationError


@dataclass(frozen=True)
class SecretSyncEntry:
    """One ``{name, keys, prefix}`` selection from the secrets annotation."""

    name: str
    keys: tuple[str, ...] = field(default_factory=tuple)
    prefix: str = ""

    def vault_key(self, key: str) -> str:
        return f"{self.prefix}{key}"


def _entry_from_dict(index: int, item: Any, raw: str) -> SecretSyncEntry:
    if not isinstance(item, dict):
        raise ConfigurationError(f"entry {index} must be an object", ANNOTATION_SECRETS, raw)

    name = item.get("name")
    if not isinstance(name, str) or not name:
        raise ConfigurationError(f"entry {index} requires a non-empty string 'name'", ANNOTATION_SECRETS, raw)

    keys = item.get("keys", [])
    if not isinstance(keys, list) or not all(isinstance(k, str) and k for k in keys):
        raise ConfigurationError(
            f"entry {index} ({name}) 'keys' must be a list of non-empty strings", ANNOTATION_SECRETS, raw
        )

    prefix = item.get("prefix") or ""
    if not isinstance(prefix, str):
        raise ConfigurationError(f"entry {index} ({name}) 'prefix' must be a string", ANNOTATION_SECRETS, raw)

    return SecretSyncEntry(name=name, keys=tuple(keys), prefix=prefix)


def parse_sync_config(raw: str | None) -> list[SecretSyncEntry] | None:
    """Parse the explicit secrets annotation.

    Args:
        raw: Annotation value, a JSON array of ``{name, keys, prefix?}``

    Returns:
        Ordered list of entries, or None when the annotation is absent,
        blank, or an empty list (auto-discovery applies)

    Raises:
        ConfigurationError: If the value is not valid JSON or has the wrong shape
    """
    if raw is None or not raw.strip():
        return None

    try:
        parsed = json.loads(raw)
    except ValueError as e:
        raise ConfigurationError(f"failed to parse secrets annotation: {e}", ANNOTATION_SECRETS, raw) from e

    if not isinstance(parsed, list):
        raise ConfigurationError("secrets annotation must be a JSON array", ANNOTATION_SECRETS, raw)
    if not parsed:
        return None

    return [_entry_from_dict(index, item, raw) for index, item in enumerate(parsed)]
