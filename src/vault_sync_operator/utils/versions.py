"""Secret version snapshots and change detection."""

from __future__ import annotations

import json
import logging

logger = logging.getLogger(__name__)

REMOVED_SUFFIX = " (removed)"


def has_changed(last_versions: dict[str, str], current_versions: dict[str, str]) -> bool:
    """Decide whether the referenced secrets changed since the last sync.

    True when there is no prior snapshot, when a version token differs,
    or when a secret name exists in only one of the two maps.
    """
    if not last_versions:
        return True
    return last_versions != current_versions


def diff_versions(last_versions: dict[str, str], current_versions: dict[str, str]) -> list[str]:
    """List changed or added secret names, then removed ones with a suffix."""
    changed = [
        name
        for name, version in sorted(current_versions.items())
        if last_versions.get(name) != version
    ]
    removed = [f"{name}{REMOVED_SUFFIX}" for name in sorted(last_versions) if name not in current_versions]
    return changed + removed


def parse_version_snapshot(raw: str | None) -> dict[str, str]:
    """Parse the version snapshot annotation.

    Anything that is not a JSON object of strings counts as "no snapshot",
    which forces the next sync.
    """
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.warning(f"Ignoring unparsable secret version snapshot: {raw!r}")
        return {}
    if not isinstance(parsed, dict):
        return {}
    return {str(name): str(version) for name, version in parsed.items()}


def serialize_version_snapshot(versions: dict[str, str]) -> str:
    """Encode a snapshot as a flat, key-sorted JSON object."""
    return json.dumps(versions, sort_keys=True, separators=(",", ":"))
