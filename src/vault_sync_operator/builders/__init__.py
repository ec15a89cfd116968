"""Builders that turn annotations into typed configuration."""

from .paths import PathResolver, resolve_path
from .sync_config import SecretSyncEntry, parse_sync_config

__all__ = [
    "PathResolver",
    "resolve_path",
    "SecretSyncEntry",
    "parse_sync_config",
]
