"""
Source Registry — Persisted source configuration and current selection.
"""

from .errors import (
    ConfigCorruptError,
    SourceDisabledError,
    SourceError,
    UnknownSourceError,
)
from .store import SourceRegistry, migrate_config, read_config, write_config

__all__ = [
    "SourceRegistry",
    "ConfigCorruptError",
    "SourceError",
    "SourceDisabledError",
    "UnknownSourceError",
    "migrate_config",
    "read_config",
    "write_config",
]
