"""
Models — Source configuration schemas and probe result types.
"""

from .probe import (
    MirrorReport,
    ProbeResult,
    SourceProgress,
    SourceStatusReport,
    StatusSummary,
)
from .source import (
    CURRENT_SCHEMA_VERSION,
    DEFAULT_SOURCE,
    DataSource,
    RegistryConfig,
    SourceType,
    default_config,
    default_sources,
)

__all__ = [
    "CURRENT_SCHEMA_VERSION",
    "DEFAULT_SOURCE",
    "DataSource",
    "RegistryConfig",
    "SourceType",
    "default_config",
    "default_sources",
    "MirrorReport",
    "ProbeResult",
    "SourceProgress",
    "SourceStatusReport",
    "StatusSummary",
]
