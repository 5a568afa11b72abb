"""
Registry Errors — Failures raised inside the registry layer.

None of these escape the public SourceRegistry API: corrupt files are
recovered by backup + defaults, and selection errors become a False
return from switch_current().
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class ConfigCorruptError(Exception):
    """Raised when the persisted registry cannot be parsed or validated."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Registry file {path} is corrupt: {reason}")


class SourceError(Exception):
    """Raised when a source cannot be selected."""

    def __init__(self, name: str, message: Optional[str] = None):
        self.name = name
        super().__init__(message or f"Source '{name}' is not selectable")


class UnknownSourceError(SourceError):
    """No source with this name is configured."""

    def __init__(self, name: str):
        super().__init__(name, f"Unknown source '{name}'")


class SourceDisabledError(SourceError):
    """The source exists but is disabled."""

    def __init__(self, name: str):
        super().__init__(name, f"Source '{name}' is disabled")
