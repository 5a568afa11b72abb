"""
Local Cache — One cached document per JSON-mode source.

Files live at <cache_dir>/<source name>.json and hold the raw bytes of
the last successful download. Writes go to a temp file in the same
directory which then replaces the target, so a reader never sees a
partially written document.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ..probe.version import decode_prefix, extract_version

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocalCacheEntry:
    """A cached document and its top-level version."""

    name: str
    path: Path
    version: Optional[str]
    size_bytes: int
    modified_at_iso: str


class LocalCacheStore:
    """Reads and atomically replaces cached source documents."""

    def __init__(self, root: Path, prefix_bytes: int = 2048):
        self.root = Path(root)
        self.prefix_bytes = max(1, prefix_bytes)

    def path_for(self, name: str) -> Path:
        if not name or name in (".", "..") or "/" in name or "\\" in name:
            raise ValueError(f"Invalid source name for cache file: {name!r}")
        return self.root / f"{name}.json"

    def get_local_cache_path(self, name: str) -> Optional[Path]:
        """Path of the cached document, or None if not cached yet."""
        try:
            path = self.path_for(name)
        except ValueError:
            return None
        return path if path.is_file() else None

    def read_version(self, name: str) -> Optional[str]:
        """
        Version of the cached document.

        Only the first `prefix_bytes` are read, exactly as a remote probe
        would, so local and remote versions are extracted the same way.
        """
        path = self.path_for(name)
        try:
            with path.open("rb") as f:
                prefix = f.read(self.prefix_bytes)
        except OSError as e:
            logger.debug(f"[cache] Cannot read {path.name}: {e}")
            return None
        return extract_version(decode_prefix(prefix))

    def entry(self, name: str) -> Optional[LocalCacheEntry]:
        """Describe the cached document, or None if there is none."""
        path = self.get_local_cache_path(name)
        if path is None:
            return None
        try:
            stat = path.stat()
        except OSError:
            return None
        return LocalCacheEntry(
            name=name,
            path=path,
            version=self.read_version(name),
            size_bytes=stat.st_size,
            modified_at_iso=datetime.fromtimestamp(stat.st_mtime, timezone.utc).isoformat(),
        )

    def write(self, name: str, content: bytes) -> LocalCacheEntry:
        """
        Replace the cached document atomically.

        Raises:
            OSError: If the document could not be written. The previous
                cache file (if any) is left untouched.
        """
        path = self.path_for(name)
        path.parent.mkdir(parents=True, exist_ok=True)

        temp_path = path.with_name(f".{path.name}.tmp")
        try:
            with temp_path.open("wb") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            temp_path.replace(path)
        except OSError:
            try:
                temp_path.unlink(missing_ok=True)
            except OSError:
                pass
            raise

        entry = self.entry(name)
        logger.info(
            f"[cache] Wrote {name} ({len(content)} bytes, version={entry.version if entry else None})"
        )
        return entry or LocalCacheEntry(
            name=name,
            path=path,
            version=None,
            size_bytes=len(content),
            modified_at_iso=datetime.now(timezone.utc).isoformat(),
        )
