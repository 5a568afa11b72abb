"""
Sync Settings — Parse LANDMARK_SYNC_* environment variables.

All values have working defaults, so a bare environment is valid:

    LANDMARK_SYNC_HOME=~/.config/toriifind
    LANDMARK_SYNC_HEAD_TIMEOUT=2.0
    LANDMARK_SYNC_VERSION_TIMEOUT=1.5
    LANDMARK_SYNC_DOWNLOAD_TIMEOUT=15.0
    LANDMARK_SYNC_STATUS_TIMEOUT=5.0
    LANDMARK_SYNC_PREFIX_BYTES=2048
    LANDMARK_SYNC_PROBE_WORKERS=8
    LANDMARK_SYNC_TASK_WORKERS=3
    LANDMARK_SYNC_STATUS_WORKERS=3

The registry file and the per-source cache files both live under HOME.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .. import __version__

logger = logging.getLogger(__name__)

ENV_PREFIX = "LANDMARK_SYNC_"
DEFAULT_HOME = Path("~/.config/toriifind")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(f"{ENV_PREFIX}{name}")
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"{ENV_PREFIX}{name}={raw!r} is not a number, using {default}")
        return default
    if value <= 0:
        logger.warning(f"{ENV_PREFIX}{name} must be positive, using {default}")
        return default
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(f"{ENV_PREFIX}{name}")
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"{ENV_PREFIX}{name}={raw!r} is not an integer, using {default}")
        return default
    if value <= 0:
        logger.warning(f"{ENV_PREFIX}{name} must be positive, using {default}")
        return default
    return value


@dataclass
class SyncSettings:
    """Settings shared by the registry, probes and sync engine."""

    home: Path = DEFAULT_HOME.expanduser()

    # Per-request timeouts (seconds)
    head_timeout: float = 2.0
    version_timeout: float = 1.5
    download_timeout: float = 15.0

    # Supervision deadline for one source in a status check, counted from
    # when its resolution starts running
    status_timeout: float = 5.0

    # Bytes read from the head of a document when looking for its version
    prefix_bytes: int = 2048

    probe_workers: int = 8
    task_workers: int = 3
    status_workers: int = 3

    user_agent: str = f"landmark-sync/{__version__}"

    @property
    def config_path(self) -> Path:
        """Path of the persisted source registry."""
        return self.home / "config.yml"

    @property
    def cache_dir(self) -> Path:
        """Directory holding one cached document per source."""
        return self.home

    @classmethod
    def from_env(cls, home: Optional[Path] = None) -> "SyncSettings":
        """Build settings from environment variables."""
        if home is None:
            raw_home = os.environ.get(f"{ENV_PREFIX}HOME", "").strip()
            home = Path(raw_home) if raw_home else DEFAULT_HOME

        settings = cls(
            home=Path(home).expanduser(),
            head_timeout=_env_float("HEAD_TIMEOUT", cls.head_timeout),
            version_timeout=_env_float("VERSION_TIMEOUT", cls.version_timeout),
            download_timeout=_env_float("DOWNLOAD_TIMEOUT", cls.download_timeout),
            status_timeout=_env_float("STATUS_TIMEOUT", cls.status_timeout),
            prefix_bytes=_env_int("PREFIX_BYTES", cls.prefix_bytes),
            probe_workers=_env_int("PROBE_WORKERS", cls.probe_workers),
            task_workers=_env_int("TASK_WORKERS", cls.task_workers),
            status_workers=_env_int("STATUS_WORKERS", cls.status_workers),
            user_agent=os.environ.get(f"{ENV_PREFIX}USER_AGENT") or cls.user_agent,
        )
        logger.debug(f"Loaded sync settings: home={settings.home}")
        return settings
