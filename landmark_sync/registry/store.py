"""
Source Registry — Persisted set of data sources and the current selection.

The registry is stored as YAML (config.yml under the sync home). It is
loaded once at startup; a missing file yields the built-in defaults and a
corrupt one is backed up to config.yml.backup before defaults replace it.

The in-memory state is an immutable RegistryConfig snapshot. Mutations
build a new snapshot and swap the reference under a lock, so readers
never observe a half-applied change.

## Usage

    from landmark_sync.registry import SourceRegistry

    registry = SourceRegistry.load(settings.config_path)
    source = registry.get_current_source()
    if not registry.switch_current("lynn-json"):
        print("cannot switch")
"""

from __future__ import annotations

import logging
import shutil
import threading
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

import yaml
from pydantic import ValidationError

from ..models.source import (
    CURRENT_SCHEMA_VERSION,
    DataSource,
    RegistryConfig,
    default_config,
    default_sources,
)
from .errors import ConfigCorruptError, SourceDisabledError, UnknownSourceError

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".backup"


def read_config(path: Path) -> RegistryConfig:
    """
    Read and validate a registry file.

    Raises:
        ConfigCorruptError: If the file is unreadable, empty, not a
            mapping, fails schema validation, or lists no sources.
    """
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigCorruptError(path, f"unreadable ({e})") from e
    except yaml.YAMLError as e:
        raise ConfigCorruptError(path, f"invalid YAML ({e})") from e

    if data is None:
        raise ConfigCorruptError(path, "file is empty")
    if not isinstance(data, dict):
        raise ConfigCorruptError(path, "top level is not a mapping")

    # An explicit `sources: null` is treated like a missing section
    if data.get("sources") is None:
        data = {**data, "sources": {}}

    try:
        config = RegistryConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigCorruptError(path, f"schema validation failed ({e.error_count()} errors)") from e

    if not config.sources and config.version >= CURRENT_SCHEMA_VERSION:
        raise ConfigCorruptError(path, "no sources configured")

    return config


def write_config(path: Path, config: RegistryConfig) -> bool:
    """
    Write a registry file atomically (temp file, then replace).

    Returns:
        True on success. Failures are logged, never raised.
    """
    temp_path = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with temp_path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(
                config.to_persisted(),
                f,
                sort_keys=False,
                allow_unicode=True,
                default_flow_style=False,
            )
        temp_path.replace(path)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"[registry] Failed to save {path}: {e}")
        try:
            temp_path.unlink(missing_ok=True)
        except OSError:
            pass
        return False

    logger.info(f"[registry] Saved {len(config.sources)} sources → {path.name}")
    return True


def backup_config_file(path: Path) -> Optional[Path]:
    """Copy a (corrupt) registry file aside before it is replaced."""
    if not path.exists():
        return None
    backup_path = path.with_name(path.name + BACKUP_SUFFIX)
    try:
        shutil.copy2(path, backup_path)
    except OSError as e:
        logger.error(f"[registry] Failed to back up {path}: {e}")
        return None
    logger.warning(f"[registry] Backed up registry file to {backup_path}")
    return backup_path


def migrate_config(config: RegistryConfig) -> Tuple[RegistryConfig, bool]:
    """
    Bring an older registry up to the current schema version.

    Built-in sources missing from the file are added; entries the user
    already has are never overwritten.

    Returns:
        (config, changed)
    """
    if config.version >= CURRENT_SCHEMA_VERSION:
        return config, False

    sources = dict(config.sources)
    added = []
    for name, source in default_sources().items():
        if name not in sources:
            sources[name] = source
            added.append(name)

    if added:
        logger.info(f"[registry] Added built-in sources: {', '.join(added)}")
    logger.info(
        f"[registry] Migrated schema v{config.version} → v{CURRENT_SCHEMA_VERSION}"
    )
    migrated = config.model_copy(
        update={"sources": sources, "version": CURRENT_SCHEMA_VERSION}
    )
    return migrated, True


def _repair_current(config: RegistryConfig) -> Tuple[RegistryConfig, bool]:
    """
    Point current_source at an enabled source if it no longer does.

    With nothing enabled, an existing current source is kept and a
    missing one falls back to the first configured source.
    """
    current = config.current
    if current is not None and current.enabled:
        return config, False

    replacement = next((s.name for s in config.sources.values() if s.enabled), None)
    if replacement is None:
        if current is not None:
            logger.warning("[registry] No enabled sources; keeping current selection")
            return config, False
        replacement = next(iter(config.sources))

    logger.warning(
        f"[registry] Current source '{config.current_source}' is unavailable, "
        f"switching to '{replacement}'"
    )
    return config.model_copy(update={"current_source": replacement}), True


class SourceRegistry:
    """
    Owns the registry file and the current in-memory snapshot.

    All mutations go through this class; every other component only
    reads snapshots.
    """

    def __init__(self, path: Path, config: RegistryConfig):
        self.path = Path(path)
        self._config = config
        self._lock = threading.Lock()

    # ─── Loading ────────────────────────────────────────────

    @classmethod
    def load(cls, path: Path) -> "SourceRegistry":
        """
        Load the registry, falling back to defaults.

        Never raises and never returns an empty source map.
        """
        path = Path(path)
        try:
            return cls._load(path)
        except Exception as e:
            logger.error(f"[registry] Unexpected error loading {path}: {e}", exc_info=True)
            return cls(path, default_config())

    @classmethod
    def _load(cls, path: Path) -> "SourceRegistry":
        if not path.exists():
            logger.info(f"[registry] No registry at {path}, creating defaults")
            registry = cls(path, default_config())
            registry.save()
            return registry

        try:
            config = read_config(path)
        except ConfigCorruptError as e:
            logger.warning(f"[registry] {e}")
            backup_config_file(path)
            registry = cls(path, default_config())
            registry.save()
            return registry

        config, migrated = migrate_config(config)
        config, repaired = _repair_current(config)

        registry = cls(path, config)
        if migrated or repaired:
            registry.save()

        logger.debug(
            f"[registry] Loaded {len(config.sources)} sources, current={config.current_source}"
        )
        return registry

    @staticmethod
    def validate_file(path: Path) -> bool:
        """Check whether a registry file parses into a usable registry."""
        try:
            config = read_config(Path(path))
        except ConfigCorruptError as e:
            logger.info(f"[registry] Validation failed: {e}")
            return False
        return bool(config.sources)

    # ─── Persistence ────────────────────────────────────────

    def save(self) -> bool:
        """Write the full in-memory state. Failures are logged, not raised."""
        with self._lock:
            return write_config(self.path, self._config)

    def save_if_changed(self) -> bool:
        """
        Write only when the in-memory state differs from the file.

        Returns:
            True if the file was written.
        """
        with self._lock:
            return self._save_if_changed_locked()

    def _save_if_changed_locked(self) -> bool:
        if self.path.exists():
            try:
                on_disk = read_config(self.path)
            except ConfigCorruptError:
                on_disk = None
            if on_disk == self._config:
                logger.debug("[registry] No changes, skipping save")
                return False
        return write_config(self.path, self._config)

    # ─── Reads ──────────────────────────────────────────────

    @property
    def snapshot(self) -> RegistryConfig:
        """The current immutable registry state."""
        return self._config

    @property
    def current_source_name(self) -> str:
        return self._config.current_source

    @property
    def schema_version(self) -> int:
        return self._config.version

    def get_current_source(self) -> DataSource:
        """The selected source. Always present once the registry is loaded."""
        return self._config.current

    def get_source(self, name: str) -> Optional[DataSource]:
        return self._config.sources.get(name)

    def get_all_sources(self) -> Mapping[str, DataSource]:
        """Read-only view of every configured source."""
        return MappingProxyType(dict(self._config.sources))

    def require_selectable(self, name: str) -> DataSource:
        """
        Return the named source if it can become current.

        Raises:
            UnknownSourceError: No such source.
            SourceDisabledError: The source is disabled.
        """
        source = self._config.sources.get(name)
        if source is None:
            raise UnknownSourceError(name)
        if not source.enabled:
            raise SourceDisabledError(name)
        return source

    # ─── Mutations ──────────────────────────────────────────

    def switch_current(self, name: str) -> bool:
        """
        Make `name` the current source and persist.

        Returns:
            False if the source is unknown or disabled (state unchanged).
        """
        with self._lock:
            try:
                self.require_selectable(name)
            except (UnknownSourceError, SourceDisabledError) as e:
                logger.warning(f"[registry] Cannot switch: {e}")
                return False

            if self._config.current_source != name:
                self._config = self._config.model_copy(update={"current_source": name})
                logger.info(f"[registry] Current source → {name}")
            self._save_if_changed_locked()
        return True

    def add_source(self, source: DataSource, replace: bool = False) -> bool:
        """
        Add a source (or replace an existing one when `replace` is set).

        Returns:
            False if a source with that name exists and replace is False.
        """
        with self._lock:
            if source.name in self._config.sources and not replace:
                logger.warning(f"[registry] Source '{source.name}' already exists")
                return False
            if (
                replace
                and source.name == self._config.current_source
                and not source.enabled
            ):
                logger.warning(f"[registry] Cannot disable current source '{source.name}'")
                return False

            sources = dict(self._config.sources)
            sources[source.name] = source
            self._config = self._config.model_copy(update={"sources": sources})
            logger.info(f"[registry] Added source '{source.name}' ({source.mode_label})")
            self._save_if_changed_locked()
        return True

    def set_enabled(self, name: str, enabled: bool) -> bool:
        """
        Enable or disable a source.

        Returns:
            False if the source is unknown, or if disabling the current source.
        """
        with self._lock:
            source = self._config.sources.get(name)
            if source is None:
                logger.warning(f"[registry] {UnknownSourceError(name)}")
                return False
            if not enabled and name == self._config.current_source:
                logger.warning(f"[registry] Cannot disable current source '{name}'")
                return False
            if source.enabled == enabled:
                return True

            sources = dict(self._config.sources)
            sources[name] = source.model_copy(update={"enabled": enabled})
            self._config = self._config.model_copy(update={"sources": sources})
            logger.info(f"[registry] Source '{name}' {'enabled' if enabled else 'disabled'}")
            self._save_if_changed_locked()
        return True
