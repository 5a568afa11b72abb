"""
Landmark Sync Service — One object wiring every component together.

This is the surface the search and UI layers talk to: they ask which
source is current, where its cached document lives, and trigger sync
passes or status checks. Nothing here raises into the caller for
network or file problems; those end up in results and logs.

## Usage

    from landmark_sync.service import LandmarkSyncService

    with LandmarkSyncService.from_settings(SyncSettings.from_env()) as service:
        service.sync()
        path = service.get_local_cache_path(service.get_current_source().name)
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

import httpx

from .config.settings import SyncSettings
from .mirror.resolver import MirrorResolver
from .models.probe import StatusSummary
from .models.source import DataSource
from .pool import configure_pools
from .probe.endpoint import EndpointProbe
from .registry.store import SourceRegistry
from .status.aggregator import ProgressSink, StatusAggregator
from .sync.cache import LocalCacheStore
from .sync.engine import SyncResult, VersionSyncEngine

logger = logging.getLogger(__name__)


class LandmarkSyncService:
    """Facade over the registry, sync engine and status aggregator."""

    def __init__(
        self,
        registry: SourceRegistry,
        cache: LocalCacheStore,
        probe: EndpointProbe,
        engine: VersionSyncEngine,
        aggregator: StatusAggregator,
    ):
        self.registry = registry
        self.cache = cache
        self.probe = probe
        self.engine = engine
        self.aggregator = aggregator

    @classmethod
    def from_settings(
        cls,
        settings: SyncSettings,
        client: Optional[httpx.Client] = None,
    ) -> "LandmarkSyncService":
        """Build the full component graph from settings."""
        configure_pools(settings.probe_workers, settings.task_workers, settings.status_workers)

        registry = SourceRegistry.load(settings.config_path)
        cache = LocalCacheStore(settings.cache_dir, prefix_bytes=settings.prefix_bytes)
        probe = EndpointProbe.from_settings(settings, client)
        resolver = MirrorResolver(probe)
        aggregator = StatusAggregator(
            resolver, timeout=max(settings.status_timeout, resolver.timeout)
        )
        engine = VersionSyncEngine(cache, probe)

        logger.debug(f"Sync service ready (home={settings.home})")
        return cls(registry, cache, probe, engine, aggregator)

    # ─── Sources ────────────────────────────────────────────

    def get_current_source(self) -> DataSource:
        return self.registry.get_current_source()

    def get_all_sources(self) -> Mapping[str, DataSource]:
        return self.registry.get_all_sources()

    def switch_source(self, name: str) -> bool:
        """Select a different current source. False if unknown or disabled."""
        return self.registry.switch_current(name)

    def get_local_cache_path(self, name: str) -> Optional[Path]:
        """Cached document for a source, or None if it has none yet."""
        source = self.registry.get_source(name)
        if source is None or source.is_api_mode:
            return None
        return self.cache.get_local_cache_path(name)

    # ─── Sync and status ────────────────────────────────────

    def sync(self, blocking: bool = True) -> Union[Dict[str, SyncResult], Future]:
        """
        Bring every JSON-mode source's cache up to date.

        With blocking=False the pass runs in the background and a Future
        of the results is returned immediately.
        """
        sources = self.registry.get_all_sources()
        if blocking:
            return self.engine.sync_all(sources)
        return self.engine.start_background(sources)

    def check_status(self, on_progress: Optional[ProgressSink] = None) -> StatusSummary:
        return self.aggregator.check_all(self.registry.get_all_sources(), on_progress)

    # ─── Lifecycle ──────────────────────────────────────────

    def close(self) -> None:
        self.probe.close()

    def __enter__(self) -> "LandmarkSyncService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
