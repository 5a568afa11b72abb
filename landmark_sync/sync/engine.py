"""
Version Sync Engine — Keep each JSON-mode source's local copy current.

For every source a pass does one of:

- no local copy:   download from the primary, falling back to each mirror
                   in order; if all fail the source stays uncached
- local copy:      read only the remote version (a Range-limited prefix of
                   the primary) and compare it, as an opaque string, with
                   the cached version; any difference, including one side
                   having no version, triggers a full re-download
- API-mode source: skipped; those are queried live and never cached

Passes for different sources run in parallel on the task pool. At most
one pass per source is in flight at a time; an overlapping request is
skipped rather than queued. Failures never propagate: each pass ends in
a SyncResult.

## Usage

    engine = VersionSyncEngine(cache, probe)
    results = engine.sync_all(registry.get_all_sources())
    for name, result in results.items():
        print(name, result.outcome.value)
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Set

from ..models.source import DataSource
from ..pool import get_task_pool
from ..probe.endpoint import DownloadError, EndpointProbe
from .cache import LocalCacheStore

logger = logging.getLogger(__name__)


class SyncOutcome(str, Enum):
    """Result of one synchronization pass for one source."""
    CREATED = "created"      # First download
    UPDATED = "updated"      # Version changed, re-downloaded
    UNCHANGED = "unchanged"  # Versions equal, nothing written
    FAILED = "failed"        # Every URL failed; cache left as it was
    SKIPPED = "skipped"      # API mode, disabled, or a pass already running


@dataclass
class SyncResult:
    """Outcome of synchronizing one source."""

    name: str
    outcome: SyncOutcome
    version: Optional[str] = None
    url: Optional[str] = None
    error: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.outcome in (SyncOutcome.CREATED, SyncOutcome.UPDATED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "outcome": self.outcome.value,
            "version": self.version,
            "url": self.url,
            "error": self.error,
        }


class VersionSyncEngine:
    """
    Runs synchronization passes against a LocalCacheStore.

    The probe supplies remote version reads and full downloads.
    """

    def __init__(
        self,
        cache: LocalCacheStore,
        probe: EndpointProbe,
        pool: Optional[ThreadPoolExecutor] = None,
    ):
        self.cache = cache
        self.probe = probe
        self._pool = pool
        self._in_flight: Set[str] = set()
        self._lock = threading.Lock()

    @property
    def pool(self) -> ThreadPoolExecutor:
        return self._pool or get_task_pool()

    # ─── Single source ──────────────────────────────────────

    def sync_source(self, source: DataSource) -> SyncResult:
        """Synchronize one source. Never raises."""
        if source.is_api_mode:
            return SyncResult(source.name, SyncOutcome.SKIPPED, error="api mode")

        if not self._claim(source.name):
            logger.info(f"[sync] {source.name}: pass already running, skipping")
            return SyncResult(source.name, SyncOutcome.SKIPPED, error="sync already running")

        try:
            return self._sync(source)
        except Exception as e:
            logger.error(f"[sync] {source.name}: unexpected error: {e}", exc_info=True)
            return SyncResult(source.name, SyncOutcome.FAILED, error=str(e))
        finally:
            self._release(source.name)

    def _sync(self, source: DataSource) -> SyncResult:
        cached = self.cache.entry(source.name)
        if cached is None:
            logger.info(f"[sync] {source.name}: no local copy, downloading")
            return self._download(source, SyncOutcome.CREATED)

        primary = source.get_all_urls()[0]
        remote_version = self.probe.fetch_version(primary)

        if remote_version == cached.version:
            logger.debug(f"[sync] {source.name}: up to date (version={cached.version})")
            return SyncResult(
                source.name, SyncOutcome.UNCHANGED, version=cached.version, url=primary
            )

        logger.info(
            f"[sync] {source.name}: version {cached.version!r} → {remote_version!r}, re-downloading"
        )
        return self._download(source, SyncOutcome.UPDATED)

    def _download(self, source: DataSource, outcome: SyncOutcome) -> SyncResult:
        """Download from the primary, then each mirror, until one succeeds."""
        errors: List[str] = []

        for url in source.get_all_urls():
            try:
                content = self.probe.download(url)
            except DownloadError as e:
                logger.warning(
                    f"[sync] {source.name}: download from {url} failed: {e.reason}",
                    extra={"source": source.name, "url": url},
                )
                errors.append(f"{url}: {e.reason}")
                continue

            try:
                entry = self.cache.write(source.name, content)
            except OSError as e:
                logger.error(f"[sync] {source.name}: cannot write cache: {e}")
                return SyncResult(
                    source.name, SyncOutcome.FAILED, url=url, error=f"cache write failed: {e}"
                )

            logger.info(
                f"[sync] {source.name}: {outcome.value} from {url}",
                extra={"source": source.name, "url": url, "outcome": outcome.value},
            )
            return SyncResult(source.name, outcome, version=entry.version, url=url)

        return SyncResult(
            source.name,
            SyncOutcome.FAILED,
            error="; ".join(errors) or "no urls configured",
        )

    def _claim(self, name: str) -> bool:
        with self._lock:
            if name in self._in_flight:
                return False
            self._in_flight.add(name)
            return True

    def _release(self, name: str) -> None:
        with self._lock:
            self._in_flight.discard(name)

    # ─── All sources ────────────────────────────────────────

    def sync_all(self, sources: Mapping[str, DataSource]) -> Dict[str, SyncResult]:
        """
        Synchronize every enabled JSON-mode source in parallel.

        API-mode and disabled sources are reported as skipped. One
        source failing never affects another.
        """
        results: Dict[str, SyncResult] = {}
        futures: Dict[str, Future] = {}

        for name, source in sources.items():
            if source.is_api_mode:
                results[name] = SyncResult(name, SyncOutcome.SKIPPED, error="api mode")
                continue
            if not source.enabled:
                results[name] = SyncResult(name, SyncOutcome.SKIPPED, error="disabled")
                continue
            try:
                futures[name] = self.pool.submit(self.sync_source, source)
            except RuntimeError as e:
                logger.warning(f"[sync] {name}: cannot schedule pass: {e}")
                results[name] = SyncResult(name, SyncOutcome.FAILED, error=str(e))

        for name, future in futures.items():
            try:
                results[name] = future.result()
            except Exception as e:
                results[name] = SyncResult(name, SyncOutcome.FAILED, error=str(e))

        ordered = {name: results[name] for name in sources if name in results}
        changed = sum(1 for r in ordered.values() if r.changed)
        failed = sum(1 for r in ordered.values() if r.outcome == SyncOutcome.FAILED)
        logger.info(
            f"[sync] Pass complete: {changed} changed, {failed} failed, {len(ordered)} sources"
        )
        return ordered

    def start_background(self, sources: Mapping[str, DataSource]) -> Future:
        """
        Run sync_all() on a background thread.

        Returns a Future holding the results; callers that do not care
        can drop it.
        """
        future: Future = Future()
        future.set_running_or_notify_cancel()
        snapshot = dict(sources)

        def _run() -> None:
            try:
                future.set_result(self.sync_all(snapshot))
            except Exception as e:
                logger.error(f"[sync] Background pass failed: {e}", exc_info=True)
                future.set_exception(e)

        thread = threading.Thread(target=_run, name="landmark-sync-startup", daemon=True)
        thread.start()
        return future
