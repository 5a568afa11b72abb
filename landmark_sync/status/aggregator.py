"""
Status Aggregator — Check every configured source at once.

Enabled sources are resolved concurrently on the status pool; each
resolution in turn fans its URL probes out on the probe pool. Disabled
sources are reported immediately without touching the network.

Each source gets its own deadline, counted from the moment its
resolution starts running. A source waiting for a free worker is not
yet on the clock, so a busy pool delays results but never turns a
reachable source into a timeout.

A progress notification is delivered as each source finishes, in
completion order. Nothing a single source does can break the check:
a resolution that raises, or that outlives its deadline, is reported
as an unavailable result for that source only.

## Usage

    aggregator = StatusAggregator(resolver)
    summary = aggregator.check_all(
        registry.get_all_sources(),
        on_progress=lambda p: print(f"{p.completed}/{p.total} {p.name}"),
    )
    print(f"{summary.available_count}/{summary.total} available")
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, Dict, Mapping, Optional, Set, Tuple

from ..mirror.resolver import SUPERVISION_SLACK_SECONDS, MirrorResolver
from ..models.probe import (
    REASON_DISABLED,
    MirrorReport,
    ProbeResult,
    SourceProgress,
    SourceStatusReport,
    StatusSummary,
)
from ..models.source import DataSource
from ..pool import get_status_pool

logger = logging.getLogger(__name__)

ProgressSink = Callable[[SourceProgress], None]

# Longest wait between deadline checks while sources are still queued
POLL_INTERVAL_SECONDS = 0.05


def _primary_url(source: DataSource) -> Optional[str]:
    if source.is_api_mode:
        return source.api_health_url()
    urls = source.get_all_urls()
    return urls[0] if urls else None


def _has_mirrors(source: DataSource) -> bool:
    return not source.is_api_mode and any(u and u.strip() for u in source.mirror_urls)


class StatusAggregator:
    """
    Aggregates per-source mirror reports into one StatusSummary.

    `timeout` bounds each source's resolution from when it starts
    running. It defaults to the resolver's own timeout plus a little
    slack.
    """

    def __init__(
        self,
        resolver: MirrorResolver,
        pool: Optional[ThreadPoolExecutor] = None,
        timeout: Optional[float] = None,
    ):
        self.resolver = resolver
        self.timeout = timeout if timeout is not None else (
            resolver.timeout + SUPERVISION_SLACK_SECONDS
        )
        self._pool = pool

    @property
    def pool(self) -> ThreadPoolExecutor:
        return self._pool or get_status_pool()

    def check_all(
        self,
        sources: Mapping[str, DataSource],
        on_progress: Optional[ProgressSink] = None,
    ) -> StatusSummary:
        """Check every source and return the summary in configured order."""
        total = len(sources)
        reports: Dict[str, SourceStatusReport] = {}
        pending: Dict[Future, Tuple[str, DataSource]] = {}
        started: Dict[str, float] = {}
        started_lock = threading.Lock()

        def finish(name: str, report: SourceStatusReport) -> None:
            reports[name] = report
            self._notify(on_progress, SourceProgress(name, report, len(reports), total))

        def resolve(name: str, source: DataSource) -> MirrorReport:
            with started_lock:
                started[name] = time.monotonic()
            return self.resolver.resolve(source)

        for name, source in sources.items():
            if not source.enabled:
                finish(name, self._failed_report(name, source, REASON_DISABLED))
                continue
            try:
                future = self.pool.submit(resolve, name, source)
            except RuntimeError as e:
                logger.warning(f"[status] {name}: cannot schedule check: {e}")
                finish(name, self._failed_report(name, source, f"error: {e}"))
                continue
            pending[future] = (name, source)

        waiting: Set[Future] = set(pending)
        while waiting:
            done, _ = wait(
                waiting, timeout=self._next_wait(waiting, pending, started, started_lock),
                return_when=FIRST_COMPLETED,
            )
            for future in done:
                waiting.discard(future)
                name, source = pending[future]
                try:
                    report = self._build_report(name, source, future.result())
                except Exception as e:
                    logger.warning(f"[status] {name}: check failed: {e}")
                    report = self._failed_report(name, source, f"error: {e}")
                finish(name, report)

            now = time.monotonic()
            for future in list(waiting):
                name, source = pending[future]
                with started_lock:
                    start = started.get(name)
                if start is not None and now - start >= self.timeout and not future.done():
                    waiting.discard(future)
                    logger.warning(f"[status] {name}: check did not finish in {self.timeout}s")
                    finish(name, self._timeout_report(name, source))

        summary = StatusSummary(reports={name: reports[name] for name in sources})
        logger.info(f"[status] {summary.available_count}/{summary.total} sources available")
        return summary

    def _next_wait(
        self,
        waiting: Set[Future],
        pending: Dict[Future, Tuple[str, DataSource]],
        started: Dict[str, float],
        started_lock: threading.Lock,
    ) -> float:
        """Seconds until the earliest running source's deadline, or one poll."""
        now = time.monotonic()
        with started_lock:
            starts = [started.get(pending[f][0]) for f in waiting]
        if any(s is None for s in starts):
            remaining = [s + self.timeout - now for s in starts if s is not None]
            return max(0.0, min([POLL_INTERVAL_SECONDS, *remaining]))
        return max(0.0, min(s + self.timeout - now for s in starts))

    # ─── Report building ───────────────────────────────────

    def _build_report(
        self, name: str, source: DataSource, mirror_report: MirrorReport
    ) -> SourceStatusReport:
        return SourceStatusReport(
            name=name,
            display_name=source.label,
            mode=source.mode_label,
            enabled=source.enabled,
            best=mirror_report.best,
            mirrors=list(mirror_report.results) if _has_mirrors(source) else None,
            recommended=mirror_report.recommended,
        )

    def _failed_report(self, name: str, source: DataSource, reason: str) -> SourceStatusReport:
        return SourceStatusReport(
            name=name,
            display_name=source.label,
            mode=source.mode_label,
            enabled=source.enabled,
            best=ProbeResult.failed(_primary_url(source), reason, is_primary=True),
        )

    def _timeout_report(self, name: str, source: DataSource) -> SourceStatusReport:
        return SourceStatusReport(
            name=name,
            display_name=source.label,
            mode=source.mode_label,
            enabled=source.enabled,
            best=ProbeResult.timed_out(_primary_url(source), is_primary=True),
        )

    @staticmethod
    def _notify(sink: Optional[ProgressSink], progress: SourceProgress) -> None:
        if sink is None:
            return
        try:
            sink(progress)
        except Exception as e:
            logger.warning(f"[status] Progress callback failed for {progress.name}: {e}")
